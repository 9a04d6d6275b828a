"""Service for Quick Sales module."""

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.config import settings
from src.core.documents.number_generator import DocumentNumberGenerator, DocumentPrefix
from src.core.exceptions import NotFoundError
from src.modules.catalog.service import CatalogService
from src.modules.documents.settlement import save_with_wallet_charge
from src.modules.fees.calculator import compute_totals
from src.modules.payments.resolver import PaymentType, resolve
from src.modules.quick_sales.models import QuickSale, QuickSaleLine
from src.modules.quick_sales.schemas import QuickSaleCreate
from src.modules.wallet.service import WalletService

logger = logging.getLogger(__name__)


class QuickSaleService:
    """Cash sales without a customer record."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog = CatalogService(db)
        self.wallet = WalletService(db)
        self.audit = AuditService(db)

    async def create_quick_sale(self, data: QuickSaleCreate) -> QuickSale:
        """
        Record a cash sale. Cash short of the total is refused; there is no
        customer to put the balance on credit for.
        """
        services = await self.catalog.get_service_fees(
            data.service_ids, lenient=not settings.strict_service_lookup
        )
        totals = compute_totals(services)
        outcome = resolve(
            totals.total, PaymentType.CASH, data.amount_received, convert_shortfall=False
        )

        async def save(card_name: str | None) -> QuickSale:
            sale = QuickSale(
                sale_number=await DocumentNumberGenerator(self.db).generate(
                    DocumentPrefix.QUICK_SALE
                ),
                service_fee=totals.service_fee,
                govt_fee=totals.govt_fee,
                total=totals.total,
                payment_type=outcome.payment_type.value,
                amount_received=outcome.amount_received,
                change=outcome.change,
                wallet_card_id=data.wallet_card_id if card_name else None,
                wallet_card_name=card_name,
                notes=data.notes,
                sale_date=date.today(),
            )
            sale.lines = [
                QuickSaleLine(
                    service_id=service.service_id,
                    description=service.name,
                    service_fee=service.service_fee,
                    govt_fee=service.govt_fee,
                    price=service.price,
                )
                for service in services
            ]
            self.db.add(sale)
            await self.db.flush()

            await self.audit.log(
                action=AuditAction.CREATE_QUICK_SALE,
                entity_type="QuickSale",
                entity_id=sale.id,
                entity_identifier=sale.sale_number,
                new_values={"total": str(sale.total), "change": str(sale.change)},
            )
            return sale

        sale = await save_with_wallet_charge(
            self.db,
            self.wallet,
            save,
            label="quick sale",
            link_field="quick_sale_id",
            card_id=data.wallet_card_id,
            amount=totals.govt_fee,
            memo="Government fee: quick sale",
            reuse_deduction_id=data.wallet_deduction_id,
        )
        logger.info("Recorded quick sale %s (total %s)", sale.sale_number, sale.total)
        return await self.get_quick_sale_by_id(sale.id)

    async def get_quick_sale_by_id(self, sale_id: int) -> QuickSale:
        result = await self.db.execute(
            select(QuickSale)
            .where(QuickSale.id == sale_id)
            .options(selectinload(QuickSale.lines))
        )
        sale = result.scalar_one_or_none()
        if not sale:
            raise NotFoundError("Quick sale", sale_id)
        return sale

    async def list_quick_sales(self, sale_date: date | None = None, limit: int = 100) -> list[QuickSale]:
        query = (
            select(QuickSale)
            .options(selectinload(QuickSale.lines))
            .order_by(QuickSale.id.desc())
            .limit(limit)
        )
        if sale_date is not None:
            query = query.where(QuickSale.sale_date == sale_date)
        result = await self.db.execute(query)
        return list(result.scalars().all())
