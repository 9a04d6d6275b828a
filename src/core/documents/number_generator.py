from datetime import datetime
from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.documents.models import DocumentSequence


class DocumentPrefix(StrEnum):
    """Number prefixes per document kind."""

    INVOICE = "INV"
    QUOTATION = "QUO"
    WORK_ORDER = "WO"
    QUICK_SALE = "QS"


class DocumentNumberGenerator:
    """
    Generates sequential document numbers in format: PREFIX-YYYY-NNNNNN

    Examples:
        INV-2026-000001
        QUO-2026-000042
        WO-2026-001234
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def generate(self, prefix: str | DocumentPrefix, year: int | None = None) -> str:
        """
        Generate next document number for given prefix and year.

        Uses SELECT FOR UPDATE to keep numbers unique in concurrent scenarios.
        """
        prefix = str(prefix)
        if year is None:
            year = datetime.now().year

        stmt = (
            select(DocumentSequence)
            .where(DocumentSequence.prefix == prefix, DocumentSequence.year == year)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        sequence = result.scalar_one_or_none()

        if sequence is None:
            sequence = DocumentSequence(prefix=prefix, year=year, last_number=0)
            self.session.add(sequence)
            await self.session.flush()

            # Re-fetch with lock
            result = await self.session.execute(stmt)
            sequence = result.scalar_one()

        number = sequence.advance()
        await self.session.flush()

        return number
