"""Concurrent deductions against one card, each in its own session."""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from src.core.database.base import Base
from src.core.exceptions import InsufficientBalanceError
from src.modules.wallet.schemas import WalletCardCreate
from src.modules.wallet.service import WalletService


@pytest.fixture
async def session_factory(tmp_path):
    """File database so every session gets its own connection."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'wallet.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


async def _create_card(session_factory, balance: Decimal) -> int:
    async with session_factory() as session:
        service = WalletService(session)
        card = await service.create_card(WalletCardCreate(card_name="ICP Card"))
        await service.top_up(card.id, balance)
        return card.id


async def _deduct(session_factory, card_id: int, amount: Decimal):
    async with session_factory() as session:
        return await WalletService(session).deduct(card_id, amount)


async def _balance(session_factory, card_id: int) -> Decimal:
    async with session_factory() as session:
        return (await WalletService(session).get_card(card_id)).balance


class TestConcurrentDeductions:
    async def test_racing_deductions_cannot_overdraw(self, session_factory):
        card_id = await _create_card(session_factory, Decimal("100"))

        results = await asyncio.gather(
            *[_deduct(session_factory, card_id, Decimal("30")) for _ in range(10)],
            return_exceptions=True,
        )

        succeeded = [r for r in results if not isinstance(r, BaseException)]
        refused = [r for r in results if isinstance(r, InsufficientBalanceError)]
        assert len(succeeded) == 3
        assert len(refused) == 7
        assert await _balance(session_factory, card_id) == Decimal("10.00")

    async def test_two_sales_for_whole_balance(self, session_factory):
        """Both sales saw enough balance; only one may be charged."""
        card_id = await _create_card(session_factory, Decimal("450"))

        results = await asyncio.gather(
            _deduct(session_factory, card_id, Decimal("450")),
            _deduct(session_factory, card_id, Decimal("450")),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, InsufficientBalanceError)) == 1
        assert await _balance(session_factory, card_id) == Decimal("0.00")
