from sqlalchemy import BigInteger, Integer, Numeric
from sqlalchemy.orm import DeclarativeBase

# BigInteger for PostgreSQL, Integer for SQLite (required for autoincrement)
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

# Fees, totals and card balances, in the shop currency
Money = Numeric(15, 2)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass
