from src.core.database.session import async_session, engine, get_db
from src.core.database.base import Base, BigIntPK, Money

__all__ = ["async_session", "engine", "get_db", "Base", "BigIntPK", "Money"]
