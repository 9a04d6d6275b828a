from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base


class DocumentSequence(Base):
    """
    Last number issued per document prefix (INV, QUO, WO, QS) and year.

    Numbering restarts at 1 every calendar year.
    """

    __tablename__ = "document_sequences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prefix: Mapped[str] = mapped_column(String(20), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("prefix", "year", name="uq_document_sequence_prefix_year"),
    )

    def advance(self) -> str:
        """Take the next number and return it formatted as PREFIX-YYYY-NNNNNN."""
        self.last_number += 1
        return f"{self.prefix}-{self.year}-{self.last_number:06d}"
