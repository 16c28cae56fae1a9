"""Wiki page table.

Only the schema lives here: the table is created by the storage preparation
step at startup. Reading, writing and rendering pages is handled elsewhere.
"""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.domain.models.base import Base


class Page(Base):
    """A named wiki page holding raw markdown content.

    Attributes:
        id: Auto-incremented primary key
        name: Unique page name (used in page URLs)
        content: Raw markdown source
    """

    __tablename__ = "pages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="Page name, unique across the wiki",
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<Page(id={self.id}, name={self.name!r})>"
