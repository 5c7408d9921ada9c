"""Neighborhood reference model (district council id -> name)."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Neighborhood(Base):
    """St. Paul district council neighborhood."""

    __tablename__ = "neighborhoods"

    neighborhood_number: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=False
    )
    neighborhood_name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Neighborhood {self.neighborhood_number}: {self.neighborhood_name}>"
