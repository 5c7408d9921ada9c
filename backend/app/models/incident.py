"""Incident model for reported crime incidents."""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Incident(Base):
    """
    A single reported incident.

    `code` and `neighborhood_number` reference the codes and neighborhoods
    tables logically only; orphan values are accepted and displayed raw.
    """

    __tablename__ = "incidents"

    case_number: Mapped[str] = mapped_column(String(20), primary_key=True)
    date_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Classification
    code: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    incident: Mapped[str] = mapped_column(String(255), nullable=False)

    # Location
    police_grid: Mapped[int] = mapped_column(Integer, nullable=False)
    neighborhood_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    block: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        # Newest-first listing index
        Index("idx_incidents_recent", date_time.desc(), case_number.desc()),
    )

    def __repr__(self) -> str:
        return f"<Incident {self.case_number}: {self.code} @ {self.date_time}>"
