"""IncidentCode reference model (code -> incident type)."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class IncidentCode(Base):
    """Police incident code and the incident type it stands for."""

    __tablename__ = "codes"

    code: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    incident_type: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<IncidentCode {self.code}: {self.incident_type}>"
