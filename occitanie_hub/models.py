"""
Quality standard: SQLAlchemy 2.0 Mapping.
Reason: Durable key/value store for client preferences (e.g. the debug flag).
"""
from datetime import datetime

from sqlalchemy import String, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from occitanie_hub.core.database import Base


class PreferenceModel(Base):
    __tablename__ = "preferences"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<PreferenceModel(key={self.key}, value={self.value})>"
