"""
Data models for rental yield simulations.
A simulation is written once on submission and never mutated.
"""
import json
from typing import Any, Dict, List
from uuid import uuid4
from sqlalchemy import Float, String, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.core.database import Base


class Simulation(Base):
    """Entity representing a submitted simulation and its baseline projection."""

    __tablename__ = "simulations"
    __table_args__ = (
        Index("ix_simulations_email_created_at", "email", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))  # UUID
    purchase_price: Mapped[float] = mapped_column(Float, nullable=False)
    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False)
    annual_fee: Mapped[float] = mapped_column(Float, nullable=False)
    email: Mapped[str] = mapped_column(String(254), index=True, nullable=False)
    results: Mapped[str] = mapped_column(Text, nullable=False)  # Serialized JSON
    created_at: Mapped[datetime] = mapped_column(DateTime, index=True, default=lambda: datetime.now(timezone.utc))
    correlation_id: Mapped[str] = mapped_column(String(100), nullable=True)

    @property
    def yearly_results(self) -> List[Dict[str, Any]]:
        return json.loads(self.results)

    def __repr__(self):
        return f"<Simulation(id={self.id}, email={self.email}, purchase_price={self.purchase_price})>"
