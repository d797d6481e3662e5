"""Economic calendar event model."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Date, DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ..db.base import Base


class EconomicEvent(Base):
    __tablename__ = "economic_events"
    __table_args__ = (
        CheckConstraint("impact IN ('High', 'Medium', 'Low')", name="ck_economic_events_impact"),
        Index("ix_economic_events_name_currency", "event_name", "currency"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), index=True)
    event_name: Mapped[str] = mapped_column(String(255))
    impact: Mapped[str] = mapped_column(String(16), default="Low")
    event_date: Mapped[date] = mapped_column(Date, index=True)
    event_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    time_utc: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    unix_timestamp: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    actual_value: Mapped[str | None] = mapped_column(String(64), nullable=True)
    forecast_value: Mapped[str | None] = mapped_column(String(64), nullable=True)
    previous_value: Mapped[str | None] = mapped_column(String(64), nullable=True)
    actual_result_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    country: Mapped[str | None] = mapped_column(String(64), nullable=True)
    flag_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    flag_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_all_day: Mapped[bool] = mapped_column(Boolean, default=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    data_source: Mapped[str] = mapped_column(String(32), default="myfxbook")
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


__all__ = ["EconomicEvent"]
