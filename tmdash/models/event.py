from datetime import datetime
from typing import Optional
from sqlalchemy import String, func
from sqlalchemy.orm import Mapped, mapped_column
from tmdash.database import Base


class Event(Base):
    """An event populated by the event sync job; receipts only ever match against these."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True)
    tm_event_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    event_name: Mapped[str] = mapped_column(String(500))
    artist: Mapped[Optional[str]] = mapped_column(String(255))
    venue: Mapped[Optional[str]] = mapped_column(String(255))
    event_date: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    event_date_raw: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(default=func.now())
