import enum
from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from tmdash.database import Base


class PurchaseStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class Purchase(Base):
    __tablename__ = "purchases"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), index=True)
    event_id: Mapped[Optional[int]] = mapped_column(ForeignKey("events.id"), index=True)
    card_id: Mapped[Optional[int]] = mapped_column(ForeignKey("cards.id"), index=True)
    card_last4: Mapped[Optional[str]] = mapped_column(String(4))
    tm_order_number: Mapped[Optional[str]] = mapped_column(String(100), unique=True, index=True)
    dashboard_po_number: Mapped[Optional[str]] = mapped_column(String(20), unique=True)
    status: Mapped[PurchaseStatus] = mapped_column(String(20), default=PurchaseStatus.SUCCESS)
    quantity: Mapped[int] = mapped_column(default=1)
    price_each: Mapped[Optional[float]]
    total_price: Mapped[Optional[float]]
    section: Mapped[Optional[str]] = mapped_column(String(100))
    row: Mapped[Optional[str]] = mapped_column(String(50))
    seats: Mapped[Optional[str]] = mapped_column(String(100))
    attempt_count: Mapped[int] = mapped_column(default=1)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    account: Mapped["Account"] = relationship("Account", back_populates="purchases")
    event: Mapped[Optional["Event"]] = relationship("Event")
    card: Mapped[Optional["Card"]] = relationship("Card")


from tmdash.models.account import Account  # noqa: E402, F401
from tmdash.models.card import Card  # noqa: E402, F401
from tmdash.models.event import Event  # noqa: E402, F401
