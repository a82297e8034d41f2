from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from tmdash.database import Base


class Card(Base):
    """A payment-card profile.

    ``account_id`` is null while the card is unlinked.  Only the trailing four
    digits of ``card_number`` are used when matching receipts to cards.
    """

    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(primary_key=True)
    card_number: Mapped[str] = mapped_column(String(32), index=True)
    card_type: Mapped[Optional[str]] = mapped_column(String(50))
    account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id"), index=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    account: Mapped[Optional["Account"]] = relationship("Account", back_populates="cards")

    @property
    def last4(self) -> str:
        return (self.card_number or "")[-4:]


from tmdash.models.account import Account  # noqa: E402, F401
