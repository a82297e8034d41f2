import enum
from datetime import datetime
from sqlalchemy import String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from tmdash.database import Base


class AccountStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    BANNED = "BANNED"


class Account(Base):
    """A Ticketmaster account, keyed by its (lower-cased) login email."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    status: Mapped[AccountStatus] = mapped_column(String(20), default=AccountStatus.ACTIVE)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    cards: Mapped[list["Card"]] = relationship("Card", back_populates="account")
    purchases: Mapped[list["Purchase"]] = relationship("Purchase", back_populates="account")


from tmdash.models.card import Card  # noqa: E402, F401
from tmdash.models.purchase import Purchase  # noqa: E402, F401
