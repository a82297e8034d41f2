"""Resolve the card used on a receipt and link unlinked cards to accounts.

Cards are matched on the trailing four digits of ``card_number``.  The
decision order (cards of this account first, then unlinked cards, then
cards of other accounts) decides which conflict type an operator sees, so
it must not be reshuffled.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from tmdash.models.card import Card
from tmdash.schemas.import_result import ConflictType

logger = logging.getLogger(__name__)


@dataclass
class CardConflict:
    type: ConflictType
    existing_account_email: Optional[str] = None
    existing_card_id: Optional[int] = None


@dataclass
class CardResolution:
    card_id: Optional[int] = None
    linked: bool = False
    conflict: Optional[CardConflict] = None


def find_cards_by_last4(db: Session, card_last4: str) -> list[Card]:
    """Return non-deleted cards whose number ends with *card_last4*, oldest first."""
    return (
        db.query(Card)
        .options(selectinload(Card.account))
        .filter(Card.card_number.endswith(card_last4, autoescape=True), Card.deleted_at.is_(None))
        .order_by(Card.id)
        .all()
    )


def _link(card: Card, account_id: int) -> CardResolution:
    card.account_id = account_id
    logger.info("Linked card %s (****%s) to account %s", card.id, card.last4, account_id)
    return CardResolution(card_id=card.id, linked=True)


def _mismatch(card: Card) -> CardResolution:
    return CardResolution(
        conflict=CardConflict(
            type=ConflictType.CARD_ACCOUNT_MISMATCH,
            existing_account_email=card.account.email if card.account else None,
            existing_card_id=card.id,
        )
    )


def resolve_card(db: Session, card_last4: Optional[str], account_id: int) -> CardResolution:
    """Pick the card for a receipt charged to *account_id*.

    Returns a :class:`CardResolution`; when ``linked`` is True the card's
    ``account_id`` has been set on the session (the caller commits).  A card
    already owned by another account is never reassigned here.
    """
    if not card_last4:
        return CardResolution()

    candidates = find_cards_by_last4(db, card_last4)

    if not candidates:
        return CardResolution(conflict=CardConflict(type=ConflictType.CARD_NOT_FOUND))

    if len(candidates) == 1:
        card = candidates[0]
        if card.account_id is None:
            return _link(card, account_id)
        if card.account_id == account_id:
            return CardResolution(card_id=card.id)
        return _mismatch(card)

    own = [c for c in candidates if c.account_id == account_id]
    if len(own) == 1:
        return CardResolution(card_id=own[0].id)
    if len(own) > 1:
        return CardResolution(conflict=CardConflict(type=ConflictType.CARD_AMBIGUOUS))

    unlinked = [c for c in candidates if c.account_id is None]
    if len(unlinked) == 1:
        return _link(unlinked[0], account_id)
    if len(unlinked) > 1:
        return CardResolution(conflict=CardConflict(type=ConflictType.CARD_AMBIGUOUS))

    return _mismatch(candidates[0])


def link_card_to_account(db: Session, card: Card, account_id: int) -> Card:
    """Operator override: (re)link *card* to *account_id*, e.g. to settle a conflict."""
    if card.account_id not in (None, account_id):
        logger.warning(
            "Card %s moved from account %s to account %s by operator",
            card.id, card.account_id, account_id,
        )
    card.account_id = account_id
    db.commit()
    db.refresh(card)
    return card


def soft_delete_card(db: Session, card: Card) -> None:
    card.deleted_at = datetime.utcnow()
    db.commit()
