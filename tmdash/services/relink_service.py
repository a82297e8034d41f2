"""Re-attach cards to purchases that were created without one.

A purchase is linked only when exactly one card of the purchase's own
account ends with the stored ``card_last4``; everything else is counted
by reason and left for manual review.
"""
import logging
from collections import defaultdict

from sqlalchemy.orm import Session

from tmdash.models.card import Card
from tmdash.models.purchase import Purchase, PurchaseStatus
from tmdash.schemas.purchase import (
    RelinkBreakdown,
    RelinkResponse,
    RelinkStats,
    RelinkStatsBreakdown,
)

logger = logging.getLogger(__name__)


def relink_purchases(db: Session) -> RelinkResponse:
    purchases = db.query(Purchase).filter(Purchase.card_id.is_(None)).all()

    cards_by_account: dict[int, list[Card]] = defaultdict(list)
    for card in db.query(Card).filter(Card.deleted_at.is_(None)).all():
        if card.account_id is not None:
            cards_by_account[card.account_id].append(card)

    linked = 0
    breakdown = RelinkBreakdown()

    for purchase in purchases:
        if not purchase.card_last4:
            breakdown.no_card_last4 += 1
            continue

        account_cards = cards_by_account.get(purchase.account_id, [])
        matching = [c for c in account_cards if c.card_number.endswith(purchase.card_last4)]

        if len(matching) == 1:
            purchase.card_id = matching[0].id
            linked += 1
        elif len(matching) > 1:
            breakdown.multiple_matches += 1
        elif not account_cards:
            breakdown.no_account_cards += 1
        else:
            breakdown.no_matching_card += 1

    db.commit()

    not_linked = (
        breakdown.no_card_last4
        + breakdown.no_matching_card
        + breakdown.multiple_matches
        + breakdown.no_account_cards
    )
    if linked:
        message = f"Linked {linked} purchases to cards. {not_linked} need manual review."
    else:
        message = f"No purchases could be auto-linked. {not_linked} need manual review."
    logger.info(message)

    return RelinkResponse(
        purchases_without_cards=len(purchases),
        linked=linked,
        not_linked=not_linked,
        breakdown=breakdown,
        message=message,
    )


def relink_stats(db: Session) -> RelinkStats:
    total = db.query(Purchase).count()
    without_cards = db.query(Purchase).filter(Purchase.card_id.is_(None)).count()
    unlinked_success = (
        db.query(Purchase)
        .filter(Purchase.card_id.is_(None), Purchase.status == PurchaseStatus.SUCCESS)
        .count()
    )
    unlinked_failed = (
        db.query(Purchase)
        .filter(Purchase.card_id.is_(None), Purchase.status == PurchaseStatus.FAILED)
        .count()
    )
    with_card_last4 = (
        db.query(Purchase)
        .filter(Purchase.card_id.is_(None), Purchase.card_last4.isnot(None))
        .count()
    )
    with_cards = total - without_cards
    return RelinkStats(
        total=total,
        with_cards=with_cards,
        without_cards=without_cards,
        breakdown=RelinkStatsBreakdown(
            unlinked_success=unlinked_success,
            unlinked_failed=unlinked_failed,
            with_card_last4=with_card_last4,
            without_card_last4=without_cards - with_card_last4,
        ),
        percent_linked=round(with_cards / total * 100) if total else 0,
    )
