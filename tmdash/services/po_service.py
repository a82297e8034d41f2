"""Dashboard PO numbers: a zero-padded running counter stored in ``app_settings``."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from tmdash.config import get_settings
from tmdash.models.purchase import Purchase, PurchaseStatus
from tmdash.models.setting import AppSetting

logger = logging.getLogger(__name__)

PO_NUMBER_SETTING_KEY = "dashboard_po_counter"


def format_po_number(number: int, width: Optional[int] = None) -> str:
    if width is None:
        width = get_settings().PO_NUMBER_WIDTH
    return str(number).zfill(width)


def assign_po_number(db: Session, purchase_id: int) -> str:
    """Give *purchase_id* the next PO number, or return the one it already has.

    The counter row is locked for the duration of the update so concurrent
    assignments cannot hand out the same number.

    Raises:
        ValueError: if the purchase does not exist.
    """
    try:
        purchase = db.query(Purchase).filter(Purchase.id == purchase_id).first()
        if purchase is None:
            raise ValueError(f"Purchase {purchase_id} not found")
        if purchase.dashboard_po_number:
            return purchase.dashboard_po_number

        setting = (
            db.query(AppSetting)
            .filter(AppSetting.key == PO_NUMBER_SETTING_KEY)
            .with_for_update()
            .first()
        )
        if setting is None:
            next_number = 1
            db.add(AppSetting(key=PO_NUMBER_SETTING_KEY, value="2"))
        else:
            next_number = int(setting.value or "1")
            setting.value = str(next_number + 1)

        po_number = format_po_number(next_number)
        purchase.dashboard_po_number = po_number
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.debug("Assigned PO %s to purchase %s", po_number, purchase_id)
    return po_number


def assign_missing_po_numbers(db: Session) -> dict:
    """Backfill PO numbers for successful purchases, in creation order."""
    purchases = (
        db.query(Purchase.id)
        .filter(
            Purchase.status == PurchaseStatus.SUCCESS,
            Purchase.dashboard_po_number.is_(None),
        )
        .order_by(Purchase.created_at, Purchase.id)
        .all()
    )
    assigned = 0
    for (purchase_id,) in purchases:
        assign_po_number(db, purchase_id)
        assigned += 1

    with_po = (
        db.query(Purchase)
        .filter(
            Purchase.status == PurchaseStatus.SUCCESS,
            Purchase.dashboard_po_number.isnot(None),
        )
        .count()
    )
    return {"assigned": assigned, "already_had": with_po - assigned, "total": with_po}
