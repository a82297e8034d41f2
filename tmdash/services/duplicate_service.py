"""Detect receipts that already have a Purchase, and apply operator-approved updates.

Duplicates are only ever reported; an existing Purchase is never changed by
the importer.  ``apply_duplicate_updates`` is the explicit follow-up action.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from tmdash.models.purchase import Purchase
from tmdash.schemas.import_result import (
    DuplicateUpdate,
    DuplicateUpdateError,
    FieldChange,
    ImportDuplicate,
)
from tmdash.services.receipt_parser import ReceiptRow

logger = logging.getLogger(__name__)

_COMPARED_FIELDS = ("quantity", "total_price", "section", "row", "seats")


def _as_text(value) -> str:
    return "" if value is None else str(value)


def _eq_or_null(column, value):
    # Purchases store empty seat fields as NULL
    return column == value if value else column.is_(None)


def compare_values(field: str, old, new) -> Optional[FieldChange]:
    old_s, new_s = _as_text(old), _as_text(new)
    if old_s != new_s:
        return FieldChange(field=field, old_value=old_s, new_value=new_s)
    return None


def diff_purchase(existing: Purchase, receipt: ReceiptRow) -> list[FieldChange]:
    changes = []
    for field in _COMPARED_FIELDS:
        change = compare_values(field, getattr(existing, field), getattr(receipt, field))
        if change:
            changes.append(change)
    return changes


def find_by_order_number(db: Session, receipt: ReceiptRow) -> Optional[ImportDuplicate]:
    existing = (
        db.query(Purchase)
        .filter(Purchase.tm_order_number == receipt.tm_order_number)
        .first()
    )
    if not existing:
        return None
    changes = diff_purchase(existing, receipt)
    return ImportDuplicate(
        row=receipt.row_number,
        tm_order_number=receipt.tm_order_number,
        existing_purchase_id=existing.id,
        has_changes=bool(changes),
        changes=changes or None,
    )


def find_by_seats(
    db: Session, receipt: ReceiptRow, account_id: int, event_id: int
) -> Optional[ImportDuplicate]:
    """Fallback: same account, event and seats already purchased.

    Reported as changed only when the existing purchase lacks an order number,
    i.e. this receipt can fill it in.
    """
    existing = (
        db.query(Purchase)
        .filter(
            Purchase.account_id == account_id,
            Purchase.event_id == event_id,
            _eq_or_null(Purchase.section, receipt.section),
            _eq_or_null(Purchase.row, receipt.row),
            _eq_or_null(Purchase.seats, receipt.seats),
        )
        .first()
    )
    if not existing:
        return None
    missing_order = not existing.tm_order_number
    return ImportDuplicate(
        row=receipt.row_number,
        tm_order_number=receipt.tm_order_number,
        existing_purchase_id=existing.id,
        has_changes=missing_order,
        changes=[
            FieldChange(field="tm_order_number", old_value="", new_value=receipt.tm_order_number)
        ]
        if missing_order
        else None,
    )


def apply_duplicate_updates(
    db: Session, updates: list[DuplicateUpdate]
) -> tuple[int, list[DuplicateUpdateError]]:
    """Write operator-approved changes onto existing purchases.

    ``price_each`` is recomputed whenever ``total_price`` changes.  Each update
    is committed on its own; a failure is reported and the rest continue.
    """
    updated = 0
    errors: list[DuplicateUpdateError] = []

    for update in updates:
        try:
            purchase = db.query(Purchase).filter(Purchase.id == update.purchase_id).first()
            if not purchase:
                errors.append(
                    DuplicateUpdateError(purchase_id=update.purchase_id, error="Purchase not found")
                )
                continue

            data = update.updates.model_dump(exclude_none=True)
            if not data:
                continue

            if "total_price" in data:
                quantity = data.get("quantity") or purchase.quantity
                if quantity and quantity > 0:
                    data["price_each"] = data["total_price"] / quantity

            for key, value in data.items():
                setattr(purchase, key, value)
            db.commit()
            updated += 1
        except Exception as exc:
            db.rollback()
            logger.error("Failed to update purchase %s: %s", update.purchase_id, exc)
            errors.append(DuplicateUpdateError(purchase_id=update.purchase_id, error=str(exc)))

    return updated, errors
