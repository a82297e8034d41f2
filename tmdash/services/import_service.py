"""Email-receipt import: turn parsed receipt rows into Purchases.

Rows are processed strictly in file order, one at a time.  Per row:

1. an existing Purchase with the same order number → duplicate, stop;
2. resolve (or create) the Account by email;
3. resolve the Event (fuzzy match, memoised per run), warn when none;
4. an existing Purchase for the same account/event/seats → duplicate, stop;
5. resolve the card by last 4 digits, auto-linking an unlinked card;
6. create the Purchase and try to give it a PO number.

A failure inside one row is recorded as an error for that row and the import
moves on.  There is no transaction around the whole import: accounts and
purchases are committed as they are created.
"""
import json
import logging
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from tmdash.models.account import Account, AccountStatus
from tmdash.models.job import JobRun, JobStatus, JobType
from tmdash.models.purchase import Purchase, PurchaseStatus
from tmdash.schemas.import_result import (
    ImportConflict,
    ImportDuplicate,
    ImportResult,
    ImportSummary,
    RowMessage,
)
from tmdash.services import duplicate_service
from tmdash.services.card_service import resolve_card
from tmdash.services.event_matcher import EventMatcher
from tmdash.services.po_service import assign_po_number
from tmdash.services.receipt_parser import ReceiptParseResult, ReceiptRow

logger = logging.getLogger(__name__)

CREATED = "created"
DUPLICATE = "duplicate"
ERROR = "error"


class ReceiptImporter:
    """One import run.

    The account and event caches live on the instance, so they are scoped to
    a single run and never shared between concurrent imports.
    """

    def __init__(self, db: Session, parsed: ReceiptParseResult):
        self.db = db
        self.rows = parsed.rows
        self.summary = ImportSummary()
        self.conflicts: list[ImportConflict] = []
        self.duplicates: list[ImportDuplicate] = []
        self.warnings = [RowMessage(row=w.row, message=w.message) for w in parsed.warnings]
        self.errors = [RowMessage(row=e.row, message=e.message) for e in parsed.errors]

        self._account_ids: dict[str, int] = {}
        self._event_ids: dict[str, Optional[int]] = {}
        self._events = EventMatcher(db)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self) -> ImportResult:
        for receipt in self.rows:
            self.process_row(receipt)
        logger.info(
            "Email CSV import: %d created, %d skipped, %d conflicts, %d errors",
            self.summary.purchases_created,
            self.summary.purchases_skipped,
            len(self.conflicts),
            len(self.errors),
        )
        return self.result()

    def iter_progress(self) -> Iterator[dict]:
        """Run the import, yielding start/progress/complete events."""
        total = len(self.rows)
        created = failed = 0
        yield {"type": "start", "total": total, "label": f"Processing {total} email receipts..."}

        for index, receipt in enumerate(self.rows, start=1):
            if self.process_row(receipt) == CREATED:
                created += 1
            else:
                failed += 1
            yield {
                "type": "progress",
                "current": index,
                "total": total,
                "label": receipt.email,
                "success": created,
                "failed": failed,
            }

        yield {
            "type": "complete",
            "current": total,
            "total": total,
            "success": created,
            "failed": failed,
            "message": f"Created {created} purchases, skipped {failed}",
            "summary": self.summary.model_dump(),
        }

    def result(self) -> ImportResult:
        return ImportResult(
            success=True,
            summary=self.summary,
            conflicts=self.conflicts,
            duplicates=self.duplicates,
            warnings=self.warnings,
            errors=self.errors,
        )

    # ------------------------------------------------------------------
    # Per-row processing
    # ------------------------------------------------------------------

    def process_row(self, receipt: ReceiptRow) -> str:
        try:
            return self._process_row(receipt)
        except Exception as exc:
            self.db.rollback()
            logger.error("Row %d (%s) failed: %s", receipt.row_number, receipt.tm_order_number, exc)
            self.errors.append(RowMessage(row=receipt.row_number, message=str(exc)))
            return ERROR

    def _process_row(self, receipt: ReceiptRow) -> str:
        duplicate = duplicate_service.find_by_order_number(self.db, receipt)
        if duplicate:
            return self._skip(duplicate)

        account_id = self._resolve_account(receipt.email)
        event_id = self._resolve_event(receipt)

        if event_id is not None:
            duplicate = duplicate_service.find_by_seats(self.db, receipt, account_id, event_id)
            if duplicate:
                return self._skip(duplicate)

        resolution = resolve_card(self.db, receipt.card_last4, account_id)

        purchase = Purchase(
            account_id=account_id,
            event_id=event_id,
            card_id=resolution.card_id,
            card_last4=receipt.card_last4 or None,
            tm_order_number=receipt.tm_order_number,
            status=PurchaseStatus.SUCCESS,
            quantity=receipt.quantity,
            price_each=receipt.total_price / receipt.quantity if receipt.quantity > 0 else None,
            total_price=receipt.total_price,
            section=receipt.section or None,
            row=receipt.row or None,
            seats=receipt.seats or None,
            attempt_count=1,
        )
        self.db.add(purchase)
        self.db.commit()
        purchase_id = purchase.id

        if resolution.linked:
            self.summary.cards_linked += 1

        self._assign_po_number(purchase_id)

        if resolution.conflict:
            self.conflicts.append(
                ImportConflict(
                    row=receipt.row_number,
                    email=receipt.email,
                    card_last4=receipt.card_last4,
                    type=resolution.conflict.type,
                    existing_account_email=resolution.conflict.existing_account_email,
                    existing_card_id=resolution.conflict.existing_card_id,
                    purchase_id=purchase_id,
                    tm_order_number=receipt.tm_order_number,
                )
            )

        self.summary.purchases_created += 1
        return CREATED

    def _skip(self, duplicate: ImportDuplicate) -> str:
        self.duplicates.append(duplicate)
        self.summary.purchases_skipped += 1
        return DUPLICATE

    def _resolve_account(self, email: str) -> int:
        account_id = self._account_ids.get(email)
        if account_id is not None:
            return account_id

        account = self.db.query(Account).filter(Account.email == email).first()
        if account is None:
            account = Account(email=email, status=AccountStatus.ACTIVE)
            self.db.add(account)
            self.db.commit()
            self.summary.accounts_created += 1
            logger.info("Created account %s", email)

        self._account_ids[email] = account.id
        return account.id

    def _resolve_event(self, receipt: ReceiptRow) -> Optional[int]:
        key = receipt.generated_event_id
        if key in self._event_ids:
            return self._event_ids[key]

        event = self._events.find(receipt.event_name, receipt.venue, receipt.event_date_raw)
        event_id = event.id if event else None
        if event_id is not None:
            self.summary.events_matched += 1
        else:
            self.warnings.append(
                RowMessage(
                    row=receipt.row_number,
                    message=f'No matching event found for "{receipt.event_name}" at {receipt.venue}',
                )
            )
        self._event_ids[key] = event_id
        return event_id

    def _assign_po_number(self, purchase_id: int) -> None:
        try:
            assign_po_number(self.db, purchase_id)
        except Exception as exc:
            logger.warning("Failed to assign PO number for purchase %s: %s", purchase_id, exc)


def record_import_run(db: Session, filename: str, result: ImportResult) -> JobRun:
    """Keep a job-history entry for a finished import."""
    details = {"filename": filename, **result.summary.model_dump()}
    job_run = JobRun(
        job_type=JobType.email_csv_import,
        status=JobStatus.completed,
        details=json.dumps(details),
        completed_at=datetime.utcnow(),
    )
    db.add(job_run)
    db.commit()
    db.refresh(job_run)
    return job_run
