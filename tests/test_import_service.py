"""End-to-end tests for importing parsed receipts into purchases.

Covers:
- Account creation and per-run account/event caching
- Event matching with an "unmatched" warning
- Card auto-linking and conflict records carrying the new purchase id
- Duplicates by order number and by seat tuple
- Row failures isolated from the rest of the file
- PO assignment failures never failing a row
- Streaming progress events
"""
from unittest.mock import patch

import pytest

from receipt_rows import csv_line, make_csv
from tmdash.models.account import Account
from tmdash.models.card import Card
from tmdash.models.purchase import Purchase
from tmdash.schemas.import_result import ConflictType


def _import(db, *lines):
    from tmdash.services.import_service import ReceiptImporter
    from tmdash.services.receipt_parser import parse_receipt_csv

    return ReceiptImporter(db, parse_receipt_csv(make_csv(*lines))).run()


BRUNO = dict(
    email="a@x.com",
    order="58-53758/NY1",
    event="Bruno Mars",
    venue="SoFi Stadium — Los Angeles, California",
    date="Sun · Aug 02, 2026 · 8:00 PM",
    seats="Sec 321, Row 12, Seat 25 - 26",
    card="VISA — 7119",
    price="$264.00",
)


# ---------------------------------------------------------------------------
# Single row against an empty database
# ---------------------------------------------------------------------------

class TestEmptyDatabase:
    def test_example_row(self, db):
        result = _import(db, csv_line(**BRUNO))

        assert result.success
        assert result.summary.model_dump() == {
            "purchases_created": 1,
            "purchases_skipped": 0,
            "events_matched": 0,
            "accounts_created": 1,
            "cards_linked": 0,
        }
        account = db.query(Account).one()
        assert account.email == "a@x.com"

        purchase = db.query(Purchase).one()
        assert purchase.account_id == account.id
        assert purchase.event_id is None
        assert purchase.card_id is None
        assert purchase.card_last4 == "7119"
        assert purchase.quantity == 2
        assert purchase.total_price == 264.0
        assert purchase.price_each == 132.0
        assert (purchase.section, purchase.row, purchase.seats) == ("321", "12", "25-26")
        assert purchase.status == "SUCCESS"
        assert purchase.dashboard_po_number == "000001"

        assert [w.message for w in result.warnings] == [
            'No matching event found for "Bruno Mars" at SoFi Stadium'
        ]
        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.type == ConflictType.CARD_NOT_FOUND
        assert conflict.purchase_id == purchase.id
        assert conflict.tm_order_number == "58-53758/NY1"
        assert conflict.row == 2
        assert result.errors == []

    def test_canadian_price_is_stored_in_usd(self, db):
        _import(db, csv_line(**dict(BRUNO, venue="Scotiabank Arena — Toronto, ON", price="$100.00")))
        assert db.query(Purchase).one().total_price == 72.0

    def test_row_without_card(self, db):
        result = _import(db, csv_line(**dict(BRUNO, card="Apple Pay")))
        purchase = db.query(Purchase).one()
        assert purchase.card_last4 is None
        assert result.conflicts == []

    def test_general_admission_stores_nulls(self, db):
        _import(db, csv_line(**dict(BRUNO, seats="General Admission")))
        purchase = db.query(Purchase).one()
        assert (purchase.section, purchase.row, purchase.seats, purchase.quantity) == (None, None, None, 1)


# ---------------------------------------------------------------------------
# Accounts and events
# ---------------------------------------------------------------------------

class TestAccountsAndEvents:
    def test_existing_account_is_reused(self, db, add_account):
        account = add_account("a@x.com")
        result = _import(db, csv_line(**BRUNO))
        assert result.summary.accounts_created == 0
        assert db.query(Purchase).one().account_id == account.id

    def test_account_created_once_per_email(self, db):
        result = _import(
            db,
            csv_line(**BRUNO),
            csv_line(**dict(BRUNO, order="2", seats="Sec 1, Row 1, Seat 1")),
        )
        assert result.summary.accounts_created == 1
        assert db.query(Account).count() == 1
        assert db.query(Purchase).count() == 2

    def test_matched_event_is_counted_once(self, db, add_event):
        event = add_event(
            event_name="Bruno Mars", venue="SoFi Stadium", event_date_raw="Sun · Aug 02, 2026 · 8:00 PM"
        )
        result = _import(
            db,
            csv_line(**BRUNO),
            csv_line(**dict(BRUNO, order="2", seats="Sec 1, Row 1, Seat 1")),
        )
        assert result.summary.events_matched == 1
        assert result.warnings == []
        assert {p.event_id for p in db.query(Purchase).all()} == {event.id}

    def test_unmatched_event_warns_once(self, db):
        result = _import(
            db,
            csv_line(**BRUNO),
            csv_line(**dict(BRUNO, order="2", seats="Sec 1, Row 1, Seat 1")),
        )
        assert len(result.warnings) == 1


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------

class TestCards:
    def test_unlinked_card_is_linked(self, db, add_card):
        card = add_card()
        result = _import(db, csv_line(**BRUNO))

        assert result.summary.cards_linked == 1
        assert result.conflicts == []
        account = db.query(Account).one()
        db.refresh(card)
        assert card.account_id == account.id
        assert db.query(Purchase).one().card_id == card.id

    def test_cards_of_two_other_accounts(self, db, add_account, add_card):
        one = add_account("one@example.com")
        two = add_account("two@example.com")
        first = add_card(account_id=one.id)
        add_card(card_number="5500000000007119", account_id=two.id)

        result = _import(db, csv_line(**BRUNO))

        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.type == ConflictType.CARD_ACCOUNT_MISMATCH
        assert conflict.existing_card_id == first.id
        assert conflict.existing_account_email == "one@example.com"
        purchase = db.query(Purchase).one()
        assert purchase.card_id is None
        assert conflict.purchase_id == purchase.id
        assert {c.account_id for c in db.query(Card).all()} == {one.id, two.id}

    def test_wildcard_card_cell_links_nothing(self, db, add_card):
        card = add_card()
        result = _import(db, csv_line(**dict(BRUNO, card="VISA — %")))

        db.refresh(card)
        assert card.account_id is None
        assert result.summary.cards_linked == 0
        purchase = db.query(Purchase).one()
        assert purchase.card_id is None
        assert purchase.card_last4 is None

    def test_card_cell_with_trailing_text_still_creates_purchase(self, db):
        result = _import(db, csv_line(**dict(BRUNO, card="VISA — 7119 (Apple Pay)")))

        assert result.errors == []
        assert result.summary.purchases_created == 1
        purchase = db.query(Purchase).one()
        assert purchase.card_last4 is None
        assert [w.message for w in result.warnings][0] == (
            'Could not extract card last 4 from: "VISA — 7119 (Apple Pay)"'
        )

    def test_each_conflict_points_at_its_own_purchase(self, db):
        result = _import(
            db,
            csv_line(**BRUNO),
            csv_line(**dict(BRUNO, order="2", seats="Sec 1, Row 1, Seat 1", card="VISA — 0001")),
        )
        purchases = {p.tm_order_number: p.id for p in db.query(Purchase).all()}
        assert [(c.tm_order_number, c.purchase_id) for c in result.conflicts] == [
            ("58-53758/NY1", purchases["58-53758/NY1"]),
            ("2", purchases["2"]),
        ]


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------

class TestDuplicates:
    def test_reimport_creates_nothing(self, db):
        _import(db, csv_line(**BRUNO))
        result = _import(db, csv_line(**BRUNO))

        assert db.query(Purchase).count() == 1
        assert result.summary.purchases_created == 0
        assert result.summary.purchases_skipped == 1
        assert len(result.duplicates) == 1
        assert not result.duplicates[0].has_changes
        assert result.conflicts == []

    def test_reimport_with_new_price_reports_changes(self, db):
        _import(db, csv_line(**BRUNO))
        result = _import(db, csv_line(**dict(BRUNO, price="$300.00")))

        duplicate = result.duplicates[0]
        assert duplicate.has_changes
        assert [(c.field, c.old_value, c.new_value) for c in duplicate.changes] == [
            ("total_price", "264.0", "300.0")
        ]
        assert db.query(Purchase).one().total_price == 264.0

    def test_same_seats_under_new_order_number(self, db, add_event):
        add_event(event_name="Bruno Mars", venue="SoFi Stadium")
        _import(db, csv_line(**BRUNO))
        result = _import(db, csv_line(**dict(BRUNO, order="NEW-1")))

        assert db.query(Purchase).count() == 1
        assert len(result.duplicates) == 1
        assert not result.duplicates[0].has_changes

    def test_seat_fallback_needs_a_matched_event(self, db):
        _import(db, csv_line(**BRUNO))
        _import(db, csv_line(**dict(BRUNO, order="NEW-1")))
        assert db.query(Purchase).count() == 2


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------

class TestFailures:
    def test_row_error_does_not_stop_import(self, db):
        from tmdash.services import import_service

        real = import_service.resolve_card
        calls = []

        def flaky(db_, last4, account_id):
            calls.append(last4)
            if len(calls) == 1:
                raise RuntimeError("card lookup failed")
            return real(db_, last4, account_id)

        with patch.object(import_service, "resolve_card", side_effect=flaky):
            result = _import(
                db,
                csv_line(**BRUNO),
                csv_line(**dict(BRUNO, order="2", seats="Sec 1, Row 1, Seat 1")),
            )

        assert [(e.row, e.message) for e in result.errors] == [(2, "card lookup failed")]
        assert result.summary.purchases_created == 1
        assert db.query(Purchase).one().tm_order_number == "2"

    def test_parse_errors_are_carried_into_result(self, db):
        result = _import(db, csv_line(**dict(BRUNO, email="")), csv_line(**dict(BRUNO, order="2")))
        assert [(e.row, e.message) for e in result.errors] == [(2, "Missing email address")]
        assert result.summary.purchases_created == 1

    def test_po_failure_is_swallowed(self, db):
        from tmdash.services import import_service

        with patch.object(import_service, "assign_po_number", side_effect=RuntimeError("boom")):
            result = _import(db, csv_line(**BRUNO))

        assert result.errors == []
        assert result.summary.purchases_created == 1
        assert db.query(Purchase).one().dashboard_po_number is None


# ---------------------------------------------------------------------------
# Streaming progress
# ---------------------------------------------------------------------------

class TestIterProgress:
    def test_events(self, db):
        from tmdash.services.import_service import ReceiptImporter
        from tmdash.services.receipt_parser import parse_receipt_csv

        parsed = parse_receipt_csv(make_csv(csv_line(**BRUNO), csv_line(**dict(BRUNO, email="b@x.com"))))
        _import(db, csv_line(**BRUNO))

        events = list(ReceiptImporter(db, parsed).iter_progress())
        assert [e["type"] for e in events] == ["start", "progress", "complete"]
        assert events[0]["total"] == 1
        assert events[1] == {
            "type": "progress",
            "current": 1,
            "total": 1,
            "label": "a@x.com",
            "success": 0,
            "failed": 1,
        }
        assert events[-1]["summary"]["purchases_skipped"] == 1

    @pytest.mark.parametrize("n", [1, 3])
    def test_progress_per_row(self, db, n):
        from tmdash.services.import_service import ReceiptImporter
        from tmdash.services.receipt_parser import parse_receipt_csv

        lines = [
            csv_line(**dict(BRUNO, order=f"O-{i}", seats=f"Sec 1, Row 1, Seat {i + 1}"))
            for i in range(n)
        ]
        events = list(ReceiptImporter(db, parse_receipt_csv(make_csv(*lines))).iter_progress())
        assert len(events) == n + 2
        assert events[-1]["success"] == n
        assert events[-1]["message"] == f"Created {n} purchases, skipped 0"


class TestRecordImportRun:
    def test_job_run_details(self, db):
        import json

        from tmdash.models.job import JobRun
        from tmdash.services.import_service import record_import_run

        result = _import(db, csv_line(**BRUNO))
        job_run = record_import_run(db, "receipts.csv", result)
        stored = db.query(JobRun).one()
        assert stored.id == job_run.id
        assert stored.job_type == "email_csv_import"
        assert stored.status == "completed"
        details = json.loads(stored.details)
        assert details["filename"] == "receipts.csv"
        assert details["purchases_created"] == 1
