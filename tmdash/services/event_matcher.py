"""Match receipt event details to events already known to the dashboard.

A candidate event matches a receipt when all three predicates hold:

- Name:  either normalised name contains the other, or both share the same
         first three words (receipts often carry "… Pre-show Party" suffixes).
- Venue: either normalised venue contains the other (venue normalisation keeps
         only the text before the first comma or em-dash).
- Date:  same calendar day when both dates are parsed, otherwise the
         ``<Month> <Day>, <Year>`` parts of the raw strings must agree.

The first matching candidate (in id order) wins; there is no scoring.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from tmdash.services.receipt_parser import DATE_SEPARATOR, parse_date_text

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from tmdash.models.event import Event

_RAW_DATE_RE = re.compile(r"(\w+)\s+(\d+),?\s+(\d{4})")


def normalize_event_name(name: str | None) -> str:
    """Collapse newlines and runs of whitespace, lower-case."""
    if not name:
        return ""
    return re.sub(r"\s+", " ", name).strip().lower()


def normalize_venue(venue: str | None) -> str:
    if not venue:
        return ""
    return re.split(r"\s*[—,]\s*", venue)[0].strip().lower()


def parse_receipt_date(raw: str | None) -> Optional[datetime]:
    """Parse ``"Sun · Aug 02, 2026 · 8:00 PM"``; a string without a day-of-week prefix is unparsed."""
    if not raw:
        return None
    parts = raw.split(DATE_SEPARATOR)
    if len(parts) < 2:
        return None
    return parse_date_text(" ".join(p.strip() for p in parts[1:]))


def _name_matches(receipt_name: str, event_name: str) -> bool:
    if event_name in receipt_name or receipt_name in event_name:
        return True
    return event_name.split(" ")[:3] == receipt_name.split(" ")[:3]


def _venue_matches(receipt_venue: str, event_venue: str) -> bool:
    return event_venue in receipt_venue or receipt_venue in event_venue


def _raw_dates_match(receipt_raw: str, event_raw: str) -> bool:
    a = _RAW_DATE_RE.search(receipt_raw or "")
    b = _RAW_DATE_RE.search(event_raw or "")
    if not a or not b:
        return False
    return (
        a.group(1).lower() == b.group(1).lower()
        and int(a.group(2)) == int(b.group(2))
        and int(a.group(3)) == int(b.group(3))
    )


def event_matches(
    event: "Event",
    name: str,
    venue: str,
    date_raw: str,
    parsed_date: Optional[datetime],
) -> bool:
    """Return True if *event* satisfies the name, venue and date predicates.

    *name* and *venue* must already be normalised.
    """
    if not _name_matches(name, normalize_event_name(event.event_name)):
        return False
    if not _venue_matches(venue, normalize_venue(event.venue)):
        return False
    if parsed_date is not None and event.event_date is not None:
        return parsed_date.date() == event.event_date.date()
    if event.event_date_raw:
        return _raw_dates_match(date_raw, event.event_date_raw)
    return False


class EventMatcher:
    """Linear scan over every persisted event, loaded once per import run.

    Candidates are loaded as plain column rows so that commits made during
    the import do not expire them.
    """

    def __init__(self, db: "Session"):
        self._db = db
        self._candidates: Optional[list] = None

    @property
    def candidates(self) -> list:
        if self._candidates is None:
            from tmdash.models.event import Event

            self._candidates = (
                self._db.query(
                    Event.id,
                    Event.event_name,
                    Event.venue,
                    Event.event_date,
                    Event.event_date_raw,
                )
                .order_by(Event.id)
                .all()
            )
        return self._candidates

    def find(self, event_name: str, venue: str, event_date_raw: str):
        """Return the first matching candidate row (with ``.id``), or None."""
        name = normalize_event_name(event_name)
        venue_key = normalize_venue(venue)
        parsed_date = parse_receipt_date(event_date_raw)
        for event in self.candidates:
            if event_matches(event, name, venue_key, event_date_raw, parsed_date):
                return event
        return None
