"""Parser for scraped Ticketmaster email-receipt CSV exports.

Expected header (extra columns such as ``Template ID`` are ignored)::

    Mail Credentials,ticketmaster order number,event name,event date,
    event venue and location,seat information,card used,total price

Row-level problems never raise: rows that cannot be used are reported in
``errors`` and skipped, recoverable oddities are reported in ``warnings``.
Only a file without a header row (or without the required columns) raises
``ValueError`` so the router can reject the upload before any DB write.
"""
import csv
import hashlib
import io
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


EMAIL_COL = "Mail Credentials"
ORDER_COL = "ticketmaster order number"
EVENT_NAME_COL = "event name"
EVENT_DATE_COL = "event date"
VENUE_COL = "event venue and location"
SEAT_COL = "seat information"
CARD_COL = "card used"
PRICE_COL = "total price"

REQUIRED_COLUMNS = (EMAIL_COL, ORDER_COL, EVENT_NAME_COL)

# Approximate; receipts for Canadian venues are charged in CAD
CAD_TO_USD_RATE = 0.72

CANADIAN_PROVINCES = (
    "Ontario",
    "Quebec",
    "British Columbia",
    "Alberta",
    "Manitoba",
    "Saskatchewan",
    "Nova Scotia",
    "New Brunswick",
    "Newfoundland",
    "Prince Edward Island",
    "Northwest Territories",
    "Yukon",
    "Nunavut",
)
CANADIAN_PROVINCE_CODES = (
    "ON", "QC", "BC", "AB", "MB", "SK", "NS", "NB", "NL", "PE", "NT", "YT", "NU",
)
_PROVINCE_CODE_RE = re.compile(
    r"\b(?:" + "|".join(CANADIAN_PROVINCE_CODES) + r")\b"
)

DATE_SEPARATOR = " · "
_EVENT_DATE_FORMATS = (
    "%b %d, %Y %I:%M %p",
    "%B %d, %Y %I:%M %p",
    "%b %d, %Y",
    "%B %d, %Y",
)

_ORDER_RE = re.compile(r"Order\s*#?\s*(.+)", re.IGNORECASE)
_SECTION_RE = re.compile(r"Sec\s+([^,]+)", re.IGNORECASE)
_ROW_RE = re.compile(r"Row\s+([^,]+)", re.IGNORECASE)
_SEAT_RE = re.compile(r"Seat\s+(\d+)\s*-?\s*(\d*)", re.IGNORECASE)
_CARD_SPLIT_RE = re.compile(r"\s*[—-]\s*")
_LAST4_RE = re.compile(r"\d{4}")
_TRAILING_LAST4_RE = re.compile(r"(\d{4})\s*$")


@dataclass
class ReceiptRow:
    """One logical CSV row, parsed.  Lives only for the duration of an import."""

    row_number: int
    email: str
    tm_order_number: str
    event_name: str
    event_date_raw: str
    event_date: Optional[datetime]
    day_of_week: Optional[str]
    venue: str
    section: str
    row: str
    seats: str
    quantity: int
    card_type: str
    card_last4: str
    total_price: float
    original_currency: str
    generated_event_id: str


@dataclass
class ParseIssue:
    row: int
    message: str
    field: Optional[str] = None


@dataclass
class ReceiptParseResult:
    rows: list[ReceiptRow] = field(default_factory=list)
    errors: list[ParseIssue] = field(default_factory=list)
    warnings: list[ParseIssue] = field(default_factory=list)
    total: int = 0

    @property
    def stats(self) -> dict:
        return {"total": self.total, "parsed": len(self.rows), "errored": len(self.errors)}


def merge_multiline_rows(content: str) -> list[str]:
    """Join physical lines into logical CSV rows.

    A line with an odd number of ``"`` characters opens a quoted field that
    continues on the next line; lines are accumulated (re-joined with ``\\n``)
    until the running quote count is even again.
    """
    result = []
    current: Optional[str] = None

    for line in content.split("\n"):
        if current is None:
            if line.count('"') % 2 == 0:
                result.append(line)
            else:
                current = line
        else:
            current += "\n" + line
            if current.count('"') % 2 == 0:
                result.append(current)
                current = None

    if current is not None:
        result.append(current)
    return result


def parse_receipt_csv(content: str) -> ReceiptParseResult:
    """Parse a receipt CSV export into :class:`ReceiptRow` objects.

    Raises:
        ValueError: when the file has no header row or lacks a required column.
    """
    content = content.lstrip("\ufeff")
    logical_rows = merge_multiline_rows(content)
    reader = csv.DictReader(io.StringIO("\n".join(logical_rows)))

    if reader.fieldnames is None:
        raise ValueError("CSV file is empty or has no header row")
    reader.fieldnames = [h.strip() for h in reader.fieldnames]
    missing = [c for c in REQUIRED_COLUMNS if c not in reader.fieldnames]
    if missing:
        raise ValueError(
            f"CSV is missing required column(s) {missing}; found headers: {reader.fieldnames}"
        )

    result = ReceiptParseResult()
    seen_order_numbers: set[str] = set()
    row_number = 1

    for raw_row in reader:
        row = {k: (v or "").strip() for k, v in raw_row.items() if k is not None}
        if not any(row.values()):
            continue
        row_number += 1
        result.total += 1

        email = row.get(EMAIL_COL, "").lower()
        if not email:
            result.errors.append(ParseIssue(row_number, "Missing email address", EMAIL_COL))
            continue

        tm_order_number = parse_order_number(row.get(ORDER_COL, ""))
        if not tm_order_number:
            result.errors.append(ParseIssue(row_number, "Missing order number", ORDER_COL))
            continue

        if tm_order_number in seen_order_numbers:
            result.warnings.append(
                ParseIssue(
                    row_number,
                    f"Duplicate order number {tm_order_number} in CSV - skipping",
                )
            )
            continue
        seen_order_numbers.add(tm_order_number)

        event_name = row.get(EVENT_NAME_COL, "")
        if not event_name:
            result.errors.append(ParseIssue(row_number, "Missing event name", EVENT_NAME_COL))
            continue

        event_date_raw = row.get(EVENT_DATE_COL, "")
        venue_raw = row.get(VENUE_COL, "")
        venue = parse_venue(venue_raw)

        seat_raw = row.get(SEAT_COL, "")
        section, seat_row, seats, quantity = parse_seat_info(seat_raw)
        if not section and seat_raw:
            result.warnings.append(
                ParseIssue(row_number, f'Could not parse seat info: "{seat_raw}"')
            )

        card_raw = row.get(CARD_COL, "")
        card_type, card_last4 = parse_card_used(card_raw)
        if not card_last4:
            result.warnings.append(
                ParseIssue(row_number, f'Could not extract card last 4 from: "{card_raw}"')
            )

        raw_price = parse_price(row.get(PRICE_COL, ""))
        if is_canadian_venue(venue_raw):
            original_currency = "CAD"
            total_price = convert_cad_to_usd(raw_price)
        else:
            original_currency = "USD"
            total_price = raw_price

        event_date, day_of_week = parse_event_date(event_date_raw)

        result.rows.append(
            ReceiptRow(
                row_number=row_number,
                email=email,
                tm_order_number=tm_order_number,
                event_name=event_name,
                event_date_raw=event_date_raw,
                event_date=event_date,
                day_of_week=day_of_week,
                venue=venue,
                section=section,
                row=seat_row,
                seats=seats,
                quantity=quantity,
                card_type=card_type,
                card_last4=card_last4,
                total_price=total_price,
                original_currency=original_currency,
                generated_event_id=generate_event_id(event_name, event_date_raw, venue),
            )
        )

    return result


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------

def parse_order_number(raw: str) -> str:
    """``"Order # 58-53758/NY1"`` → ``"58-53758/NY1"``; unlabelled values pass through."""
    if not raw:
        return ""
    m = _ORDER_RE.search(raw)
    if m:
        return m.group(1).strip()
    return raw.strip()


def parse_price(raw: str) -> float:
    """``"Total:  $1,234.56"`` → ``1234.56``; anything unparseable is 0."""
    if not raw or not raw.strip():
        return 0.0
    cleaned = re.sub(r"Total:\s*", "", raw, flags=re.IGNORECASE)
    cleaned = re.sub(r"[$,]", "", cleaned).strip()
    m = re.match(r"[-+]?(\d+(\.\d*)?|\.\d+)", cleaned)
    if not m:
        return 0.0
    return float(m.group(0))


def parse_seat_info(raw: str) -> tuple[str, str, str, int]:
    """Return ``(section, row, seats, quantity)`` from ``"Sec 321, Row 12, Seat 25 - 26"``."""
    section = row = seats = ""
    quantity = 1
    if not raw:
        return section, row, seats, quantity

    m = _SECTION_RE.search(raw)
    if m:
        section = m.group(1).strip()
    m = _ROW_RE.search(raw)
    if m:
        row = m.group(1).strip()
    m = _SEAT_RE.search(raw)
    if m:
        start = int(m.group(1))
        end = int(m.group(2)) if m.group(2) else start
        if end > start:
            seats = f"{start}-{end}"
            quantity = end - start + 1
        else:
            seats = str(start)
    return section, row, seats, quantity


def parse_card_used(raw: str) -> tuple[str, str]:
    """Return ``(card_type, last4)`` from ``"VISA — 7119"``.

    ``last4`` is always four digits or empty.
    """
    if not raw:
        return "", ""
    card_type = ""
    parts = _CARD_SPLIT_RE.split(raw, maxsplit=1)
    if len(parts) == 2:
        card_type = parts[0].strip().upper()
        if _LAST4_RE.fullmatch(parts[1].strip()):
            return card_type, parts[1].strip()
    m = _TRAILING_LAST4_RE.search(raw)
    if m:
        return card_type, m.group(1)
    return card_type, ""


def parse_venue(raw: str) -> str:
    """``"MetLife Stadium — East Rutherford, New Jersey"`` → ``"MetLife Stadium"``."""
    if not raw:
        return ""
    head = re.split(r"\s*—\s*", raw)[0].strip()
    return head or raw.strip()


def parse_event_date(raw: str) -> tuple[Optional[datetime], Optional[str]]:
    """Split ``"Sun · Aug 02, 2026 · 8:00 PM"`` into (datetime, day-of-week).

    The parsed datetime is ``None`` when the remainder is not a recognisable date.
    """
    if not raw:
        return None, None
    parts = raw.split(DATE_SEPARATOR)
    day_of_week = parts[0].strip() or None
    date_str = " ".join(p.strip() for p in parts[1:]).strip()
    return parse_date_text(date_str), day_of_week


def parse_date_text(value: str) -> Optional[datetime]:
    if not value:
        return None
    value = re.sub(r"\s+", " ", value)
    for fmt in _EVENT_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def is_canadian_venue(venue_and_location: str) -> bool:
    if not venue_and_location:
        return False
    upper = venue_and_location.upper()
    if any(p.upper() in upper for p in CANADIAN_PROVINCES):
        return True
    return _PROVINCE_CODE_RE.search(venue_and_location) is not None


def convert_cad_to_usd(amount: float) -> float:
    return round(amount * CAD_TO_USD_RATE, 2)


def generate_event_id(event_name: str, event_date: str, venue: str) -> str:
    """Deterministic 16-char key for (name, date, venue); the time of day is ignored."""
    name = event_name.lower().strip()
    venue_key = venue.lower().strip()
    date_part = DATE_SEPARATOR.join(event_date.split(DATE_SEPARATOR)[:2]).strip() or event_date
    digest = hashlib.md5(f"{name}|{date_part}|{venue_key}".encode()).hexdigest()
    return digest[:16].upper()
