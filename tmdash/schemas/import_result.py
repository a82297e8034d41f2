"""Pydantic schemas for the email-receipt CSV import result payload."""
import enum
from typing import Optional, List
from pydantic import BaseModel


class ConflictType(str, enum.Enum):
    CARD_NOT_FOUND = "CARD_NOT_FOUND"
    CARD_AMBIGUOUS = "CARD_AMBIGUOUS"
    CARD_ACCOUNT_MISMATCH = "CARD_ACCOUNT_MISMATCH"


class RowMessage(BaseModel):
    row: int
    message: str


class ImportConflict(BaseModel):
    row: int
    email: str
    card_last4: str
    type: ConflictType
    existing_account_email: Optional[str] = None
    existing_card_id: Optional[int] = None
    purchase_id: Optional[int] = None
    tm_order_number: str


class FieldChange(BaseModel):
    field: str
    old_value: str
    new_value: str


class ImportDuplicate(BaseModel):
    row: int
    tm_order_number: str
    existing_purchase_id: int
    has_changes: bool
    changes: Optional[List[FieldChange]] = None


class ImportSummary(BaseModel):
    purchases_created: int = 0
    purchases_skipped: int = 0
    events_matched: int = 0
    accounts_created: int = 0
    cards_linked: int = 0


class ImportResult(BaseModel):
    success: bool = True
    summary: ImportSummary
    conflicts: List[ImportConflict] = []
    duplicates: List[ImportDuplicate] = []
    warnings: List[RowMessage] = []
    errors: List[RowMessage] = []


class DuplicateFieldUpdates(BaseModel):
    quantity: Optional[int] = None
    total_price: Optional[float] = None
    section: Optional[str] = None
    row: Optional[str] = None
    seats: Optional[str] = None


class DuplicateUpdate(BaseModel):
    purchase_id: int
    updates: DuplicateFieldUpdates


class DuplicateUpdateRequest(BaseModel):
    updates: List[DuplicateUpdate]


class DuplicateUpdateError(BaseModel):
    purchase_id: int
    error: str


class DuplicateUpdateResponse(BaseModel):
    success: bool = True
    updated: int
    errors: Optional[List[DuplicateUpdateError]] = None
