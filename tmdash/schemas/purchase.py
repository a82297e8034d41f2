from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel


class PurchaseUpdate(BaseModel):
    card_id: Optional[int] = None
    event_id: Optional[int] = None
    quantity: Optional[int] = None
    total_price: Optional[float] = None
    section: Optional[str] = None
    row: Optional[str] = None
    seats: Optional[str] = None
    status: Optional[str] = None


class PurchaseResponse(BaseModel):
    id: int
    account_id: int
    event_id: Optional[int] = None
    card_id: Optional[int] = None
    card_last4: Optional[str] = None
    tm_order_number: Optional[str] = None
    dashboard_po_number: Optional[str] = None
    status: str
    quantity: int
    price_each: Optional[float] = None
    total_price: Optional[float] = None
    section: Optional[str] = None
    row: Optional[str] = None
    seats: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PurchasePage(BaseModel):
    total: int
    items: List[PurchaseResponse]


class RelinkBreakdown(BaseModel):
    no_card_last4: int = 0
    no_matching_card: int = 0
    multiple_matches: int = 0
    no_account_cards: int = 0


class RelinkResponse(BaseModel):
    success: bool = True
    purchases_without_cards: int
    linked: int
    not_linked: int
    breakdown: RelinkBreakdown
    message: str


class RelinkStatsBreakdown(BaseModel):
    unlinked_success: int
    unlinked_failed: int
    with_card_last4: int
    without_card_last4: int


class RelinkStats(BaseModel):
    total: int
    with_cards: int
    without_cards: int
    breakdown: RelinkStatsBreakdown
    percent_linked: int
