from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class CardBase(BaseModel):
    card_number: str
    card_type: Optional[str] = None
    account_id: Optional[int] = None


class CardCreate(CardBase):
    pass


class CardUpdate(BaseModel):
    card_type: Optional[str] = None
    account_id: Optional[int] = None


class CardResponse(CardBase):
    id: int
    last4: str
    deleted_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}
