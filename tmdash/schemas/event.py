from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class EventBase(BaseModel):
    tm_event_id: str
    event_name: str
    artist: Optional[str] = None
    venue: Optional[str] = None
    event_date: Optional[datetime] = None
    event_date_raw: Optional[str] = None


class EventCreate(EventBase):
    pass


class EventResponse(EventBase):
    id: int
    created_at: datetime

    model_config = {"from_attributes": True}
