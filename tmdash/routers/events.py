from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from tmdash.database import get_db
from tmdash.models.event import Event
from tmdash.schemas.event import EventCreate, EventResponse

router = APIRouter()


@router.get("", response_model=List[EventResponse])
def list_events(db: Session = Depends(get_db)):
    return db.query(Event).order_by(Event.id).all()


@router.post("", response_model=EventResponse, status_code=201)
def create_event(event: EventCreate, db: Session = Depends(get_db)):
    """Register an event so that imported receipts can be matched to it."""
    existing = db.query(Event).filter(Event.tm_event_id == event.tm_event_id).first()
    if existing:
        raise HTTPException(status_code=409, detail="Event with that Ticketmaster id already exists")
    db_event = Event(**event.model_dump())
    db.add(db_event)
    db.commit()
    db.refresh(db_event)
    return db_event
