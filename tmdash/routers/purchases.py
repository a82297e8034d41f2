from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from tmdash.database import get_db
from tmdash.models.card import Card
from tmdash.models.event import Event
from tmdash.models.purchase import Purchase, PurchaseStatus
from tmdash.schemas.purchase import (
    PurchasePage,
    PurchaseResponse,
    PurchaseUpdate,
    RelinkResponse,
    RelinkStats,
)
from tmdash.services.relink_service import relink_purchases, relink_stats

router = APIRouter()


@router.get("", response_model=PurchasePage)
def list_purchases(
    account_id: Optional[int] = None,
    event_id: Optional[int] = None,
    status: str = "",
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    q = db.query(Purchase)
    if account_id is not None:
        q = q.filter(Purchase.account_id == account_id)
    if event_id is not None:
        q = q.filter(Purchase.event_id == event_id)
    if status and status != "all":
        q = q.filter(Purchase.status == status)
    total = q.count()
    items = q.order_by(Purchase.created_at.desc(), Purchase.id.desc()).offset(skip).limit(limit).all()
    return PurchasePage(total=total, items=items)


@router.get("/relink-cards", response_model=RelinkStats)
def get_relink_stats(db: Session = Depends(get_db)):
    """How many purchases are still missing a card link."""
    return relink_stats(db)


@router.post("/relink-cards", response_model=RelinkResponse)
def relink_cards(db: Session = Depends(get_db)):
    """Link purchases without a card to the single matching card of their account."""
    return relink_purchases(db)


@router.get("/{purchase_id}", response_model=PurchaseResponse)
def get_purchase(purchase_id: int, db: Session = Depends(get_db)):
    purchase = db.query(Purchase).filter(Purchase.id == purchase_id).first()
    if not purchase:
        raise HTTPException(status_code=404, detail="Purchase not found")
    return purchase


@router.patch("/{purchase_id}", response_model=PurchaseResponse)
def update_purchase(purchase_id: int, payload: PurchaseUpdate, db: Session = Depends(get_db)):
    purchase = db.query(Purchase).filter(Purchase.id == purchase_id).first()
    if not purchase:
        raise HTTPException(status_code=404, detail="Purchase not found")

    update_data = payload.model_dump(exclude_unset=True)
    if "status" in update_data:
        try:
            update_data["status"] = PurchaseStatus(update_data["status"])
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Invalid status: {update_data['status']}")
    if update_data.get("card_id") is not None:
        if not db.query(Card).filter(Card.id == update_data["card_id"]).first():
            raise HTTPException(status_code=404, detail="Card not found")
    if update_data.get("event_id") is not None:
        if not db.query(Event).filter(Event.id == update_data["event_id"]).first():
            raise HTTPException(status_code=404, detail="Event not found")

    for key, value in update_data.items():
        setattr(purchase, key, value)
    if "total_price" in update_data or "quantity" in update_data:
        if purchase.quantity and purchase.total_price is not None:
            purchase.price_each = purchase.total_price / purchase.quantity
    db.commit()
    db.refresh(purchase)
    return purchase
