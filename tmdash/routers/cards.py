from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from tmdash.database import get_db
from tmdash.models.account import Account
from tmdash.models.card import Card
from tmdash.schemas.card import CardCreate, CardUpdate, CardResponse
from tmdash.services.card_service import link_card_to_account, soft_delete_card

router = APIRouter()


def _get_card(card_id: int, db: Session) -> Card:
    card = db.query(Card).filter(Card.id == card_id, Card.deleted_at.is_(None)).first()
    if not card:
        raise HTTPException(status_code=404, detail="Card not found")
    return card


def _check_account(account_id: Optional[int], db: Session) -> None:
    if account_id is not None and not db.query(Account).filter(Account.id == account_id).first():
        raise HTTPException(status_code=404, detail="Account not found")


@router.get("", response_model=List[CardResponse])
def list_cards(account_id: Optional[int] = None, db: Session = Depends(get_db)):
    q = db.query(Card).filter(Card.deleted_at.is_(None))
    if account_id is not None:
        q = q.filter(Card.account_id == account_id)
    return q.order_by(Card.id).all()


@router.post("", response_model=CardResponse, status_code=201)
def create_card(card: CardCreate, db: Session = Depends(get_db)):
    _check_account(card.account_id, db)
    db_card = Card(**card.model_dump())
    db.add(db_card)
    db.commit()
    db.refresh(db_card)
    return db_card


@router.patch("/{card_id}", response_model=CardResponse)
def update_card(card_id: int, card: CardUpdate, db: Session = Depends(get_db)):
    """Edit a card; setting ``account_id`` is the operator override for conflicts."""
    db_card = _get_card(card_id, db)
    update_data = card.model_dump(exclude_unset=True)
    account_id = update_data.pop("account_id", None)
    for key, value in update_data.items():
        setattr(db_card, key, value)
    if account_id is not None:
        _check_account(account_id, db)
        return link_card_to_account(db, db_card, account_id)
    db.commit()
    db.refresh(db_card)
    return db_card


@router.delete("/{card_id}", status_code=204)
def delete_card(card_id: int, db: Session = Depends(get_db)):
    soft_delete_card(db, _get_card(card_id, db))
