from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from tmdash.database import get_db
from tmdash.models.account import Account
from tmdash.schemas.account import AccountCreate, AccountResponse

router = APIRouter()


@router.get("", response_model=List[AccountResponse])
def list_accounts(db: Session = Depends(get_db)):
    return db.query(Account).order_by(Account.email).all()


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(account: AccountCreate, db: Session = Depends(get_db)):
    existing = db.query(Account).filter(Account.email == account.email).first()
    if existing:
        raise HTTPException(status_code=409, detail="Account with that email already exists")
    db_account = Account(**account.model_dump())
    db.add(db_account)
    db.commit()
    db.refresh(db_account)
    return db_account
