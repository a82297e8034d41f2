from datetime import datetime
from pydantic import BaseModel, field_validator


class AccountCreate(BaseModel):
    email: str
    status: str = "ACTIVE"

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class AccountResponse(BaseModel):
    id: int
    email: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}
