from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from .users import UserContact, as_utc


class MessageIn(BaseModel):
    to_username: str = Field(..., min_length=1)
    body: str


class MessageOut(BaseModel):
    id: int
    body: str
    sent_at: datetime
    read_at: Optional[datetime] = None
    from_user: UserContact
    to_user: UserContact

    normalize_timestamps = field_validator('sent_at', 'read_at')(as_utc)

    class Config:
        from_attributes = True


class SentMessageOut(BaseModel):
    id: int
    to_user: UserContact
    body: str
    sent_at: datetime
    read_at: Optional[datetime] = None

    normalize_timestamps = field_validator('sent_at', 'read_at')(as_utc)

    class Config:
        from_attributes = True


class ReceivedMessageOut(BaseModel):
    id: int
    from_user: UserContact
    body: str
    sent_at: datetime
    read_at: Optional[datetime] = None

    normalize_timestamps = field_validator('sent_at', 'read_at')(as_utc)

    class Config:
        from_attributes = True


class ReadReceiptOut(BaseModel):
    id: int
    read_at: datetime

    normalize_timestamps = field_validator('read_at')(as_utc)
