from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator
from typing import Optional


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # some backends (SQLite) hand timestamps back without an offset
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RegisterIn(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)


class LoginIn(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenOut(BaseModel):
    token: str


class UserOut(BaseModel):
    """Full profile; never carries the password hash."""
    username: str
    first_name: str
    last_name: str
    phone: str
    join_at: datetime
    last_login_at: Optional[datetime] = None

    normalize_timestamps = field_validator('join_at', 'last_login_at')(as_utc)

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    username: str
    first_name: str
    last_name: str

    class Config:
        from_attributes = True


class UserContact(BaseModel):
    username: str
    first_name: str
    last_name: str
    phone: str

    class Config:
        from_attributes = True
