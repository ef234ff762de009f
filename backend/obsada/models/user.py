from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator


class Role(str, Enum):
    owner = "owner"
    admin = "admin"
    referee = "referee"
    observer = "observer"


class UserInDB(BaseModel):
    """Full user document as stored in MongoDB."""
    email: EmailStr
    hashed_password: str
    role: Role
    phone_number: str
    first_name: str
    last_name: str
    created_at: datetime
    updated_at: datetime


def _normalize_phone(v: str) -> str:
    v = v.replace(" ", "").replace("-", "")
    if not v.lstrip("+").isdigit():
        raise ValueError("Phone number may only contain digits and a leading '+'.")
    return v


class UserCreate(BaseModel):
    """Request body for creating an official or administrator."""
    email: EmailStr
    password: str
    role: Role
    phone_number: str
    first_name: str
    last_name: str

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Password must be at least 10 characters long.")
        return v

    @field_validator("phone_number")
    @classmethod
    def phone_format(cls, v: str) -> str:
        return _normalize_phone(v)


class UserUpdate(BaseModel):
    """Request body for updating contact data. Role changes are not allowed."""
    email: EmailStr
    phone_number: str
    first_name: str
    last_name: str

    @field_validator("phone_number")
    @classmethod
    def phone_format(cls, v: str) -> str:
        return _normalize_phone(v)


class UserLogin(BaseModel):
    """Request body for login."""
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Public user data returned to the client."""
    id: str
    email: str
    role: Role
    phone_number: str
    first_name: str
    last_name: str
    created_at: Optional[datetime] = None


def user_to_response(doc: dict) -> UserResponse:
    return UserResponse(
        id=str(doc["_id"]),
        email=doc["email"],
        role=doc["role"],
        phone_number=doc.get("phone_number", ""),
        first_name=doc.get("first_name", ""),
        last_name=doc.get("last_name", ""),
        created_at=doc.get("created_at"),
    )


def full_name(doc: dict) -> str:
    return f"{doc.get('first_name', '')} {doc.get('last_name', '')}"
