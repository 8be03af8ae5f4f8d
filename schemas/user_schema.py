from pydantic import BaseModel, validator
from typing import Optional
from datetime import datetime

from schemas.base_schema import CamelModel

class UserBase(CamelModel):
    email: str
    name: str

class UserCreate(UserBase):
    password: str

    @validator('email')
    def validate_email(cls, v):
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError('Email must be a valid address')
        return v.strip().lower()

class UserResponse(UserBase):
    id: int
    is_admin: bool = False
    created_at: Optional[datetime] = None

class UserLogin(BaseModel):
    email: str
    password: str

class UserResponseWithToken(UserResponse):
    access_token: str
    token_type: str = "bearer"

class AdminClaimRequest(CamelModel):
    email: str
    is_admin: bool

class AdminClaimResponse(CamelModel):
    success: bool
    message: str
