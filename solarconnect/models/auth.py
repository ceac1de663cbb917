# solarconnect/models/auth.py
from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional

from .user import UserOut

class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserOut

class UserLogin(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class UserRegister(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)
    confirm_password: str = Field(..., min_length=1)
    # Admin accounts are provisioned out of band, never self-registered
    role: Literal["user", "technician"] = "user"
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    address: Optional[str] = None
    profile_image: Optional[str] = None

class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)
    confirm_password: str = Field(..., min_length=1)

__all__ = ["Token", "UserLogin", "UserRegister", "ChangePasswordRequest"]
