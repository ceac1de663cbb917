# solarconnect/models/user.py
from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Optional
from enum import Enum

class UserRole(str, Enum):
    USER = "user"
    TECHNICIAN = "technician"
    ADMIN = "admin"

class UserOut(BaseModel):
    id: int
    username: str
    role: UserRole
    name: str
    email: EmailStr
    phone: str
    city: str
    address: Optional[str] = None
    profile_image: Optional[str] = None
    created_at: Optional[datetime] = None

class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    profile_image: Optional[str] = None

__all__ = ["UserRole", "UserOut", "UserUpdate"]
