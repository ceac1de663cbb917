# solarconnect/models/contact.py
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional

class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)

class ContactRespond(BaseModel):
    response: Optional[str] = None

class ContactOut(BaseModel):
    id: int
    name: str
    email: str
    subject: str
    message: str
    responded: bool
    response: Optional[str] = None
    responded_at: Optional[datetime] = None
    responded_by: Optional[int] = None
    created_at: Optional[datetime] = None

__all__ = ["ContactCreate", "ContactRespond", "ContactOut"]
