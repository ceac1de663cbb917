# solarconnect/models/service_request.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum

class ServiceType(str, Enum):
    INSTALLATION = "installation"
    MAINTENANCE = "maintenance"
    ASSESSMENT = "assessment"
    CONSULTATION = "consultation"

class PropertyType(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    INDUSTRIAL = "industrial"
    GOVERNMENT = "government"

class ServiceRequestStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PAID = "paid"

class ServiceRequestCreate(BaseModel):
    service_type: ServiceType
    property_type: PropertyType
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    technician_id: Optional[int] = Field(None, gt=0)
    price: Optional[int] = Field(None, gt=0, description="Price in SAR")

class ServiceRequestOut(BaseModel):
    id: int
    user_id: int
    technician_id: Optional[int] = None
    service_type: ServiceType
    property_type: PropertyType
    title: str
    description: str
    address: str
    city: str
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    status: ServiceRequestStatus
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    price: Optional[int] = None
    is_paid: bool
    payment_intent_id: Optional[str] = None
    created_at: Optional[datetime] = None

class StatusUpdate(BaseModel):
    status: ServiceRequestStatus

class TechnicianAssignment(BaseModel):
    technician_id: int = Field(..., gt=0)

class PriceUpdate(BaseModel):
    price: int = Field(..., gt=0, description="Price in SAR")

class PaymentUpdate(BaseModel):
    is_paid: bool = True
    payment_intent_id: Optional[str] = None

class PaymentIntentOut(BaseModel):
    client_secret: str
    payment_intent_id: str

__all__ = [
    "ServiceType",
    "PropertyType",
    "ServiceRequestStatus",
    "ServiceRequestCreate",
    "ServiceRequestOut",
    "StatusUpdate",
    "TechnicianAssignment",
    "PriceUpdate",
    "PaymentUpdate",
    "PaymentIntentOut",
]
