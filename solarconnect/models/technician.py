# solarconnect/models/technician.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime


def _check_coordinate(value: Optional[str], limit: float) -> Optional[str]:
    if value is None:
        return value
    try:
        number = float(value)
    except ValueError:
        raise ValueError("Coordinate must be a decimal number")
    if not -limit <= number <= limit:
        raise ValueError(f"Coordinate must be between -{limit:g} and {limit:g}")
    return value


class TechnicianCreate(BaseModel):
    # Defaults to the caller; admins may create a profile for another user
    user_id: Optional[int] = Field(None, gt=0)
    specialty: str = Field(..., min_length=1)
    experience: str = Field(..., min_length=1)
    certifications: str
    bio: str
    available: bool = True
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    service_radius: int = Field(25, gt=0, description="Service radius in km")
    installation_price: int = Field(500, ge=0)
    maintenance_price: int = Field(300, ge=0)
    assessment_price: int = Field(200, ge=0)

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v):
        return _check_coordinate(v, 90)

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v):
        return _check_coordinate(v, 180)


class TechnicianUpdate(BaseModel):
    specialty: Optional[str] = None
    experience: Optional[str] = None
    certifications: Optional[str] = None
    bio: Optional[str] = None
    available: Optional[bool] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    service_radius: Optional[int] = Field(None, gt=0)
    installation_price: Optional[int] = Field(None, ge=0)
    maintenance_price: Optional[int] = Field(None, ge=0)
    assessment_price: Optional[int] = Field(None, ge=0)

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v):
        return _check_coordinate(v, 90)

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v):
        return _check_coordinate(v, 180)


class TechnicianAvailability(BaseModel):
    available: bool


class TechnicianOut(BaseModel):
    id: int
    user_id: int
    specialty: str
    experience: str
    certifications: str
    bio: str
    available: bool
    rating: Optional[float] = None
    review_count: int = 0
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    service_radius: int
    installation_price: int
    maintenance_price: int
    assessment_price: int
    created_at: Optional[datetime] = None
    # Joined from the owning user
    name: str
    email: str
    phone: str
    city: str
    profile_image: Optional[str] = None


class NearbyTechnician(TechnicianOut):
    distance_km: float = Field(..., description="Distance from search location in km")


__all__ = [
    "TechnicianCreate",
    "TechnicianUpdate",
    "TechnicianAvailability",
    "TechnicianOut",
    "NearbyTechnician",
]
