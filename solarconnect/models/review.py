# solarconnect/models/review.py
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime

class ReviewCreate(BaseModel):
    technician_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5, description="Rating between 1 and 5")
    comment: str = Field(..., min_length=1)
    service_request_id: Optional[int] = Field(None, gt=0)
    # Filled from the reviewer / service request when omitted
    user_name: Optional[str] = None
    service_type: Optional[str] = None

class ReviewOut(BaseModel):
    id: int
    technician_id: int
    user_id: Optional[int] = None
    service_request_id: Optional[int] = None
    user_name: str
    service_type: str
    rating: int
    comment: str
    created_at: Optional[datetime] = None

class TechnicianReviews(BaseModel):
    average_rating: Optional[float]
    total_reviews: int
    reviews: list[ReviewOut]

__all__ = ["ReviewCreate", "ReviewOut", "TechnicianReviews"]
