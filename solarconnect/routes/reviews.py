# solarconnect/routes/reviews.py
from fastapi import APIRouter, Depends, status
import asyncpg

from ..database import get_db
from ..errors import NotFoundError
from ..models.review import ReviewCreate, ReviewOut, TechnicianReviews
from ..queries import review_queries, technician_queries
from ..services import rating
from ..utils.permissions import Operation, require_permission

reviews_router = APIRouter(prefix="/reviews", tags=["Reviews"])


@reviews_router.get("/technician/{technician_id}", response_model=TechnicianReviews)
async def get_technician_reviews(
    technician_id: int,
    conn: asyncpg.Connection = Depends(get_db)
):
    technician = await technician_queries.get_technician_by_id(conn, technician_id)
    if not technician:
        raise NotFoundError("Technician not found")

    reviews = await review_queries.get_technician_reviews(conn, technician_id)
    return {
        "average_rating": technician["rating"],
        "total_reviews": technician["review_count"],
        "reviews": reviews
    }


@reviews_router.get("/{review_id}", response_model=ReviewOut)
async def get_review_by_id(
    review_id: int,
    conn: asyncpg.Connection = Depends(get_db)
):
    review = await review_queries.get_review_by_id(conn, review_id)
    if not review:
        raise NotFoundError("Review not found")
    return review


@reviews_router.post("", response_model=ReviewOut, status_code=status.HTTP_201_CREATED)
async def create_review(
    review: ReviewCreate,
    current_user: dict = Depends(require_permission(Operation.CREATE_REVIEW)),
    conn: asyncpg.Connection = Depends(get_db)
):
    return await rating.add_review(conn, review.model_dump(exclude_unset=True), reviewer=current_user)


__all__ = ["reviews_router"]
