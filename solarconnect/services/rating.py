# solarconnect/services/rating.py
"""Technician rating aggregation.

A technician's ``rating`` is the plain running mean of every review ever
submitted, maintained incrementally from ``(rating, review_count)``.  The
review insert and the aggregate update happen in one transaction; this
module is the only writer of either.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

import asyncpg
from pydantic import ValidationError as PydanticValidationError

from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..models.review import ReviewCreate
from ..queries import review_queries, service_request_queries, technician_queries
from .lifecycle import describe_validation_error

logger = logging.getLogger(__name__)


def compute_rating(
    rating: Optional[float],
    review_count: Optional[int],
    new_rating: int
) -> Tuple[float, int]:
    """Fold ``new_rating`` into the running mean; returns ``(rating, count)``."""
    count = review_count or 0
    if count == 0:
        return float(new_rating), 1
    new_count = count + 1
    return ((rating or 0) * count + new_rating) / new_count, new_count


async def add_review(
    conn: asyncpg.Connection,
    data: Mapping[str, Any],
    reviewer: Optional[dict] = None
) -> Dict[str, Any]:
    try:
        payload = ReviewCreate.model_validate(dict(data))
    except PydanticValidationError as e:
        raise ValidationError(describe_validation_error(e)) from e

    reviewer_id = reviewer["id"] if reviewer else None

    async with conn.transaction():
        technician = await technician_queries.get_technician_for_update(conn, payload.technician_id)
        if technician is None:
            raise NotFoundError("Technician not found")

        service_type = payload.service_type
        if payload.service_request_id is not None:
            request = await service_request_queries.get_service_request_by_id(
                conn, payload.service_request_id
            )
            if request is None:
                raise NotFoundError("Service request not found")
            if request["technician_id"] != payload.technician_id:
                raise ValidationError("Service request was not handled by this technician")
            if reviewer and reviewer["role"] != "admin" and request["user_id"] != reviewer["id"]:
                raise ForbiddenError("You can only review your own service requests")
            if reviewer_id is not None and await review_queries.find_review_for_service_request(
                conn, payload.service_request_id, reviewer_id
            ):
                raise ConflictError("You already reviewed this service request")
            service_type = service_type or request["service_type"]

        user_name = payload.user_name or (reviewer["name"] if reviewer else None)
        if not user_name:
            raise ValidationError("user_name is required")
        if not service_type:
            raise ValidationError("service_type is required")

        review = await review_queries.insert_review(
            conn,
            technician_id=payload.technician_id,
            user_id=reviewer_id,
            service_request_id=payload.service_request_id,
            user_name=user_name,
            service_type=service_type,
            rating=payload.rating,
            comment=payload.comment,
        )
        new_rating, new_count = compute_rating(
            technician["rating"], technician["review_count"], payload.rating
        )
        await technician_queries.update_technician_rating(
            conn, payload.technician_id, new_rating, new_count
        )

    logger.info(
        f"Review {review['id']} for technician {payload.technician_id}: "
        f"rating now {new_rating:.2f} over {new_count} reviews"
    )
    return review
