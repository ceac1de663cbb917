# solarconnect/queries/review_queries.py
from typing import Optional, Dict, Any, List
import asyncpg

from .common import record_to_dict

async def insert_review(
    conn: asyncpg.Connection,
    technician_id: int,
    user_id: Optional[int],
    service_request_id: Optional[int],
    user_name: str,
    service_type: str,
    rating: int,
    comment: str
) -> Dict[str, Any]:
    """Insert a review row.

    Call only through services.rating.add_review, which keeps the
    technician's aggregate in step within the same transaction.
    """
    row = await conn.fetchrow(
        """
        INSERT INTO reviews (
            technician_id, user_id, service_request_id,
            user_name, service_type, rating, comment
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        RETURNING *
        """,
        technician_id, user_id, service_request_id,
        user_name, service_type, rating, comment
    )
    return dict(row)

async def get_review_by_id(
    conn: asyncpg.Connection,
    review_id: int
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow("SELECT * FROM reviews WHERE id = $1", review_id)
    return record_to_dict(row)

async def get_technician_reviews(
    conn: asyncpg.Connection,
    technician_id: int
) -> List[Dict[str, Any]]:
    """All reviews for a technician, newest first"""
    rows = await conn.fetch(
        """
        SELECT * FROM reviews
        WHERE technician_id = $1
        ORDER BY created_at DESC, id DESC
        """,
        technician_id
    )
    return [dict(row) for row in rows]

async def find_review_for_service_request(
    conn: asyncpg.Connection,
    service_request_id: int,
    user_id: int
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        "SELECT * FROM reviews WHERE service_request_id = $1 AND user_id = $2",
        service_request_id, user_id
    )
    return record_to_dict(row)
