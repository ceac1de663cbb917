# solarconnect/queries/technician_queries.py
from typing import Optional, Dict, Any, List
import asyncpg

from .common import build_set_clause, record_to_dict

# rating and review_count are written only by update_technician_rating,
# from the rating aggregator.
UPDATABLE_COLUMNS = (
    "specialty", "experience", "certifications", "bio", "available",
    "latitude", "longitude", "service_radius",
    "installation_price", "maintenance_price", "assessment_price",
)

TECHNICIAN_SELECT = """
    SELECT
        t.*,
        u.name,
        u.email,
        u.phone,
        u.city,
        u.profile_image
    FROM technicians t
    JOIN users u ON u.id = t.user_id
"""

async def create_technician(
    conn: asyncpg.Connection,
    user_id: int,
    fields: Dict[str, Any]
) -> int:
    """Create a technician profile for ``user_id`` and return its id"""
    columns = ["user_id"]
    values: List[Any] = [user_id]
    for column, value in fields.items():
        if column not in UPDATABLE_COLUMNS:
            raise KeyError(f"Unknown column: {column}")
        columns.append(column)
        values.append(value)
    placeholders = ", ".join(f"${i}" for i in range(1, len(values) + 1))
    return await conn.fetchval(
        f"""
        INSERT INTO technicians ({", ".join(columns)})
        VALUES ({placeholders})
        RETURNING id
        """,
        *values
    )

async def get_technician_by_id(
    conn: asyncpg.Connection,
    technician_id: int
) -> Optional[Dict[str, Any]]:
    """Get a technician joined with its owning user"""
    row = await conn.fetchrow(TECHNICIAN_SELECT + " WHERE t.id = $1", technician_id)
    return record_to_dict(row)

async def get_technician_by_user_id(
    conn: asyncpg.Connection,
    user_id: int
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(TECHNICIAN_SELECT + " WHERE t.user_id = $1", user_id)
    return record_to_dict(row)

async def get_technician_for_update(
    conn: asyncpg.Connection,
    technician_id: int
) -> Optional[Dict[str, Any]]:
    """Lock the technician row for the rest of the current transaction"""
    row = await conn.fetchrow(
        "SELECT * FROM technicians WHERE id = $1 FOR UPDATE",
        technician_id
    )
    return record_to_dict(row)

async def list_technicians(
    conn: asyncpg.Connection,
    available_only: bool = False
) -> List[Dict[str, Any]]:
    query = TECHNICIAN_SELECT
    if available_only:
        query += " WHERE t.available = TRUE"
    query += " ORDER BY t.id"
    rows = await conn.fetch(query)
    return [dict(row) for row in rows]

async def get_featured_technicians(
    conn: asyncpg.Connection,
    limit: int
) -> List[Dict[str, Any]]:
    """Highest rated technicians first; unrated ones sort last"""
    rows = await conn.fetch(
        TECHNICIAN_SELECT + " ORDER BY t.rating DESC NULLS LAST, t.id LIMIT $1",
        limit
    )
    return [dict(row) for row in rows]

async def update_technician(
    conn: asyncpg.Connection,
    technician_id: int,
    fields: Dict[str, Any]
) -> bool:
    """Update profile columns; returns False when the technician does not exist"""
    if not fields:
        return await conn.fetchval(
            "SELECT EXISTS(SELECT 1 FROM technicians WHERE id = $1)",
            technician_id
        )
    set_clause, values = build_set_clause(fields, UPDATABLE_COLUMNS, start=2)
    result = await conn.execute(
        f"UPDATE technicians SET {set_clause} WHERE id = $1",
        technician_id, *values
    )
    return result != "UPDATE 0"

async def update_technician_rating(
    conn: asyncpg.Connection,
    technician_id: int,
    rating: float,
    review_count: int
) -> None:
    await conn.execute(
        """
        UPDATE technicians
        SET rating = $1, review_count = $2
        WHERE id = $3
        """,
        rating, review_count, technician_id
    )
