# solarconnect/queries/service_request_queries.py
from typing import Optional, Dict, Any, List
import asyncpg

from .common import build_set_clause, record_to_dict

INSERTABLE_COLUMNS = (
    "technician_id", "service_type", "property_type", "title", "description",
    "address", "city", "latitude", "longitude", "scheduled_date", "price",
)

UPDATABLE_COLUMNS = (
    "technician_id", "status", "completed_date", "price",
    "is_paid", "payment_intent_id",
)

async def create_service_request(
    conn: asyncpg.Connection,
    user_id: int,
    fields: Dict[str, Any]
) -> Dict[str, Any]:
    """Insert a new service request; status and is_paid take their defaults"""
    columns = ["user_id"]
    values: List[Any] = [user_id]
    for column, value in fields.items():
        if column not in INSERTABLE_COLUMNS:
            raise KeyError(f"Unknown column: {column}")
        columns.append(column)
        values.append(value)
    placeholders = ", ".join(f"${i}" for i in range(1, len(values) + 1))
    row = await conn.fetchrow(
        f"""
        INSERT INTO service_requests ({", ".join(columns)})
        VALUES ({placeholders})
        RETURNING *
        """,
        *values
    )
    return dict(row)

async def get_service_request_by_id(
    conn: asyncpg.Connection,
    request_id: int
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        "SELECT * FROM service_requests WHERE id = $1",
        request_id
    )
    return record_to_dict(row)

async def get_service_request_for_update(
    conn: asyncpg.Connection,
    request_id: int
) -> Optional[Dict[str, Any]]:
    """Lock the row for the rest of the current transaction"""
    row = await conn.fetchrow(
        "SELECT * FROM service_requests WHERE id = $1 FOR UPDATE",
        request_id
    )
    return record_to_dict(row)

async def list_service_requests(
    conn: asyncpg.Connection
) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT * FROM service_requests ORDER BY created_at DESC, id DESC"
    )
    return [dict(row) for row in rows]

async def list_service_requests_by_technician(
    conn: asyncpg.Connection,
    technician_id: int
) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT * FROM service_requests
        WHERE technician_id = $1
        ORDER BY created_at DESC, id DESC
        """,
        technician_id
    )
    return [dict(row) for row in rows]

async def list_service_requests_by_user(
    conn: asyncpg.Connection,
    user_id: int
) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT * FROM service_requests
        WHERE user_id = $1
        ORDER BY created_at DESC, id DESC
        """,
        user_id
    )
    return [dict(row) for row in rows]

async def update_service_request(
    conn: asyncpg.Connection,
    request_id: int,
    fields: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    if not fields:
        return await get_service_request_by_id(conn, request_id)
    set_clause, values = build_set_clause(fields, UPDATABLE_COLUMNS, start=2)
    row = await conn.fetchrow(
        f"UPDATE service_requests SET {set_clause} WHERE id = $1 RETURNING *",
        request_id, *values
    )
    return record_to_dict(row)
