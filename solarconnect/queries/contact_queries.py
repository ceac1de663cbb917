# solarconnect/queries/contact_queries.py
from typing import Optional, Dict, Any, List
import asyncpg

from .common import record_to_dict

async def create_contact(
    conn: asyncpg.Connection,
    name: str,
    email: str,
    subject: str,
    message: str
) -> Dict[str, Any]:
    row = await conn.fetchrow(
        """
        INSERT INTO contacts (name, email, subject, message)
        VALUES ($1, $2, $3, $4)
        RETURNING *
        """,
        name, email, subject, message
    )
    return dict(row)

async def get_contact_by_id(
    conn: asyncpg.Connection,
    contact_id: int
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow("SELECT * FROM contacts WHERE id = $1", contact_id)
    return record_to_dict(row)

async def list_contacts(
    conn: asyncpg.Connection
) -> List[Dict[str, Any]]:
    rows = await conn.fetch("SELECT * FROM contacts ORDER BY created_at DESC, id DESC")
    return [dict(row) for row in rows]

async def mark_contact_responded(
    conn: asyncpg.Connection,
    contact_id: int,
    response: Optional[str] = None,
    responded_by: Optional[int] = None
) -> Optional[Dict[str, Any]]:
    """Flag a contact as answered. The flag never goes back to false and the
    first response timestamp is kept."""
    row = await conn.fetchrow(
        """
        UPDATE contacts
        SET responded = TRUE,
            response = COALESCE($2, response),
            responded_at = COALESCE(responded_at, NOW()),
            responded_by = COALESCE($3, responded_by)
        WHERE id = $1
        RETURNING *
        """,
        contact_id, response, responded_by
    )
    return record_to_dict(row)
