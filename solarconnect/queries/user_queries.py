# solarconnect/queries/user_queries.py
from typing import Optional, Dict, Any
import asyncpg

from .common import build_set_clause, record_to_dict

UPDATABLE_COLUMNS = ("name", "email", "phone", "city", "address", "profile_image")

async def create_user(
    conn: asyncpg.Connection,
    username: str,
    password_hash: str,
    role: str,
    name: str,
    email: str,
    phone: str,
    city: str,
    address: Optional[str] = None,
    profile_image: Optional[str] = None
) -> Dict[str, Any]:
    """Create a new user and return the stored row"""
    row = await conn.fetchrow(
        """
        INSERT INTO users (
            username, password_hash, role, name,
            email, phone, city, address, profile_image
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
        RETURNING *
        """,
        username, password_hash, role, name,
        email, phone, city, address, profile_image
    )
    return dict(row)

async def get_user_by_id(
    conn: asyncpg.Connection,
    user_id: int
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
    return record_to_dict(row)

async def get_user_by_username(
    conn: asyncpg.Connection,
    username: str
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow("SELECT * FROM users WHERE username = $1", username)
    return record_to_dict(row)

async def get_user_by_email(
    conn: asyncpg.Connection,
    email: str
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow("SELECT * FROM users WHERE email = $1", email)
    return record_to_dict(row)

async def update_user(
    conn: asyncpg.Connection,
    user_id: int,
    fields: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Update profile columns; returns None when the user does not exist"""
    if not fields:
        return await get_user_by_id(conn, user_id)
    set_clause, values = build_set_clause(fields, UPDATABLE_COLUMNS, start=2)
    row = await conn.fetchrow(
        f"UPDATE users SET {set_clause} WHERE id = $1 RETURNING *",
        user_id, *values
    )
    return record_to_dict(row)

async def update_password(
    conn: asyncpg.Connection,
    user_id: int,
    password_hash: str
) -> bool:
    result = await conn.execute(
        "UPDATE users SET password_hash = $1 WHERE id = $2",
        password_hash, user_id
    )
    return result != "UPDATE 0"
