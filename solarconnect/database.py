# solarconnect/database.py
import asyncio
import logging
from pathlib import Path
from typing import AsyncGenerator

import asyncpg

from .config import settings

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "sql" / "schema.sql"


async def connect() -> asyncpg.Connection:
    return await asyncpg.connect(
        user=settings.database_username,
        password=settings.database_password,
        database=settings.database_name,
        host=settings.database_hostname,
        port=settings.database_port
    )


async def get_db() -> AsyncGenerator[asyncpg.Connection, None]:
    conn = await connect()
    try:
        yield conn
    finally:
        await conn.close()


async def init_db() -> None:
    """Create tables and constraints if they do not exist yet."""
    conn = await connect()
    try:
        await conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
        logger.info(f"Applied schema from {SCHEMA_PATH.name}")
    finally:
        await conn.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_db())
