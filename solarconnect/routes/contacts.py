# solarconnect/routes/contacts.py
from fastapi import APIRouter, Depends, status
from typing import List, Optional
import asyncpg
import logging

from ..database import get_db
from ..errors import NotFoundError
from ..models.contact import ContactCreate, ContactOut, ContactRespond
from ..queries import contact_queries
from ..utils.permissions import Operation, require_permission

contacts_router = APIRouter(prefix="/contacts", tags=["Contacts"])
logger = logging.getLogger(__name__)


@contacts_router.get("/admin", response_model=List[ContactOut])
async def list_contacts(
    current_user: dict = Depends(require_permission(Operation.LIST_CONTACTS)),
    conn: asyncpg.Connection = Depends(get_db)
):
    return await contact_queries.list_contacts(conn)


@contacts_router.get("/{contact_id}", response_model=ContactOut)
async def get_contact(
    contact_id: int,
    current_user: dict = Depends(require_permission(Operation.READ_CONTACT)),
    conn: asyncpg.Connection = Depends(get_db)
):
    contact = await contact_queries.get_contact_by_id(conn, contact_id)
    if not contact:
        raise NotFoundError("Contact not found")
    return contact


@contacts_router.post("", response_model=ContactOut, status_code=status.HTTP_201_CREATED)
async def create_contact(
    contact: ContactCreate,
    conn: asyncpg.Connection = Depends(get_db)
):
    created = await contact_queries.create_contact(
        conn, contact.name, contact.email, contact.subject, contact.message
    )
    logger.info(f"Contact message {created['id']} received: {contact.subject}")
    return created


@contacts_router.patch("/{contact_id}/respond", response_model=ContactOut)
async def respond_to_contact(
    contact_id: int,
    payload: Optional[ContactRespond] = None,
    current_user: dict = Depends(require_permission(Operation.RESPOND_CONTACT)),
    conn: asyncpg.Connection = Depends(get_db)
):
    contact = await contact_queries.mark_contact_responded(
        conn,
        contact_id,
        response=payload.response if payload else None,
        responded_by=current_user["id"]
    )
    if not contact:
        raise NotFoundError("Contact not found")
    return contact


__all__ = ["contacts_router"]
