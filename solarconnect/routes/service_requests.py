# solarconnect/routes/service_requests.py
from fastapi import APIRouter, Depends, status
from typing import List, Optional
import asyncpg

from ..database import get_db
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..models.service_request import (
    PaymentIntentOut,
    PaymentUpdate,
    PriceUpdate,
    ServiceRequestCreate,
    ServiceRequestOut,
    StatusUpdate,
    TechnicianAssignment
)
from ..queries import service_request_queries, technician_queries
from ..services import lifecycle
from ..services.payment_gateway import StripeGateway, get_payment_gateway
from ..utils.auth import get_current_user
from ..utils.permissions import Operation, ensure_self_or_admin, require_permission

service_requests_router = APIRouter(prefix="/service-requests", tags=["Service Requests"])


async def get_service_request(request_id: int, conn: asyncpg.Connection) -> dict:
    request = await service_request_queries.get_service_request_by_id(conn, request_id)
    if not request:
        raise NotFoundError("Service request not found")
    return request


async def technician_id_for(current_user: dict, conn: asyncpg.Connection) -> Optional[int]:
    if current_user["role"] != "technician":
        return None
    technician = await technician_queries.get_technician_by_user_id(conn, current_user["id"])
    return technician["id"] if technician else None


async def ensure_assigned_technician(
    current_user: dict,
    request: dict,
    conn: asyncpg.Connection
) -> None:
    """Admins pass; technicians must be the one assigned to ``request``."""
    if current_user["role"] == "admin":
        return
    technician_id = await technician_id_for(current_user, conn)
    if technician_id is None or request["technician_id"] != technician_id:
        raise ForbiddenError("Service request is not assigned to you")


def ensure_request_owner(current_user: dict, request: dict) -> None:
    if current_user["role"] != "admin" and request["user_id"] != current_user["id"]:
        raise ForbiddenError("Not your service request")


@service_requests_router.get("/admin", response_model=List[ServiceRequestOut])
async def list_all_service_requests(
    current_user: dict = Depends(require_permission(Operation.LIST_ALL_SERVICE_REQUESTS)),
    conn: asyncpg.Connection = Depends(get_db)
):
    return await service_request_queries.list_service_requests(conn)


@service_requests_router.get("/technician/{technician_id}", response_model=List[ServiceRequestOut])
async def list_technician_service_requests(
    technician_id: int,
    current_user: dict = Depends(get_current_user),
    conn: asyncpg.Connection = Depends(get_db)
):
    if current_user["role"] != "admin":
        if await technician_id_for(current_user, conn) != technician_id:
            raise ForbiddenError("You can only view your own assignments")
    return await service_request_queries.list_service_requests_by_technician(conn, technician_id)


@service_requests_router.get("/user/{user_id}", response_model=List[ServiceRequestOut])
async def list_user_service_requests(
    user_id: int,
    current_user: dict = Depends(get_current_user),
    conn: asyncpg.Connection = Depends(get_db)
):
    ensure_self_or_admin(current_user, user_id)
    return await service_request_queries.list_service_requests_by_user(conn, user_id)


@service_requests_router.get("/{request_id}", response_model=ServiceRequestOut)
async def get_service_request_by_id(
    request_id: int,
    current_user: dict = Depends(get_current_user),
    conn: asyncpg.Connection = Depends(get_db)
):
    request = await get_service_request(request_id, conn)
    if current_user["role"] == "technician":
        await ensure_assigned_technician(current_user, request, conn)
    else:
        ensure_request_owner(current_user, request)
    return request


@service_requests_router.post("", response_model=ServiceRequestOut, status_code=status.HTTP_201_CREATED)
async def create_service_request(
    payload: ServiceRequestCreate,
    current_user: dict = Depends(require_permission(Operation.CREATE_SERVICE_REQUEST)),
    conn: asyncpg.Connection = Depends(get_db)
):
    return await lifecycle.create_service_request(
        conn, current_user["id"], payload.model_dump(exclude_unset=True)
    )


@service_requests_router.patch("/{request_id}/status", response_model=ServiceRequestOut)
async def update_service_request_status(
    request_id: int,
    update: StatusUpdate,
    current_user: dict = Depends(require_permission(Operation.UPDATE_STATUS)),
    conn: asyncpg.Connection = Depends(get_db)
):
    request = await get_service_request(request_id, conn)
    await ensure_assigned_technician(current_user, request, conn)
    return await lifecycle.update_status(conn, request_id, update.status)


@service_requests_router.patch("/{request_id}/assign", response_model=ServiceRequestOut)
async def assign_technician(
    request_id: int,
    assignment: TechnicianAssignment,
    current_user: dict = Depends(require_permission(Operation.ASSIGN_TECHNICIAN)),
    conn: asyncpg.Connection = Depends(get_db)
):
    return await lifecycle.assign_technician(conn, request_id, assignment.technician_id)


@service_requests_router.patch("/{request_id}/price", response_model=ServiceRequestOut)
async def set_service_request_price(
    request_id: int,
    update: PriceUpdate,
    current_user: dict = Depends(require_permission(Operation.SET_PRICE)),
    conn: asyncpg.Connection = Depends(get_db)
):
    request = await get_service_request(request_id, conn)
    await ensure_assigned_technician(current_user, request, conn)
    return await lifecycle.set_price(conn, request_id, update.price)


@service_requests_router.patch("/{request_id}/payment", response_model=ServiceRequestOut)
async def update_payment_status(
    request_id: int,
    update: PaymentUpdate,
    current_user: dict = Depends(require_permission(Operation.MARK_PAID)),
    conn: asyncpg.Connection = Depends(get_db)
):
    if not update.is_paid:
        raise ValidationError("Payments cannot be reversed")
    request = await get_service_request(request_id, conn)
    ensure_request_owner(current_user, request)
    return await lifecycle.mark_paid(conn, request_id, update.payment_intent_id)


@service_requests_router.post("/{request_id}/create-payment-intent", response_model=PaymentIntentOut)
async def create_payment_intent(
    request_id: int,
    current_user: dict = Depends(require_permission(Operation.CREATE_PAYMENT_INTENT)),
    conn: asyncpg.Connection = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway)
):
    request = await get_service_request(request_id, conn)
    ensure_request_owner(current_user, request)
    return await lifecycle.create_payment_intent(conn, request_id, gateway)


__all__ = ["service_requests_router"]
