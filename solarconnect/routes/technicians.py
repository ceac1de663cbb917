# solarconnect/routes/technicians.py
from fastapi import APIRouter, Depends, Query, status
from typing import List
import asyncpg
import logging

from ..database import get_db
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..models.technician import (
    NearbyTechnician,
    TechnicianAvailability,
    TechnicianCreate,
    TechnicianOut,
    TechnicianUpdate
)
from ..queries import technician_queries, user_queries
from ..utils.geo import distance_to
from ..utils.permissions import Operation, require_permission

technicians_router = APIRouter(prefix="/technicians", tags=["Technicians"])
logger = logging.getLogger(__name__)

# Nullable profile columns; an explicit null in a PATCH clears them
CLEARABLE_FIELDS = frozenset({"latitude", "longitude"})


async def get_technician(technician_id: int, conn: asyncpg.Connection) -> dict:
    technician = await technician_queries.get_technician_by_id(conn, technician_id)
    if not technician:
        raise NotFoundError("Technician not found")
    return technician


def ensure_technician_owner(current_user: dict, technician: dict) -> None:
    if current_user["role"] != "admin" and technician["user_id"] != current_user["id"]:
        raise ForbiddenError("Not your technician profile")


@technicians_router.get("", response_model=List[TechnicianOut])
async def list_technicians(conn: asyncpg.Connection = Depends(get_db)):
    return await technician_queries.list_technicians(conn)


@technicians_router.get("/featured", response_model=List[TechnicianOut])
async def featured_technicians(
    limit: int = Query(3, ge=1, le=20),
    conn: asyncpg.Connection = Depends(get_db)
):
    return await technician_queries.get_featured_technicians(conn, limit)


@technicians_router.get("/nearby", response_model=List[NearbyTechnician])
async def nearby_technicians(
    latitude: float = Query(..., ge=-90, le=90, description="Center point latitude"),
    longitude: float = Query(..., ge=-180, le=180, description="Center point longitude"),
    radius_km: float = Query(25, gt=0, le=500, description="Search radius in km"),
    conn: asyncpg.Connection = Depends(get_db)
):
    technicians = await technician_queries.list_technicians(conn, available_only=True)

    results = []
    for tech in technicians:
        distance = distance_to(latitude, longitude, tech)
        if distance is not None and distance <= radius_km:
            result = dict(tech)
            result["distance_km"] = round(distance, 2)
            results.append(result)

    results.sort(key=lambda x: x["distance_km"])
    logger.info(f"Found {len(results)} technicians within {radius_km} km of ({latitude}, {longitude})")
    return results


@technicians_router.get("/admin", response_model=List[TechnicianOut])
async def list_technicians_admin(
    current_user: dict = Depends(require_permission(Operation.LIST_ALL_TECHNICIANS)),
    conn: asyncpg.Connection = Depends(get_db)
):
    return await technician_queries.list_technicians(conn)


@technicians_router.get("/user/{user_id}", response_model=TechnicianOut)
async def get_technician_by_user(
    user_id: int,
    conn: asyncpg.Connection = Depends(get_db)
):
    user = await user_queries.get_user_by_id(conn, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user["role"] != "technician":
        raise ForbiddenError("User is not a technician")

    technician = await technician_queries.get_technician_by_user_id(conn, user_id)
    if not technician:
        logger.warning(f"No technician profile found for user {user_id} despite having technician role")
        raise NotFoundError("No technician profile found for this user")
    return technician


@technicians_router.get("/{technician_id}", response_model=TechnicianOut)
async def get_technician_by_id(
    technician_id: int,
    conn: asyncpg.Connection = Depends(get_db)
):
    return await get_technician(technician_id, conn)


@technicians_router.post("", response_model=TechnicianOut, status_code=status.HTTP_201_CREATED)
async def create_technician(
    payload: TechnicianCreate,
    current_user: dict = Depends(require_permission(Operation.CREATE_TECHNICIAN)),
    conn: asyncpg.Connection = Depends(get_db)
):
    user_id = payload.user_id or current_user["id"]
    if current_user["role"] != "admin" and user_id != current_user["id"]:
        raise ForbiddenError("You can only create your own technician profile")

    user = await user_queries.get_user_by_id(conn, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user["role"] != "technician":
        raise ValidationError("User must have the technician role")
    if await technician_queries.get_technician_by_user_id(conn, user_id):
        raise ConflictError("User already has a technician profile")

    fields = payload.model_dump(exclude={"user_id"})
    try:
        technician_id = await technician_queries.create_technician(conn, user_id, fields)
    except asyncpg.UniqueViolationError:
        raise ConflictError("User already has a technician profile")

    logger.info(f"Technician profile {technician_id} created for user {user_id}")
    return await get_technician(technician_id, conn)


@technicians_router.patch("/{technician_id}/availability", response_model=TechnicianOut)
async def update_availability(
    technician_id: int,
    availability: TechnicianAvailability,
    current_user: dict = Depends(require_permission(Operation.UPDATE_TECHNICIAN)),
    conn: asyncpg.Connection = Depends(get_db)
):
    technician = await get_technician(technician_id, conn)
    ensure_technician_owner(current_user, technician)

    await technician_queries.update_technician(
        conn, technician_id, {"available": availability.available}
    )
    return await get_technician(technician_id, conn)


@technicians_router.patch("/{technician_id}", response_model=TechnicianOut)
async def update_technician(
    technician_id: int,
    update: TechnicianUpdate,
    current_user: dict = Depends(require_permission(Operation.UPDATE_TECHNICIAN)),
    conn: asyncpg.Connection = Depends(get_db)
):
    technician = await get_technician(technician_id, conn)
    ensure_technician_owner(current_user, technician)

    fields = update.model_dump(exclude_unset=True)
    not_clearable = sorted(k for k, v in fields.items() if v is None and k not in CLEARABLE_FIELDS)
    if not_clearable:
        raise ValidationError(f"Cannot clear required fields: {', '.join(not_clearable)}")

    await technician_queries.update_technician(conn, technician_id, fields)
    return await get_technician(technician_id, conn)


__all__ = ["technicians_router"]
