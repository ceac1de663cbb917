"""
Service request lifecycle.

A request moves ``pending -> assigned -> in_progress -> completed -> paid``;
``cancelled`` can be reached from any non-terminal state, and ``paid`` and
``cancelled`` are terminal.  ``is_paid`` is only ever set together with
``status = paid`` and, once set, pins the status there.

Every mutating operation is a single read-modify-write inside
``conn.transaction()`` with the row locked ``FOR UPDATE``, so concurrent
callers touching the same request serialise at the database.
``create_payment_intent`` is the exception: it validates and persists in
two short transactions with the gateway call between them.

``update_status`` is permissive unless ``settings.strict_status_transitions``
is on, in which case ``ALLOWED_TRANSITIONS`` is enforced.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import asyncpg
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models.service_request import ServiceRequestCreate, ServiceRequestStatus as Status
from ..queries import service_request_queries, technician_queries

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({Status.PAID, Status.CANCELLED})

ALLOWED_TRANSITIONS = {
    Status.PENDING: frozenset({Status.ASSIGNED, Status.CANCELLED}),
    Status.ASSIGNED: frozenset({Status.IN_PROGRESS, Status.CANCELLED}),
    Status.IN_PROGRESS: frozenset({Status.COMPLETED, Status.CANCELLED}),
    Status.COMPLETED: frozenset({Status.PAID, Status.CANCELLED}),
    Status.PAID: frozenset(),
    Status.CANCELLED: frozenset(),
}


def describe_validation_error(error: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in error.errors()
    )


def is_transition_allowed(current: Status, target: Status) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def _to_status(value: Any) -> Status:
    try:
        return Status(value)
    except ValueError:
        allowed = ", ".join(s.value for s in Status)
        raise ValidationError(f"Invalid status '{value}'. Expected one of: {allowed}")


async def _lock_request(conn: asyncpg.Connection, request_id: int) -> Dict[str, Any]:
    request = await service_request_queries.get_service_request_for_update(conn, request_id)
    if request is None:
        raise NotFoundError("Service request not found")
    return request


async def _lock_payable_request(conn: asyncpg.Connection, request_id: int) -> Dict[str, Any]:
    request = await _lock_request(conn, request_id)
    if request["price"] is None:
        raise ValidationError("Service request does not have a price")
    if request["is_paid"]:
        raise ConflictError("Service request is already paid")
    if request["status"] == Status.CANCELLED.value:
        raise ConflictError("A cancelled service request cannot be paid")
    return request


async def create_service_request(
    conn: asyncpg.Connection,
    user_id: int,
    data: Mapping[str, Any]
) -> Dict[str, Any]:
    """Create a request owned by ``user_id``.

    The new row is always ``pending`` and unpaid; ``technician_id`` and
    ``price`` stay null unless supplied.
    """
    try:
        payload = ServiceRequestCreate.model_validate(dict(data))
    except PydanticValidationError as e:
        raise ValidationError(describe_validation_error(e)) from e

    fields = {
        key: value.value if isinstance(value, Enum) else value
        for key, value in payload.model_dump(exclude_none=True).items()
    }

    async with conn.transaction():
        if payload.technician_id is not None:
            technician = await technician_queries.get_technician_by_id(conn, payload.technician_id)
            if technician is None:
                raise NotFoundError("Technician not found")
        request = await service_request_queries.create_service_request(conn, user_id, fields)

    logger.info(f"Service request {request['id']} created by user {user_id}")
    return request


async def assign_technician(
    conn: asyncpg.Connection,
    request_id: int,
    technician_id: int
) -> Dict[str, Any]:
    async with conn.transaction():
        request = await _lock_request(conn, request_id)
        technician = await technician_queries.get_technician_by_id(conn, technician_id)
        if technician is None:
            raise NotFoundError("Technician not found")

        current = Status(request["status"])
        if current in TERMINAL_STATUSES:
            raise ConflictError(f"Cannot assign a technician to a {current.value} service request")

        fields: Dict[str, Any] = {"technician_id": technician_id}
        # Re-assignment later in the lifecycle must not regress the status
        if current == Status.PENDING:
            fields["status"] = Status.ASSIGNED.value
        updated = await service_request_queries.update_service_request(conn, request_id, fields)

    logger.info(
        f"Service request {request_id} assigned to technician {technician_id} "
        f"({current.value} -> {updated['status']})"
    )
    return updated


async def update_status(
    conn: asyncpg.Connection,
    request_id: int,
    status: Any
) -> Dict[str, Any]:
    target = _to_status(status)

    async with conn.transaction():
        request = await _lock_request(conn, request_id)
        current = Status(request["status"])

        if request["is_paid"] and target != Status.PAID:
            raise ConflictError("A paid service request cannot change status")
        if settings.strict_status_transitions and not is_transition_allowed(current, target):
            raise ConflictError(
                f"Cannot move service request from {current.value} to {target.value}"
            )

        fields: Dict[str, Any] = {"status": target.value}
        if target == Status.COMPLETED and request.get("completed_date") is None:
            fields["completed_date"] = datetime.now(timezone.utc)
        updated = await service_request_queries.update_service_request(conn, request_id, fields)

    logger.info(f"Service request {request_id} status {current.value} -> {target.value}")
    return updated


async def set_price(
    conn: asyncpg.Connection,
    request_id: int,
    price: int
) -> Dict[str, Any]:
    """Quote (or re-quote) the price in whole SAR.

    A changed price drops any payment intent on record, since that intent
    was created for the old amount.
    """
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        raise ValidationError("Price must be a positive whole number of SAR")

    async with conn.transaction():
        request = await _lock_request(conn, request_id)
        if request["is_paid"] or request["status"] == Status.PAID.value:
            raise ConflictError("Cannot change the price of a paid service request")
        if request["status"] == Status.CANCELLED.value:
            raise ConflictError("Cannot price a cancelled service request")

        fields: Dict[str, Any] = {"price": price}
        if request["price"] != price and request.get("payment_intent_id"):
            fields["payment_intent_id"] = None
        updated = await service_request_queries.update_service_request(conn, request_id, fields)

    logger.info(f"Service request {request_id} priced at {price} SAR")
    return updated


async def mark_paid(
    conn: asyncpg.Connection,
    request_id: int,
    payment_intent_id: Optional[str] = None
) -> Dict[str, Any]:
    """Record payment. Safe to repeat: a second call only refreshes the intent id."""
    async with conn.transaction():
        request = await _lock_request(conn, request_id)
        if request["status"] == Status.CANCELLED.value:
            raise ConflictError("A cancelled service request cannot be paid")

        fields: Dict[str, Any] = {"is_paid": True, "status": Status.PAID.value}
        if payment_intent_id:
            fields["payment_intent_id"] = payment_intent_id
        updated = await service_request_queries.update_service_request(conn, request_id, fields)

    if not request["is_paid"]:
        logger.info(f"Service request {request_id} marked paid")
    return updated


async def create_payment_intent(
    conn: asyncpg.Connection,
    request_id: int,
    gateway
) -> Dict[str, str]:
    """Return a client secret for paying ``request_id``.

    An intent already on record is reused unless the gateway reports it
    canceled; otherwise a new one is created for ``price * 100`` minor
    units and its id stored on the request.

    The gateway is called with no row lock held. The request is locked
    and re-checked before the new intent id is stored, and a request that
    changed in the meantime raises ``ConflictError``.
    """
    async with conn.transaction():
        request = await _lock_payable_request(conn, request_id)

    existing_id = request.get("payment_intent_id")
    if existing_id:
        intent = await run_in_threadpool(gateway.retrieve_payment_intent, existing_id)
        if intent["status"] != "canceled":
            return {"client_secret": intent["client_secret"], "payment_intent_id": existing_id}
        logger.info(f"Payment intent {existing_id} was canceled; creating a new one")

    intent = await run_in_threadpool(
        gateway.create_payment_intent,
        amount=request["price"] * 100,
        currency=settings.payment_currency,
        metadata={"service_request_id": str(request_id)},
    )

    async with conn.transaction():
        current = await _lock_payable_request(conn, request_id)
        if current["price"] != request["price"] or current.get("payment_intent_id") != existing_id:
            logger.warning(
                f"Service request {request_id} changed while payment intent {intent['id']} "
                f"was being created; discarding it"
            )
            raise ConflictError("Service request changed while the payment was being prepared")
        await service_request_queries.update_service_request(
            conn, request_id, {"payment_intent_id": intent["id"]}
        )

    logger.info(f"Payment intent {intent['id']} created for service request {request_id}")
    return {"client_secret": intent["client_secret"], "payment_intent_id": intent["id"]}
