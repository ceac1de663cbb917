"""
Role-based capability checks.

Authorization lives here rather than in the lifecycle core: routes ask
``can_perform(role, operation)`` (usually through the
``require_permission`` dependency) before invoking a core operation, and
then apply their own ownership checks.
"""

from enum import Enum
from typing import Callable, Dict, FrozenSet

from fastapi import Depends

from ..errors import ForbiddenError
from .auth import get_current_user


class Operation(str, Enum):
    CREATE_SERVICE_REQUEST = "service_request:create"
    LIST_ALL_SERVICE_REQUESTS = "service_request:list_all"
    ASSIGN_TECHNICIAN = "service_request:assign"
    UPDATE_STATUS = "service_request:update_status"
    SET_PRICE = "service_request:set_price"
    MARK_PAID = "service_request:mark_paid"
    CREATE_PAYMENT_INTENT = "service_request:create_payment_intent"
    CREATE_TECHNICIAN = "technician:create"
    UPDATE_TECHNICIAN = "technician:update"
    LIST_ALL_TECHNICIANS = "technician:list_admin"
    CREATE_REVIEW = "review:create"
    LIST_CONTACTS = "contact:list"
    READ_CONTACT = "contact:read"
    RESPOND_CONTACT = "contact:respond"


PERMISSIONS: Dict[Operation, FrozenSet[str]] = {
    Operation.CREATE_SERVICE_REQUEST: frozenset({"user"}),
    Operation.LIST_ALL_SERVICE_REQUESTS: frozenset({"admin"}),
    Operation.ASSIGN_TECHNICIAN: frozenset({"admin"}),
    Operation.UPDATE_STATUS: frozenset({"admin", "technician"}),
    Operation.SET_PRICE: frozenset({"admin", "technician"}),
    Operation.MARK_PAID: frozenset({"user", "admin"}),
    Operation.CREATE_PAYMENT_INTENT: frozenset({"user", "admin"}),
    Operation.CREATE_TECHNICIAN: frozenset({"technician", "admin"}),
    Operation.UPDATE_TECHNICIAN: frozenset({"technician", "admin"}),
    Operation.LIST_ALL_TECHNICIANS: frozenset({"admin"}),
    Operation.CREATE_REVIEW: frozenset({"user", "admin"}),
    Operation.LIST_CONTACTS: frozenset({"admin"}),
    Operation.READ_CONTACT: frozenset({"admin"}),
    Operation.RESPOND_CONTACT: frozenset({"admin"}),
}


def can_perform(role: str, operation: Operation) -> bool:
    return role in PERMISSIONS.get(operation, frozenset())


def require_permission(operation: Operation) -> Callable[[dict], dict]:
    """Dependency factory: the current user, provided their role allows ``operation``."""

    def _permission_dependency(current_user: dict = Depends(get_current_user)) -> dict:
        if not can_perform(current_user["role"], operation):
            raise ForbiddenError("Insufficient permissions")
        return current_user

    return _permission_dependency


def ensure_self_or_admin(current_user: dict, user_id: int) -> None:
    if current_user["role"] != "admin" and current_user["id"] != user_id:
        raise ForbiddenError("You can only access your own account")


__all__ = [
    "Operation",
    "PERMISSIONS",
    "can_perform",
    "require_permission",
    "ensure_self_or_admin",
]
