# solarconnect/utils/__init__.py
from .auth import (
    oauth2_scheme,
    verify_password,
    get_password_hash,
    create_access_token,
    authenticate_user,
    get_current_user
)
from .permissions import Operation, can_perform, require_permission, ensure_self_or_admin
from .geo import haversine, distance_to

__all__ = [
    "oauth2_scheme",
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "authenticate_user",
    "get_current_user",
    "Operation",
    "can_perform",
    "require_permission",
    "ensure_self_or_admin",
    "haversine",
    "distance_to"
]
