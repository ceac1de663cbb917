# solarconnect/routes/__init__.py
from .auth import auth_router
from .technicians import technicians_router
from .service_requests import service_requests_router
from .reviews import reviews_router
from .contacts import contacts_router

routers = [
    auth_router,
    technicians_router,
    service_requests_router,
    reviews_router,
    contacts_router
]

__all__ = ["routers"]
