# solarconnect/queries/__init__.py
from . import (
    user_queries,
    technician_queries,
    service_request_queries,
    review_queries,
    contact_queries
)

__all__ = [
    'user_queries',
    'technician_queries',
    'service_request_queries',
    'review_queries',
    'contact_queries'
]
