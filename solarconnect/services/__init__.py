# solarconnect/services/__init__.py
from . import lifecycle, rating
from .payment_gateway import StripeGateway, get_payment_gateway

__all__ = [
    "lifecycle",
    "rating",
    "StripeGateway",
    "get_payment_gateway"
]
