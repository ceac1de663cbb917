# solarconnect/models/__init__.py
from .auth import Token, UserLogin, UserRegister, ChangePasswordRequest
from .user import UserRole, UserOut, UserUpdate
from .technician import (
    TechnicianCreate,
    TechnicianUpdate,
    TechnicianAvailability,
    TechnicianOut,
    NearbyTechnician
)
from .service_request import (
    ServiceType,
    PropertyType,
    ServiceRequestStatus,
    ServiceRequestCreate,
    ServiceRequestOut,
    StatusUpdate,
    TechnicianAssignment,
    PriceUpdate,
    PaymentUpdate,
    PaymentIntentOut
)
from .review import ReviewCreate, ReviewOut, TechnicianReviews
from .contact import ContactCreate, ContactRespond, ContactOut

__all__ = [
    'Token', 'UserLogin', 'UserRegister', 'ChangePasswordRequest',
    'UserRole', 'UserOut', 'UserUpdate',
    'TechnicianCreate', 'TechnicianUpdate', 'TechnicianAvailability', 'TechnicianOut',
    'NearbyTechnician',
    'ServiceType', 'PropertyType', 'ServiceRequestStatus', 'ServiceRequestCreate',
    'ServiceRequestOut', 'StatusUpdate', 'TechnicianAssignment', 'PriceUpdate',
    'PaymentUpdate', 'PaymentIntentOut',
    'ReviewCreate', 'ReviewOut', 'TechnicianReviews',
    'ContactCreate', 'ContactRespond', 'ContactOut'
]
