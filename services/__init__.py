"""
Business logic services for Identity Reconciliation API
Contains the reconciliation engine and its collaborators: contact store,
primary resolution, group merging, locking and response building.
"""

from .errors import (
    ReconciliationError,
    ValidationError,
    CorruptGroupError,
    StoreTimeoutError,
    ContactNotFoundError
)
from .identity_service import IdentityService, identity_service

# Export all services for easy importing
__all__ = [
    "ReconciliationError",
    "ValidationError",
    "CorruptGroupError",
    "StoreTimeoutError",
    "ContactNotFoundError",
    "IdentityService",
    "identity_service"
]
