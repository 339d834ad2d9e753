"""
Error types raised by the reconciliation engine
The transport layer maps ValidationError to a client error, StoreTimeoutError
to a retryable service-unavailable error and everything else to a server error.
"""

from typing import Optional


class ReconciliationError(Exception):
    """Base class for reconciliation engine errors"""


class ValidationError(ReconciliationError):
    """The submission carries neither an email nor a phone number"""


class CorruptGroupError(ReconciliationError):
    """
    Group linkage cannot be resolved to a primary contact

    Raised for cyclic linked_id chains, links to contacts that do not exist
    and secondaries without a link. Never repaired or retried automatically.
    """

    def __init__(self, message: str, contact_id: Optional[int] = None):
        super().__init__(message)
        self.contact_id = contact_id


class StoreTimeoutError(ReconciliationError):
    """A store operation or lock wait exceeded its timeout; safe to retry"""


class ContactNotFoundError(ReconciliationError):
    """A contact id passed to the store does not exist"""

    def __init__(self, contact_id: int):
        super().__init__(f"Contact {contact_id} not found")
        self.contact_id = contact_id
