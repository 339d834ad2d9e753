"""
Database models package for Identity Reconciliation System
Contains SQLAlchemy models for contact information and relationships
"""

from .base import Base, BaseModel, utcnow
from .contact import Contact, LinkPrecedence, EMAIL_MAX_LENGTH, PHONE_NUMBER_MAX_LENGTH

__all__ = [
    'Base', 'BaseModel', 'utcnow', 'Contact', 'LinkPrecedence',
    'EMAIL_MAX_LENGTH', 'PHONE_NUMBER_MAX_LENGTH'
]
