"""
Contact model for Identity Reconciliation API
This module defines the Contact database model for storing customer
contact information and managing identity linking relationships.
Each identity group is one primary contact plus the secondaries that
link directly to it.
"""

from enum import Enum

from sqlalchemy import Column, String, Integer, ForeignKey, Index, CheckConstraint

from .base import BaseModel

EMAIL_MAX_LENGTH = 255
PHONE_NUMBER_MAX_LENGTH = 32


class LinkPrecedence(str, Enum):
    """Role of a contact inside its identity group"""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class Contact(BaseModel):
    """
    Contact model representing customer contact information

    Stores email and phone number data with linking relationships
    to support identity reconciliation. Each contact is either
    'primary' (the canonical record of its group, linked_id is NULL) or
    'secondary' (linked_id points at the group's primary).

    Database Table: contacts
    """
    __tablename__ = "contacts"

    # Contact information fields - at least one must be provided
    phone_number = Column(
        String(PHONE_NUMBER_MAX_LENGTH),
        nullable=True,
        index=True,
        comment="Customer phone number, stored exactly as submitted"
    )

    email = Column(
        String(EMAIL_MAX_LENGTH),
        nullable=True,
        index=True,
        comment="Customer email address"
    )

    # Identity linking fields
    linked_id = Column(
        Integer,
        ForeignKey("contacts.id"),
        nullable=True,
        index=True,
        comment="ID of the primary contact this secondary contact links to"
    )

    link_precedence = Column(
        String(10),
        nullable=False,
        default=LinkPrecedence.PRIMARY.value,
        comment="Either 'primary' (independent contact) or 'secondary' (linked contact)"
    )

    __table_args__ = (
        CheckConstraint(
            "link_precedence IN ('primary', 'secondary')",
            name="valid_link_precedence"
        ),

        CheckConstraint(
            "(phone_number IS NOT NULL) OR (email IS NOT NULL)",
            name="contact_info_required"
        ),

        # Primaries never link anywhere, secondaries always do
        CheckConstraint(
            "(link_precedence = 'primary' AND linked_id IS NULL) OR "
            "(link_precedence = 'secondary' AND linked_id IS NOT NULL)",
            name="secondary_must_have_linked_id"
        ),

        Index("ix_contact_precedence_linked", link_precedence, linked_id),
    )

    def __repr__(self):
        """String representation showing key contact information"""
        contact_info = []
        if self.email:
            contact_info.append(f"email={self.email}")
        if self.phone_number:
            contact_info.append(f"phone={self.phone_number}")

        return (
            f"<Contact(id={self.id}, "
            f"{', '.join(contact_info)}, "
            f"precedence={self.link_precedence}, linked_id={self.linked_id})>"
        )

    def is_primary(self):
        """Check if this is a primary contact"""
        return self.link_precedence == LinkPrecedence.PRIMARY.value

    def is_secondary(self):
        """Check if this is a secondary contact"""
        return self.link_precedence == LinkPrecedence.SECONDARY.value

    def seniority_key(self):
        """Sort key for group seniority: creation instant, then id"""
        return (self.created_at, self.id)

    def to_dict(self):
        """Convert contact to dictionary with formatted timestamps"""
        data = super().to_dict()

        if data.get("created_at"):
            data["created_at"] = data["created_at"].isoformat()
        if data.get("updated_at"):
            data["updated_at"] = data["updated_at"].isoformat()

        return data
