"""
Pydantic schemas for the /identify endpoint
Handles request validation and response serialization, plus the
identifier canonicalisation shared with the reconciliation engine
"""

from typing import List, Optional, Dict, Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.contact import EMAIL_MAX_LENGTH, PHONE_NUMBER_MAX_LENGTH


def canonicalize_identifier(value: Union[str, int, None]) -> Optional[str]:
    """
    Canonical string form of an email or phone number

    None and blank strings mean "not provided", integers become their
    decimal string and strings lose surrounding whitespace, so " 123 " and
    "123" are the same key. Matching is exact on the result; case, inner
    whitespace and punctuation are never rewritten.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("Identifier must be a string or number")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("Phone number must be a whole number")
        value = int(value)
    if isinstance(value, int):
        return str(value)
    if not isinstance(value, str):
        raise ValueError("Identifier must be a string or number")

    value = value.strip()
    return value or None


def _is_null_literal(value) -> bool:
    return isinstance(value, str) and value.strip().lower() == "null"


class IdentifyRequest(BaseModel):
    """
    Request schema for the /identify endpoint
    Handles "null" strings by converting them to None; whether at least one
    identifier was supplied is decided by the reconciliation engine
    """
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"email": "customer@example.com", "phoneNumber": "123456"},
                {"email": "customer@example.com", "phoneNumber": None},
                {"email": None, "phoneNumber": 123456},
            ]
        },
    )

    email: Optional[str] = Field(
        None,
        max_length=EMAIL_MAX_LENGTH,
        description="Customer email address",
        examples=["customer@example.com", None]
    )
    phoneNumber: Optional[str] = Field(
        None,
        max_length=PHONE_NUMBER_MAX_LENGTH,
        description="Customer phone number, as a string or a number",
        examples=["123456", 123456, None]
    )

    @field_validator('email', mode='before')
    @classmethod
    def validate_email(cls, v) -> Optional[str]:
        """Converts "null" strings to None and requires an @ in real values"""
        if _is_null_literal(v):
            return None
        if v is not None and not isinstance(v, str):
            raise ValueError('Email must be a string')

        v = canonicalize_identifier(v)
        if v is not None and '@' not in v:
            raise ValueError('Invalid email format: email must contain @')
        return v

    @field_validator('phoneNumber', mode='before')
    @classmethod
    def validate_phone_number(cls, v) -> Optional[str]:
        """Converts "null" strings to None and numbers to their string form"""
        if _is_null_literal(v):
            return None
        return canonicalize_identifier(v)


class ContactResponse(BaseModel):
    """
    Consolidated identity of one contact group

    Emails and phone numbers are deduplicated, primary contact values first,
    then secondary values in creation order.
    """
    primaryContactId: int = Field(
        description="ID of the primary contact"
    )
    emails: List[str] = Field(
        description="All email addresses associated with this contact",
        examples=[["customer@example.com", "customer2@example.com"]]
    )
    phoneNumbers: List[str] = Field(
        description="All phone numbers associated with this contact",
        examples=[["123456", "654321"]]
    )
    secondaryContactIds: List[int] = Field(
        description="IDs of all secondary contacts linked to the primary",
        examples=[[2, 3, 4]]
    )


class IdentifyResponse(BaseModel):
    """
    Response schema for the /identify endpoint
    Contains the consolidated contact information
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "contact": {
                    "primaryContactId": 1,
                    "emails": ["customer@example.com", "customer2@example.com"],
                    "phoneNumbers": ["123456", "654321"],
                    "secondaryContactIds": [2, 3]
                }
            }
        }
    )

    contact: ContactResponse = Field(
        description="Consolidated contact information"
    )


class ErrorResponse(BaseModel):
    """
    Error response schema for API errors
    """
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "error": "ValidationError",
                    "message": "at least one identifier required",
                },
                {
                    "error": "StoreTimeoutError",
                    "message": "Contact store did not respond in time, please retry"
                }
            ]
        }
    )

    error: str = Field(
        description="Error type or category"
    )
    message: str = Field(
        description="Human-readable error message"
    )
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error details"
    )
