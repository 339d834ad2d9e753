"""
Schema validation tests for Identity Reconciliation API
Covers request cleaning, numeric phone canonicalisation and the
response/error models.
"""

import pytest
from pydantic import ValidationError

from schemas import IdentifyRequest, ContactResponse, IdentifyResponse, ErrorResponse, canonicalize_identifier


@pytest.mark.parametrize("payload, expected", [
    ({"email": "test@example.com", "phoneNumber": "+1234567890"}, ("test@example.com", "+1234567890")),
    ({"email": "user@domain.org"}, ("user@domain.org", None)),
    ({"phoneNumber": "123456"}, (None, "123456")),
    ({"phoneNumber": 123456}, (None, "123456")),
    ({"email": "  padded@example.com ", "phoneNumber": " 42 "}, ("padded@example.com", "42")),
    ({"email": "null", "phoneNumber": "NULL"}, (None, None)),
    ({"email": "", "phoneNumber": None}, (None, None)),
])
def test_identify_request_cleans_identifiers(payload, expected):
    request = IdentifyRequest(**payload)
    assert (request.email, request.phoneNumber) == expected


def test_identify_request_allows_empty_submission():
    # The engine, not the schema, rejects submissions without identifiers
    request = IdentifyRequest()
    assert request.email is None
    assert request.phoneNumber is None


@pytest.mark.parametrize("payload", [
    {"email": "invalid-email"},
    {"email": 12345},
    {"phoneNumber": True},
    {"phoneNumber": 12.5},
    {"phoneNumber": ["123"]},
    {"email": "a@" + "x" * 254},
    {"phoneNumber": "1" * 33},
])
def test_identify_request_rejects_malformed_values(payload):
    with pytest.raises(ValidationError):
        IdentifyRequest(**payload)


@pytest.mark.parametrize("value, expected", [
    (None, None),
    ("", None),
    ("   ", None),
    (" abc ", "abc"),
    (987654, "987654"),
    (987654.0, "987654"),
])
def test_canonicalize_identifier(value, expected):
    assert canonicalize_identifier(value) == expected


def test_identify_response_serializes_contact():
    contact = ContactResponse(
        primaryContactId=1,
        emails=["primary@example.com", "secondary@example.com"],
        phoneNumbers=["123456"],
        secondaryContactIds=[2, 3]
    )
    response = IdentifyResponse(contact=contact)

    assert response.model_dump() == {
        "contact": {
            "primaryContactId": 1,
            "emails": ["primary@example.com", "secondary@example.com"],
            "phoneNumbers": ["123456"],
            "secondaryContactIds": [2, 3],
        }
    }


def test_error_response_details_optional():
    error = ErrorResponse(error="ValidationError", message="at least one identifier required")
    assert error.model_dump() == {
        "error": "ValidationError",
        "message": "at least one identifier required",
        "details": None,
    }
