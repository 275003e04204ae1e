"""
Partner lead submission schema.

Validated inside the ingestion service (after authentication, admission control
and the compliance gate) rather than by FastAPI, so that a malformed body from
an unknown or blocked partner never reaches schema validation.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import AnyUrl, AwareDatetime, BaseModel, ConfigDict, EmailStr, Field, ValidationError

from services.errors import SubmissionValidationError

CONSENT_TEXT_MIN_LENGTH = 10


class LeadSubmission(BaseModel):
    """Body of POST /api/v1/partners/leads."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "first_name": "Camille",
                "last_name": "Durand",
                "email": "camille.durand@example.fr",
                "phone": "06 12 34 56 78",
                "street_address": "12 rue de la Paix",
                "postal_code": "75001",
                "city": "Paris",
                "desired_program": "Certificat de compétences en bureautique",
                "source_url": "https://partner.example.com/formulaire",
                "consent_date": "2026-10-18T09:30:00+02:00",
                "consent_text": "J'accepte que mes données soient transmises à un organisme de formation.",
                "response_date": "2026-10-18T09:31:00+02:00",
                "external_id": "PARTNER-000123",
            }
        },
    )

    # Identity
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=6, max_length=30)

    # Address
    street_address: str = Field(..., min_length=3, max_length=255)
    postal_code: str = Field(..., pattern=r"^[0-9]{5}$")
    city: str = Field(..., min_length=2, max_length=100)

    # Request
    desired_program: str = Field(..., min_length=2, max_length=255)
    message: Optional[str] = Field(None, max_length=2000)
    response_date: Optional[AwareDatetime] = None

    # Provenance and consent
    source_url: AnyUrl
    consent_date: AwareDatetime
    consent_text: str = Field(..., min_length=CONSENT_TEXT_MIN_LENGTH)
    external_id: Optional[str] = Field(None, max_length=100)


def _field_details(error: ValidationError) -> Dict[str, List[str]]:
    details: Dict[str, List[str]] = {}
    for item in error.errors():
        loc = item.get("loc") or ()
        field_name = ".".join(str(part) for part in loc) or "body"
        details.setdefault(field_name, []).append(item.get("msg", "Invalid value"))
    return details


def parse_submission(payload: Any) -> LeadSubmission:
    """
    Validate a decoded JSON body.

    Raises:
        SubmissionValidationError: With messages keyed by field name
    """
    if not isinstance(payload, dict):
        raise SubmissionValidationError({"body": ["Request body must be a JSON object"]})

    try:
        return LeadSubmission.model_validate(payload)
    except ValidationError as e:
        raise SubmissionValidationError(_field_details(e)) from e
