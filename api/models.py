"""
API Response Models.

Pydantic models for serializing partner lead responses. The request body is
validated by services/submission_schema.py inside the ingestion pipeline.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel


# ============================================================================
# Partner Lead Models
# ============================================================================

class QualityResponse(BaseModel):
    """Lead quality score. Null when scoring failed after the lead was recorded."""
    score: Optional[int] = None
    grade: Optional[str] = None  # "A", "B", "C" or "D"


class RateLimitResponse(BaseModel):
    limit: int
    remaining: int
    reset_at: datetime


class PartnerLeadResponse(BaseModel):
    """Response for a recorded lead."""
    success: bool = True
    lead_id: UUID
    dispatched: bool
    target_organization: Optional[str] = None
    status: str  # "RECEIVED" or "DISPATCHED"
    quality: QualityResponse
    rate_limit: RateLimitResponse

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "lead_id": "123e4567-e89b-12d3-a456-426614174000",
                "dispatched": True,
                "target_organization": "Formation Lyon Nord",
                "status": "DISPATCHED",
                "quality": {"score": 85, "grade": "A"},
                "rate_limit": {
                    "limit": 100,
                    "remaining": 99,
                    "reset_at": "2026-10-18T10:30:00Z"
                }
            }
        }


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Rejected submission. `error` is a stable machine-readable code."""
    success: bool = False
    error: str
    message: str
    details: Optional[Dict[str, List[str]]] = None
    retry_after_seconds: Optional[int] = None
    rate_limit: Optional[RateLimitResponse] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "COMPLIANCE_DPA_MISSING",
                "message": "Data processing agreement has not been signed."
            }
        }
