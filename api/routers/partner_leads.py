"""
Partner Leads API Endpoints.

Single submission endpoint for external lead providers.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from api.dependencies import get_ingestion_service
from api.models import ErrorResponse, PartnerLeadResponse, QualityResponse, RateLimitResponse
from services.errors import IngestionError, RateLimitError, SubmissionValidationError
from services.lead_ingestion_service import LeadIngestionService
from services.rate_limiter import RateLimitDecision, rate_limit_headers
from services.side_channel import BackgroundTasksSideChannel

logger = logging.getLogger(__name__)

router = APIRouter()

API_KEY_HEADER = "X-API-Key"

# Returned to the pipeline when the body is not JSON; it fails validation.
_UNDECODABLE_BODY = object()


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def _rate_limit_model(decision: RateLimitDecision) -> RateLimitResponse:
    return RateLimitResponse(limit=decision.limit, remaining=decision.remaining, reset_at=decision.reset_at)


def _error_response(error: IngestionError) -> JSONResponse:
    body = ErrorResponse(error=error.code, message=error.message)
    headers: Dict[str, str] = {}

    if isinstance(error, SubmissionValidationError):
        body.details = error.details
    if isinstance(error, RateLimitError):
        body.retry_after_seconds = error.retry_after_seconds
    if error.rate_limit is not None:
        body.rate_limit = _rate_limit_model(error.rate_limit)
        headers = rate_limit_headers(error.rate_limit)

    return JSONResponse(
        status_code=error.http_status,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


@router.post(
    "/partners/leads",
    status_code=201,
    response_model=PartnerLeadResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Payload failed validation"},
        401: {"model": ErrorResponse, "description": "Missing, unknown or inactive API key"},
        403: {"model": ErrorResponse, "description": "Compliance gate failed"},
        429: {"model": ErrorResponse, "description": "Hourly submission limit exceeded"},
        500: {"model": ErrorResponse, "description": "Internal error"},
    },
    summary="Submit Partner Lead",
    description="Submit a candidate lead on behalf of the partner identified by the X-API-Key header.",
)
async def submit_partner_lead(
    request: Request,
    background_tasks: BackgroundTasks,
    service: LeadIngestionService = Depends(get_ingestion_service),
):
    """
    Submit a lead.

    **Process:**
    1. Authenticates the partner from the `X-API-Key` header
    2. Applies the partner's hourly submission limit
    3. Checks compliance prerequisites (DPA, contract, qualification)
    4. Validates the payload
    5. Records the lead and its consent atomically
    6. Scores lead quality and routes it to a franchise territory

    Every response past step 2 carries `X-RateLimit-*` headers.

    **Success response (201):**
    ```json
    {
      "success": true,
      "lead_id": "123e4567-e89b-12d3-a456-426614174000",
      "dispatched": false,
      "target_organization": null,
      "status": "RECEIVED",
      "quality": {"score": 72, "grade": "B"},
      "rate_limit": {"limit": 100, "remaining": 99, "reset_at": "2026-10-18T10:30:00Z"}
    }
    ```

    **Failure response (400):**
    ```json
    {
      "success": false,
      "error": "VALIDATION_FAILED",
      "message": "Submission payload failed validation.",
      "details": {"consent_text": ["String should have at least 10 characters"]}
    }
    ```
    """
    try:
        payload: Any = await request.json()
    except ValueError:
        payload = _UNDECODABLE_BODY

    try:
        result = await run_in_threadpool(
            service.ingest,
            request.headers.get(API_KEY_HEADER),
            payload,
            _client_ip(request),
            request.headers.get("user-agent"),
            BackgroundTasksSideChannel(background_tasks),
        )
    except IngestionError as e:
        return _error_response(e)
    except Exception:
        logger.exception("Unexpected error while ingesting partner lead")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="INTERNAL_ERROR", message="An internal error occurred.").model_dump(
                mode="json", exclude_none=True
            ),
        )

    body = PartnerLeadResponse(
        lead_id=result.lead_id,
        dispatched=result.dispatched,
        target_organization=result.target_organization,
        status=result.status.value,
        quality=QualityResponse(score=result.score, grade=result.grade),
        rate_limit=_rate_limit_model(result.rate_limit),
    )
    return JSONResponse(
        status_code=201,
        content=body.model_dump(mode="json"),
        headers=rate_limit_headers(result.rate_limit),
    )
