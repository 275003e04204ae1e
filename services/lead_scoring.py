"""
Lead quality scoring.

The ingestion pipeline depends only on the LeadScorer protocol. The default
RuleBasedLeadScorer grades a submission on eight criteria totalling 100 points:

    Email             15   (disposable 0, free webmail 8)
    Phone             10
    Address           10
    Desired program   15
    Consent text      10
    Source URL        10
    Duplicate email   15   (within the accountable organization)
    Response delay    15

Grades: A >= 80, B >= 60, C >= 40, otherwise D.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Protocol
from uuid import UUID

from domain.time import utc_now
from repositories.store import GatewayStore
from services.submission_schema import LeadSubmission

logger = logging.getLogger(__name__)

DISPOSABLE_EMAIL_DOMAINS = (
    "yopmail.com",
    "mailinator.com",
    "guerrillamail.com",
    "tempmail.com",
    "throwaway.email",
    "sharklasers.com",
    "trashmail.com",
    "temp-mail.org",
    "fakeinbox.com",
    "dispostable.com",
    "maildrop.cc",
    "10minutemail.com",
)
FREE_WEBMAIL_DOMAINS = frozenset({"gmail.com", "yahoo.com", "hotmail.com", "outlook.com", "live.com"})

_PHONE_SEPARATORS = re.compile(r"[\s\-.()]")


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    criterion: str
    max_points: int
    earned_points: int
    reason: str


@dataclass(frozen=True, slots=True)
class LeadScoreResult:
    score: int
    grade: str
    breakdown: List[ScoreBreakdown] = field(default_factory=list)


class LeadScorer(Protocol):
    def score(self, submission: LeadSubmission, organization_id: UUID) -> LeadScoreResult: ...


def score_to_grade(score: int) -> str:
    if score >= 80:
        return "A"
    if score >= 60:
        return "B"
    if score >= 40:
        return "C"
    return "D"


def _score_email(email: str) -> ScoreBreakdown:
    domain = email.rsplit("@", 1)[-1].lower() if "@" in email else ""
    if any(domain.endswith(d) for d in DISPOSABLE_EMAIL_DOMAINS):
        return ScoreBreakdown("email", 15, 0, "Disposable email domain")
    if domain in FREE_WEBMAIL_DOMAINS:
        return ScoreBreakdown("email", 15, 8, "Free webmail address")
    return ScoreBreakdown("email", 15, 15, "Professional email address")


def _score_phone(phone: str) -> ScoreBreakdown:
    digits = _PHONE_SEPARATORS.sub("", phone)
    if len(digits) >= 10:
        return ScoreBreakdown("phone", 10, 10, "Complete phone number")
    if len(digits) >= 6:
        return ScoreBreakdown("phone", 10, 5, "Short phone number")
    return ScoreBreakdown("phone", 10, 0, "Phone missing or too short")


def _score_address(street: str, postal_code: str, city: str) -> ScoreBreakdown:
    has_street = len(street or "") >= 5
    has_postal_code = len(postal_code or "") == 5
    has_city = len(city or "") >= 2

    if has_street and has_postal_code and has_city:
        return ScoreBreakdown("address", 10, 10, "Street, postal code and city present")
    if has_postal_code and has_city:
        return ScoreBreakdown("address", 10, 6, "Street incomplete")
    if has_postal_code:
        return ScoreBreakdown("address", 10, 3, "Postal code only")
    return ScoreBreakdown("address", 10, 0, "Address incomplete")


def _score_program(program: str) -> ScoreBreakdown:
    length = len((program or "").strip())
    if length == 0:
        return ScoreBreakdown("desired_program", 15, 0, "Desired program missing")
    if length >= 10:
        return ScoreBreakdown("desired_program", 15, 15, "Detailed desired program")
    if length >= 3:
        return ScoreBreakdown("desired_program", 15, 8, "Desired program lacks detail")
    return ScoreBreakdown("desired_program", 15, 3, "Desired program too vague")


def _score_consent(consent_text: str) -> ScoreBreakdown:
    length = len(consent_text.strip())
    if length >= 50:
        return ScoreBreakdown("consent", 10, 10, "Detailed consent text")
    if length >= 30:
        return ScoreBreakdown("consent", 10, 7, "Acceptable consent text")
    if length >= 10:
        return ScoreBreakdown("consent", 10, 4, "Short consent text")
    return ScoreBreakdown("consent", 10, 0, "Minimal consent text")


def _score_source_url(source_url: str) -> ScoreBreakdown:
    scheme = source_url.split(":", 1)[0].lower() if ":" in source_url else ""
    if scheme == "https":
        return ScoreBreakdown("source_url", 10, 10, "HTTPS source URL")
    if scheme:
        return ScoreBreakdown("source_url", 10, 5, "Source URL is not HTTPS")
    return ScoreBreakdown("source_url", 10, 0, "Invalid source URL")


def _score_response_delay(response_date: Optional[datetime], now: datetime) -> ScoreBreakdown:
    if response_date is None:
        return ScoreBreakdown("response_delay", 15, 0, "Response date not provided")

    hours = (now - response_date).total_seconds() / 3600
    if hours <= 24:
        return ScoreBreakdown("response_delay", 15, 15, "Responded within 24h")
    if hours <= 48:
        return ScoreBreakdown("response_delay", 15, 10, "Responded within 48h")
    if hours <= 72:
        return ScoreBreakdown("response_delay", 15, 5, "Responded within 72h")
    return ScoreBreakdown("response_delay", 15, 2, "Cold lead (over 72h)")


class RuleBasedLeadScorer:
    """
    Default scorer.

    The duplicate check reads prior leads of the same organization from the
    store. It must run before the new lead is persisted, or the lead would
    count as its own duplicate; the ingestion service scores after commit and
    therefore subtracts the just-written row (see `exclude_self`).
    """

    def __init__(self, store: GatewayStore, clock: Callable[[], datetime] = utc_now, exclude_self: bool = True):
        self.store = store
        self._clock = clock
        self.exclude_self = exclude_self

    def _score_duplicates(self, email: str, organization_id: UUID) -> ScoreBreakdown:
        try:
            existing = self.store.count_leads_with_email(organization_id, email)
        except Exception:
            logger.warning("Duplicate check unavailable", exc_info=True, extra={"organization_id": str(organization_id)})
            return ScoreBreakdown("uniqueness", 15, 10, "Duplicate check unavailable")

        if self.exclude_self:
            existing = max(0, existing - 1)
        if existing > 0:
            return ScoreBreakdown("uniqueness", 15, 0, f"{existing} existing lead(s) with this email")
        return ScoreBreakdown("uniqueness", 15, 15, "No duplicate found")

    def score(self, submission: LeadSubmission, organization_id: UUID) -> LeadScoreResult:
        breakdown = [
            _score_email(str(submission.email)),
            _score_phone(submission.phone),
            _score_address(submission.street_address, submission.postal_code, submission.city),
            _score_program(submission.desired_program),
            _score_consent(submission.consent_text),
            _score_source_url(str(submission.source_url)),
            self._score_duplicates(str(submission.email), organization_id),
            _score_response_delay(submission.response_date, self._clock()),
        ]
        total = sum(item.earned_points for item in breakdown)
        return LeadScoreResult(score=total, grade=score_to_grade(total), breakdown=breakdown)
