"""
Partner lead ingestion pipeline.

Handles:
- API key authentication (sha256 lookup, ACTIVE partners only)
- Per-partner admission control
- Compliance gate (audited on rejection)
- Strict payload validation
- Atomic persistence of lead + consent + partner counter
- Post-commit scoring and territory routing (failures logged, never surfaced)
- Post-commit audit and notification on the side channel

Stages run strictly in that order. Nothing is retried: a failed persistence is
reported to the partner, who owns the retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Protocol
from uuid import UUID, uuid4

from domain.audit import AuditAction, AuditEntry
from domain.lead import PARTNER_API_SOURCE, ConsentRecord, Lead, LeadStatus
from domain.partner import Partner
from domain.time import to_utc, utc_now
from repositories.store import GatewayStore
from services.audit_service import log_partner_action
from services.compliance_gate import QualificationChecker, check_gates
from services.errors import (
    AuthenticationError,
    ComplianceError,
    EnrichmentError,
    IngestionError,
    PersistenceError,
    RateLimitError,
)
from services.lead_scoring import LeadScorer, LeadScoreResult, RuleBasedLeadScorer
from services.ownership_resolver import OwnershipIntegrityError, OwnershipResolution, resolve_owner_for_organization
from services.partner_credentials import hash_api_key
from services.rate_limiter import RateLimitDecision, RateLimiter
from services.side_channel import InlineSideChannel, SideChannel
from services.submission_schema import LeadSubmission, parse_submission
from services.territory_resolver import TerritoryMatch, route_lead

logger = logging.getLogger(__name__)

CONSENT_LEGAL_BASIS = "consent"
CONSENT_COLLECTION_METHOD = "external_partner_api"


class NotificationTrigger(Protocol):
    """Hands a newly recorded lead to the messaging automation."""

    def lead_received(self, lead: Lead, match: Optional[TerritoryMatch]) -> None: ...


class LoggingNotificationTrigger:
    """Default trigger: records the event in the application log."""

    def lead_received(self, lead: Lead, match: Optional[TerritoryMatch]) -> None:
        logger.info(
            "Lead received notification",
            extra={
                "lead_id": str(lead.lead_id),
                "organization_id": str(lead.organization_id),
                "site_id": str(match.site_id) if match else None,
            },
        )


@dataclass(frozen=True, slots=True)
class IngestionResult:
    lead_id: UUID
    dispatched: bool
    target_organization: Optional[str]
    status: LeadStatus
    score: Optional[int]
    grade: Optional[str]
    rate_limit: RateLimitDecision


class LeadIngestionService:
    def __init__(
        self,
        store: GatewayStore,
        rate_limiter: RateLimiter,
        scorer: Optional[LeadScorer] = None,
        qualification_checker: Optional[QualificationChecker] = None,
        notifier: Optional[NotificationTrigger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.scorer = scorer if scorer is not None else RuleBasedLeadScorer(store)
        self.qualification_checker = qualification_checker
        self.notifier = notifier if notifier is not None else LoggingNotificationTrigger()
        self._clock = clock

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def ingest(
        self,
        api_key: Optional[str],
        payload: Any,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        side_channel: Optional[SideChannel] = None,
    ) -> IngestionResult:
        """
        Run one submission to a terminal outcome.

        Raises:
            IngestionError: Subclass describing the rejection. Every error
                raised after admission carries the rate-limit decision.
        """
        side_channel = side_channel if side_channel is not None else InlineSideChannel()

        partner = self._authenticate(api_key)

        decision = self.rate_limiter.admit(partner.rate_limit_key, partner.hourly_limit)
        if not decision.allowed:
            raise RateLimitError(decision)

        try:
            return self._ingest_admitted(partner, payload, decision, client_ip, user_agent, side_channel)
        except IngestionError as e:
            e.rate_limit = decision
            raise

    def _authenticate(self, api_key: Optional[str]) -> Partner:
        if not api_key:
            raise AuthenticationError("Missing API key. Provide it in the X-API-Key header.")

        partner = self.store.get_partner_by_key_hash(hash_api_key(api_key))
        if partner is None or not partner.is_active():
            raise AuthenticationError("Invalid or inactive API key.")
        return partner

    def _ingest_admitted(
        self,
        partner: Partner,
        payload: Any,
        decision: RateLimitDecision,
        client_ip: Optional[str],
        user_agent: Optional[str],
        side_channel: SideChannel,
    ) -> IngestionResult:
        failure = check_gates(
            partner,
            store=self.store,
            checker=self.qualification_checker,
            as_of=self._clock(),
            side_channel=side_channel,
        )
        if failure is not None:
            raise ComplianceError(failure.code, failure.message)

        submission = parse_submission(payload)

        owner = self._resolve_owner(partner)
        lead, consent = self._build_records(partner, owner, submission, client_ip, user_agent)
        self._persist(lead, consent)

        # Lead is durable from here on; nothing below may fail the request.
        score_result = None
        try:
            score_result = self._score(lead, submission)
        except EnrichmentError:
            logger.warning("Lead scoring failed", exc_info=True, extra={"lead_id": str(lead.lead_id)})

        match = None
        try:
            match = self._route(lead)
        except EnrichmentError:
            logger.warning("Lead routing failed", exc_info=True, extra={"lead_id": str(lead.lead_id)})

        if score_result is not None:
            lead = lead.with_score(score_result.score)
        if match is not None:
            lead = lead.dispatched_to(match.site_id)

        self._submit_side_tasks(side_channel, partner, lead, score_result, match)

        logger.info(
            "Partner lead ingested",
            extra={
                "lead_id": str(lead.lead_id),
                "partner_id": str(partner.partner_id),
                "dispatched": match is not None,
                "score": score_result.score if score_result else None,
            },
        )
        return IngestionResult(
            lead_id=lead.lead_id,
            dispatched=match is not None,
            target_organization=match.organization_name if match else None,
            status=lead.status,
            score=score_result.score if score_result else None,
            grade=score_result.grade if score_result else None,
            rate_limit=decision,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _resolve_owner(self, partner: Partner) -> OwnershipResolution:
        try:
            return resolve_owner_for_organization(self.store, partner.organization_id)
        except OwnershipIntegrityError as e:
            logger.error(
                "Cannot resolve accountable organization for partner",
                extra={"partner_id": str(partner.partner_id), "error": str(e)},
            )
            raise PersistenceError() from e

    def _build_records(
        self,
        partner: Partner,
        owner: OwnershipResolution,
        submission: LeadSubmission,
        client_ip: Optional[str],
        user_agent: Optional[str],
    ) -> tuple[Lead, ConsentRecord]:
        now = self._clock()
        lead = Lead(
            lead_id=uuid4(),
            organization_id=owner.organization_id,
            postal_code=submission.postal_code,
            created_at=now,
            partner_id=partner.partner_id,
            first_name=submission.first_name,
            last_name=submission.last_name,
            email=str(submission.email),
            phone=submission.phone,
            street_address=submission.street_address,
            city=submission.city,
            desired_program=submission.desired_program,
            message=submission.message,
            response_date=to_utc(submission.response_date) if submission.response_date else None,
            source=PARTNER_API_SOURCE,
            source_ref=submission.external_id,
            source_url=str(submission.source_url),
        )
        consent = ConsentRecord(
            lead_id=lead.lead_id,
            consent_given=True,
            consent_text=submission.consent_text,
            legal_basis=CONSENT_LEGAL_BASIS,
            collection_method=CONSENT_COLLECTION_METHOD,
            collected_at=to_utc(submission.consent_date),
            recorded_at=now,
            ip_address=client_ip,
            user_agent=user_agent,
        )
        return lead, consent

    def _persist(self, lead: Lead, consent: ConsentRecord) -> None:
        try:
            self.store.persist_submission(lead, consent)
        except Exception as e:
            logger.exception(
                "Atomic lead persistence failed",
                extra={"lead_id": str(lead.lead_id), "partner_id": str(lead.partner_id)},
            )
            raise PersistenceError() from e

    def _score(self, lead: Lead, submission: LeadSubmission) -> LeadScoreResult:
        try:
            result = self.scorer.score(submission, lead.organization_id)
            self.store.update_lead_score(lead.lead_id, result.score)
            return result
        except Exception as e:
            raise EnrichmentError(f"Scoring failed for lead {lead.lead_id}") from e

    def _route(self, lead: Lead) -> Optional[TerritoryMatch]:
        try:
            return route_lead(self.store, lead)
        except Exception as e:
            raise EnrichmentError(f"Routing failed for lead {lead.lead_id}") from e

    def _submit_side_tasks(
        self,
        side_channel: SideChannel,
        partner: Partner,
        lead: Lead,
        score_result: Optional[LeadScoreResult],
        match: Optional[TerritoryMatch],
    ) -> None:
        store = self.store

        summary = {
            "lead_id": str(lead.lead_id),
            "score": score_result.score if score_result else None,
            "grade": score_result.grade if score_result else None,
            "dispatched": match is not None,
            "target_organization": match.organization_name if match else None,
        }
        created = AuditEntry(
            partner_id=partner.partner_id,
            organization_id=lead.organization_id,
            action=AuditAction.CREATED,
            details=f"Lead {lead.lead_id} received via partner API",
            new_value=summary,
        )
        side_channel.submit("audit:created", lambda: log_partner_action(store, created))

        if score_result is not None:
            scored = AuditEntry(
                partner_id=partner.partner_id,
                organization_id=lead.organization_id,
                action=AuditAction.LEAD_SCORED,
                details=f"Lead {lead.lead_id} scored",
                previous_value={"score": None},
                new_value={"score": score_result.score, "grade": score_result.grade},
            )
            side_channel.submit("audit:scored", lambda: log_partner_action(store, scored))

        if match is not None:
            dispatched = AuditEntry(
                partner_id=partner.partner_id,
                organization_id=lead.organization_id,
                action=AuditAction.LEAD_DISPATCHED,
                details=f"Lead {lead.lead_id} dispatched to {match.organization_name}",
                previous_value={"site_id": None, "status": LeadStatus.RECEIVED.value},
                new_value={"site_id": str(match.site_id), "status": LeadStatus.DISPATCHED.value},
            )
            side_channel.submit("audit:dispatched", lambda: log_partner_action(store, dispatched))

        notifier = self.notifier
        side_channel.submit("notify:lead_received", lambda: notifier.lead_received(lead, match))
