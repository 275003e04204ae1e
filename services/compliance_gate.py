"""
Compliance gate for partner submissions.

Ordered, short-circuiting chain of legal prerequisites checked before any
payload is read:

1. Data-processing agreement signed   -> COMPLIANCE_DPA_MISSING
2. Partner contract signed            -> COMPLIANCE_CONTRACT_MISSING
3. Partner contract not expired       -> COMPLIANCE_CONTRACT_EXPIRED
4. Quality qualification (pluggable)  -> QUALIOPI_* codes

The first failing gate wins. Each failure writes a LEAD_REJECTED_COMPLIANCE
audit entry when a store is supplied; that write is best-effort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from domain.partner import Partner
from domain.time import utc_now
from repositories.store import GatewayStore
from services.audit_service import log_compliance_rejection
from services.side_channel import SideChannel

logger = logging.getLogger(__name__)

DPA_MISSING = "COMPLIANCE_DPA_MISSING"
CONTRACT_MISSING = "COMPLIANCE_CONTRACT_MISSING"
CONTRACT_EXPIRED = "COMPLIANCE_CONTRACT_EXPIRED"
CONVENTION_MISSING = "QUALIOPI_CONVENTION_MISSING"
CONVENTION_EXPIRED = "QUALIOPI_CONVENTION_EXPIRED"
SCORE_INSUFFICIENT = "QUALIOPI_SCORE_INSUFFICIENT"

MIN_QUALIFICATION_SCORE = 60


@dataclass(frozen=True, slots=True)
class GateFailure:
    code: str
    message: str


@dataclass(frozen=True, slots=True)
class QualificationResult:
    passed: bool
    code: Optional[str] = None
    reason: Optional[str] = None


class QualificationChecker(Protocol):
    def check(self, partner: Partner, as_of: datetime) -> QualificationResult: ...


class SnapshotQualificationChecker:
    """
    Checks the qualification snapshot stored alongside the partner.

    A partner without a snapshot passes: qualification files are only opened
    for partners above a volume threshold, and their absence is not a breach.
    """

    def __init__(self, min_score: int = MIN_QUALIFICATION_SCORE):
        self.min_score = min_score

    def check(self, partner: Partner, as_of: datetime) -> QualificationResult:
        qualification = partner.qualification
        if qualification is None:
            logger.warning(
                "Partner has no qualification record; gate passed",
                extra={"partner_id": str(partner.partner_id)},
            )
            return QualificationResult(passed=True)

        if qualification.convention_signed_at is None:
            return QualificationResult(
                passed=False,
                code=CONVENTION_MISSING,
                reason="Partnership convention has not been signed.",
            )

        if qualification.convention_expires_at is not None and qualification.convention_expires_at < as_of:
            return QualificationResult(
                passed=False,
                code=CONVENTION_EXPIRED,
                reason="Partnership convention has expired.",
            )

        if not qualification.is_qualified or qualification.qualification_score < self.min_score:
            return QualificationResult(
                passed=False,
                code=SCORE_INSUFFICIENT,
                reason=(
                    f"Qualification score {qualification.qualification_score}/100 "
                    f"is below the required {self.min_score}."
                ),
            )

        return QualificationResult(passed=True)


def _first_failure(partner: Partner, checker: QualificationChecker, as_of: datetime) -> Optional[GateFailure]:
    if partner.dpa_signed_at is None:
        return GateFailure(DPA_MISSING, "Data processing agreement has not been signed.")

    if partner.contract_signed_at is None:
        return GateFailure(CONTRACT_MISSING, "Partner contract has not been signed.")

    if partner.contract_expired(as_of):
        return GateFailure(CONTRACT_EXPIRED, "Partner contract has expired.")

    result = checker.check(partner, as_of)
    if not result.passed:
        return GateFailure(
            result.code or SCORE_INSUFFICIENT,
            result.reason or "Partner qualification check failed.",
        )
    return None


def check_gates(
    partner: Partner,
    store: Optional[GatewayStore] = None,
    checker: Optional[QualificationChecker] = None,
    as_of: Optional[datetime] = None,
    side_channel: Optional[SideChannel] = None,
) -> Optional[GateFailure]:
    """
    Run the compliance chain for a partner.

    The rejection audit goes through `side_channel` when one is given, and is
    written inline otherwise.

    Returns:
        None when every gate passes, otherwise the first failure
    """
    failure = _first_failure(
        partner,
        checker if checker is not None else SnapshotQualificationChecker(),
        as_of if as_of is not None else utc_now(),
    )
    if failure is None:
        return None

    logger.warning(
        "Partner submission blocked by compliance gate",
        extra={"partner_id": str(partner.partner_id), "rejection_code": failure.code},
    )
    if store is not None:
        if side_channel is not None:
            side_channel.submit(
                "audit:compliance_rejection",
                lambda: log_compliance_rejection(store, partner, failure.code, failure.message),
            )
        else:
            log_compliance_rejection(store, partner, failure.code, failure.message)
    return failure
