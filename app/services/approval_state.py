# app/services/approval_state.py
"""
Approval state machine — pure functions, no DB access.

  AWAITING_MENTOR ──forward──▶ AWAITING_HOD ──approve──▶ APPROVED
        │                            │
        └──reject──▶ REJECTED ◀──reject──┘

derive_status() is the only place a status is computed. Everything that
stores, filters on or displays a status goes through it.
"""

import enum
from dataclasses import dataclass
from typing import Optional, Union

from app.errors import InvalidInputError, InvalidStateError
from app.models.enums import PassStatus, MentorOutcome, HodOutcome


class MentorAction(str, enum.Enum):
    FORWARD = "FORWARD"
    REJECT = "REJECT"


class HodAction(str, enum.Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


@dataclass(frozen=True)
class Transition:
    expected: PassStatus
    outcome: Union[MentorOutcome, HodOutcome]
    comment_required: bool


MENTOR_TRANSITIONS = {
    MentorAction.FORWARD: Transition(PassStatus.AWAITING_MENTOR, MentorOutcome.FORWARDED, False),
    MentorAction.REJECT: Transition(PassStatus.AWAITING_MENTOR, MentorOutcome.REJECTED, True),
}

HOD_TRANSITIONS = {
    HodAction.APPROVE: Transition(PassStatus.AWAITING_HOD, HodOutcome.APPROVED, False),
    HodAction.REJECT: Transition(PassStatus.AWAITING_HOD, HodOutcome.REJECTED, True),
}


def derive_status(mentor_outcome: Optional[MentorOutcome],
                  hod_outcome: Optional[HodOutcome]) -> PassStatus:
    if mentor_outcome is None:
        return PassStatus.AWAITING_MENTOR
    if mentor_outcome is MentorOutcome.REJECTED:
        return PassStatus.REJECTED
    if hod_outcome is None:
        return PassStatus.AWAITING_HOD
    if hod_outcome is HodOutcome.APPROVED:
        return PassStatus.APPROVED
    return PassStatus.REJECTED


def normalize_comment(comment: Optional[str], required: bool) -> Optional[str]:
    """Trim a decision comment. Empty optional comments become None."""
    text = (comment or "").strip()
    if required and not text:
        raise InvalidInputError("A comment is required when rejecting a pass")
    return text or None


def _lookup(table, action_type, action) -> Transition:
    try:
        return table[action_type(action)]
    except ValueError:
        raise InvalidInputError(f"Unknown action: {action}")


@dataclass(frozen=True)
class PlannedDecision:
    transition: Transition
    comment: Optional[str]
    new_status: PassStatus


def plan_mentor_decision(mentor_outcome: Optional[MentorOutcome], hod_outcome: Optional[HodOutcome],
                         action: Union[MentorAction, str], comment: Optional[str]) -> PlannedDecision:
    transition = _lookup(MENTOR_TRANSITIONS, MentorAction, action)
    text = normalize_comment(comment, transition.comment_required)
    current = derive_status(mentor_outcome, hod_outcome)
    if current is not transition.expected:
        raise InvalidStateError(f"Pass is {current.value}, mentor can only act on {transition.expected.value}")
    return PlannedDecision(transition, text, derive_status(transition.outcome, hod_outcome))


def plan_hod_decision(mentor_outcome: Optional[MentorOutcome], hod_outcome: Optional[HodOutcome],
                      action: Union[HodAction, str], comment: Optional[str]) -> PlannedDecision:
    transition = _lookup(HOD_TRANSITIONS, HodAction, action)
    text = normalize_comment(comment, transition.comment_required)
    current = derive_status(mentor_outcome, hod_outcome)
    if current is not transition.expected:
        raise InvalidStateError(f"Pass is {current.value}, HOD can only act on {transition.expected.value}")
    return PlannedDecision(transition, text, derive_status(mentor_outcome, transition.outcome))
