"""Unit tests for the pure approval state machine."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from app.errors import InvalidInputError, InvalidStateError
from app.models.enums import PassStatus, MentorOutcome, HodOutcome
from app.services.approval_state import (
    derive_status, plan_mentor_decision, plan_hod_decision, MentorAction, HodAction,
)


class TestDeriveStatus:
    @pytest.mark.parametrize("mentor_outcome, hod_outcome, expected", [
        (None, None, PassStatus.AWAITING_MENTOR),
        (MentorOutcome.FORWARDED, None, PassStatus.AWAITING_HOD),
        (MentorOutcome.REJECTED, None, PassStatus.REJECTED),
        (MentorOutcome.REJECTED, HodOutcome.APPROVED, PassStatus.REJECTED),
        (MentorOutcome.FORWARDED, HodOutcome.APPROVED, PassStatus.APPROVED),
        (MentorOutcome.FORWARDED, HodOutcome.REJECTED, PassStatus.REJECTED),
    ])
    def test_status_follows_decisions(self, mentor_outcome, hod_outcome, expected):
        assert derive_status(mentor_outcome, hod_outcome) is expected


class TestMentorTransitions:
    def test_forward_moves_to_hod(self):
        plan = plan_mentor_decision(None, None, MentorAction.FORWARD, "  ok  ")
        assert plan.transition.outcome is MentorOutcome.FORWARDED
        assert plan.new_status is PassStatus.AWAITING_HOD
        assert plan.comment == "ok"

    def test_forward_comment_optional(self):
        plan = plan_mentor_decision(None, None, "FORWARD", "   ")
        assert plan.comment is None

    def test_reject_requires_comment(self):
        with pytest.raises(InvalidInputError):
            plan_mentor_decision(None, None, MentorAction.REJECT, "")
        with pytest.raises(InvalidInputError):
            plan_mentor_decision(None, None, MentorAction.REJECT, "   ")

    def test_reject_keeps_comment(self):
        plan = plan_mentor_decision(None, None, MentorAction.REJECT, "No reason given")
        assert plan.new_status is PassStatus.REJECTED
        assert plan.comment == "No reason given"

    def test_second_decision_is_invalid_state(self):
        with pytest.raises(InvalidStateError):
            plan_mentor_decision(MentorOutcome.FORWARDED, None, MentorAction.FORWARD, None)

    def test_unknown_action(self):
        with pytest.raises(InvalidInputError):
            plan_mentor_decision(None, None, "APPROVE", None)


class TestHodTransitions:
    def test_hod_cannot_act_before_mentor(self):
        with pytest.raises(InvalidStateError):
            plan_hod_decision(None, None, HodAction.APPROVE, None)

    def test_hod_cannot_act_on_mentor_rejection(self):
        with pytest.raises(InvalidStateError):
            plan_hod_decision(MentorOutcome.REJECTED, None, HodAction.APPROVE, None)

    def test_approve(self):
        plan = plan_hod_decision(MentorOutcome.FORWARDED, None, HodAction.APPROVE, "")
        assert plan.new_status is PassStatus.APPROVED
        assert plan.comment is None

    def test_reject_requires_comment(self):
        with pytest.raises(InvalidInputError):
            plan_hod_decision(MentorOutcome.FORWARDED, None, HodAction.REJECT, None)

    def test_already_decided(self):
        with pytest.raises(InvalidStateError):
            plan_hod_decision(MentorOutcome.FORWARDED, HodOutcome.APPROVED, HodAction.REJECT, "late")
