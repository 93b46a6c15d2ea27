"""Tests for mentor / HOD decisions against a real database."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta, timezone

import pytest
from app.context import RequestContext, Role
from app.errors import InvalidInputError, InvalidStateError, ForbiddenError, NotFoundError
from app.models.enums import PassStatus, MentorOutcome, HodOutcome
from app.models.gate_pass import GatePass
from app.models.notification import Notification
from app.services.approval_service import (
    mentor_decide, hod_decide, mentor_queue, mentor_history, hod_queue, hod_rejected,
)
from app.services.approval_state import MentorAction, HodAction
from app.services.pass_service import create_pass
from app.services.period import to_epoch_ms
from conftest import NOW, student, mentor, hod, make_payload


def new_pass(db, student_ctx=None, **payload):
    return create_pass(db, student_ctx or student(), make_payload(**payload), now=NOW).gate_pass.id


def reload(db, pass_id):
    db.expire_all()
    return db.query(GatePass).filter(GatePass.id == pass_id).one()


class TestMentorDecision:
    def test_forward(self, db):
        pass_id = new_pass(db)
        result = mentor_decide(db, mentor(), pass_id, MentorAction.FORWARD, "ok", now=NOW)

        gate_pass = result.gate_pass
        assert gate_pass.status is PassStatus.AWAITING_HOD
        decision = gate_pass.mentor_decision
        assert decision.outcome == "FORWARDED"
        assert decision.actor_id == "men-1"
        assert decision.display_name == "Dr. Mentor"
        assert decision.comment == "ok"
        assert gate_pass.hod_decision is None

    def test_reject_with_comment(self, db):
        pass_id = new_pass(db)
        result = mentor_decide(db, mentor(), pass_id, MentorAction.REJECT, "Exams this week", now=NOW)
        assert result.gate_pass.status is PassStatus.REJECTED
        assert result.gate_pass.mentor_comment == "Exams this week"

    def test_reject_without_comment_keeps_status(self, db):
        pass_id = new_pass(db)
        with pytest.raises(InvalidInputError):
            mentor_decide(db, mentor(), pass_id, MentorAction.REJECT, "", now=NOW)
        gate_pass = reload(db, pass_id)
        assert gate_pass.status is PassStatus.AWAITING_MENTOR
        assert gate_pass.mentor_decision is None

    def test_second_decision_does_not_overwrite_first(self, db):
        pass_id = new_pass(db)
        mentor_decide(db, mentor(), pass_id, MentorAction.FORWARD, "ok", now=NOW)

        with pytest.raises(InvalidStateError):
            mentor_decide(db, mentor(), pass_id, MentorAction.REJECT, "changed my mind", now=NOW)
        with pytest.raises(InvalidStateError):
            mentor_decide(db, mentor(), pass_id, MentorAction.FORWARD, "retry", now=NOW)

        gate_pass = reload(db, pass_id)
        assert gate_pass.mentor_outcome is MentorOutcome.FORWARDED
        assert gate_pass.mentor_comment == "ok"
        assert gate_pass.status is PassStatus.AWAITING_HOD

    def test_stale_view_is_caught_by_update_guard(self, session_factory):
        setup = session_factory()
        pass_id = new_pass(setup)
        setup.close()

        first, second = session_factory(), session_factory()
        try:
            # `second` holds the pass in its identity map before `first` decides
            second.query(GatePass).filter(GatePass.id == pass_id).one()
            mentor_decide(first, mentor(), pass_id, MentorAction.FORWARD, "ok", now=NOW)

            with pytest.raises(InvalidStateError):
                mentor_decide(second, mentor(), pass_id, MentorAction.REJECT, "too late", now=NOW)

            gate_pass = reload(second, pass_id)
            assert gate_pass.mentor_outcome is MentorOutcome.FORWARDED
        finally:
            first.close()
            second.close()

    def test_only_assigned_mentor(self, db):
        pass_id = new_pass(db)
        with pytest.raises(ForbiddenError):
            mentor_decide(db, mentor("men-2"), pass_id, MentorAction.FORWARD, None, now=NOW)

    def test_hod_role_cannot_use_mentor_action(self, db):
        pass_id = new_pass(db)
        with pytest.raises(ForbiddenError):
            mentor_decide(db, hod(), pass_id, MentorAction.FORWARD, None, now=NOW)

    def test_unknown_pass(self, db):
        with pytest.raises(NotFoundError):
            mentor_decide(db, mentor(), "nope", MentorAction.FORWARD, None, now=NOW)

    def test_role_label_used_without_display_name(self, db):
        pass_id = new_pass(db)
        ctx = RequestContext("men-1", Role.MENTOR, None)
        result = mentor_decide(db, ctx, pass_id, MentorAction.FORWARD, None, now=NOW)
        assert result.gate_pass.mentor_display_name == "Mentor"

    def test_student_notified(self, db):
        pass_id = new_pass(db)
        mentor_decide(db, mentor(), pass_id, MentorAction.REJECT, "No", now=NOW)
        note = db.query(Notification).filter(Notification.recipient_id == "stu-1").one()
        assert note.kind == "pass_rejected"
        assert "No" in note.message


class TestHodDecision:
    def test_hod_before_mentor_is_invalid_state(self, db):
        pass_id = new_pass(db)
        with pytest.raises(InvalidStateError):
            hod_decide(db, hod(), pass_id, HodAction.APPROVE, "", now=NOW)
        assert reload(db, pass_id).status is PassStatus.AWAITING_MENTOR

    def test_hod_after_mentor_rejection_is_invalid_state(self, db):
        pass_id = new_pass(db)
        mentor_decide(db, mentor(), pass_id, MentorAction.REJECT, "No", now=NOW)
        with pytest.raises(InvalidStateError):
            hod_decide(db, hod(), pass_id, HodAction.APPROVE, None, now=NOW)
        assert reload(db, pass_id).hod_decision is None

    def test_approve_issues_token(self, db):
        pass_id = new_pass(db)
        mentor_decide(db, mentor(), pass_id, MentorAction.FORWARD, "ok", now=NOW)
        result = hod_decide(db, hod(), pass_id, HodAction.APPROVE, "", now=NOW)

        gate_pass = result.gate_pass
        assert gate_pass.status is PassStatus.APPROVED
        assert gate_pass.hod_decision.outcome == "APPROVED"
        assert gate_pass.hod_decision.comment is None
        end_of_day = datetime(2025, 9, 24, 18, 29, 59, 999000, tzinfo=timezone.utc)
        assert gate_pass.qr_expires_at == to_epoch_ms(end_of_day)
        assert f'"passId":"{pass_id}"' in gate_pass.qr_token

    def test_any_hod_may_act(self, db):
        pass_id = new_pass(db)
        mentor_decide(db, mentor(), pass_id, MentorAction.FORWARD, None, now=NOW)
        result = hod_decide(db, hod("hod-7", "Another Head"), pass_id, HodAction.APPROVE, None, now=NOW)
        assert result.gate_pass.hod_actor_id == "hod-7"

    def test_reject_requires_comment(self, db):
        pass_id = new_pass(db)
        mentor_decide(db, mentor(), pass_id, MentorAction.FORWARD, None, now=NOW)
        with pytest.raises(InvalidInputError):
            hod_decide(db, hod(), pass_id, HodAction.REJECT, "  ", now=NOW)
        assert reload(db, pass_id).status is PassStatus.AWAITING_HOD

    def test_reject(self, db):
        pass_id = new_pass(db)
        mentor_decide(db, mentor(), pass_id, MentorAction.FORWARD, None, now=NOW)
        result = hod_decide(db, hod(), pass_id, HodAction.REJECT, "Not justified", now=NOW)
        assert result.gate_pass.status is PassStatus.REJECTED
        assert result.gate_pass.hod_outcome is HodOutcome.REJECTED
        assert result.gate_pass.qr_token is None

    def test_duplicate_approval(self, db):
        pass_id = new_pass(db)
        mentor_decide(db, mentor(), pass_id, MentorAction.FORWARD, None, now=NOW)
        hod_decide(db, hod(), pass_id, HodAction.APPROVE, None, now=NOW)
        later = NOW + timedelta(hours=1)
        with pytest.raises(InvalidStateError):
            hod_decide(db, hod("hod-2"), pass_id, HodAction.APPROVE, None, now=later)
        assert reload(db, pass_id).hod_actor_id == "hod-1"

    def test_mentor_cannot_approve(self, db):
        pass_id = new_pass(db)
        mentor_decide(db, mentor(), pass_id, MentorAction.FORWARD, None, now=NOW)
        with pytest.raises(ForbiddenError):
            hod_decide(db, mentor(), pass_id, HodAction.APPROVE, None, now=NOW)


class TestQueues:
    def test_mentor_queue_only_lists_own_pending(self, db):
        mine = new_pass(db)
        new_pass(db, student("stu-2"), mentor_id="men-2")
        decided = new_pass(db, student("stu-3"))
        mentor_decide(db, mentor(), decided, MentorAction.FORWARD, None, now=NOW)

        assert [p.id for p in mentor_queue(db, mentor())] == [mine]
        assert [p.id for p in mentor_history(db, mentor())] == [decided]

    def test_hod_queue_and_rejected(self, db):
        forwarded = new_pass(db)
        rejected = new_pass(db, student("stu-2"))
        new_pass(db, student("stu-3"))
        mentor_decide(db, mentor(), forwarded, MentorAction.FORWARD, None, now=NOW)
        mentor_decide(db, mentor(), rejected, MentorAction.REJECT, "No", now=NOW)

        assert [p.id for p in hod_queue(db, hod())] == [forwarded]
        assert [p.id for p in hod_rejected(db, hod())] == [rejected]

    def test_queues_are_role_scoped(self, db):
        with pytest.raises(ForbiddenError):
            hod_queue(db, mentor())
        with pytest.raises(ForbiddenError):
            mentor_queue(db, student())
