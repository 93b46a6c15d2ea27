# app/services/approval_service.py
"""
Mentor and HOD decisions on a gate pass.

Each decision is a single conditional UPDATE guarded on the expected status and
an empty decision slot, so a duplicate or concurrent second attempt updates no
row and fails with INVALID_STATE instead of overwriting the first decision.
HOD approval issues the QR token in the same UPDATE.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.context import RequestContext, Role
from app.errors import ForbiddenError, InvalidStateError, InternalError, NotFoundError
from app.models.enums import PassStatus, MentorOutcome, HodOutcome
from app.models.gate_pass import GatePass
from app.models.notification import Notification
from app.services.approval_state import MentorAction, HodAction, plan_mentor_decision, plan_hod_decision
from app.services.notification_service import notify
from app.services.period import utcnow
from app.services.qr_service import issue_token
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class DecisionResult:
    gate_pass: GatePass
    notification: Optional[Notification] = None


def _load(db: Session, pass_id: str) -> GatePass:
    gate_pass = db.query(GatePass).filter(GatePass.id == pass_id).first()
    if not gate_pass:
        raise NotFoundError(f"Gate pass '{pass_id}' not found")
    return gate_pass


def _apply(db: Session, pass_id: str, guard: list, values: dict) -> None:
    """Conditional single-row update + commit. Raises InvalidStateError if the guard no longer holds."""
    try:
        updated = (db.query(GatePass)
                   .filter(GatePass.id == pass_id, *guard)
                   .update(values, synchronize_session=False))
        if updated != 1:
            db.rollback()
            raise InvalidStateError("Gate pass was already decided at this stage")
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Decision update failed for pass {pass_id}: {e}", exc_info=True)
        raise InternalError("Could not record decision") from e


def mentor_decide(db: Session, ctx: RequestContext, pass_id: str,
                  action: Union[MentorAction, str], comment: Optional[str] = None,
                  now: datetime = None) -> DecisionResult:
    actor_id = ctx.require(Role.MENTOR)
    gate_pass = _load(db, pass_id)
    if gate_pass.mentor_id != actor_id:
        raise ForbiddenError("Only the assigned mentor can act on this pass")

    plan = plan_mentor_decision(gate_pass.mentor_outcome, gate_pass.hod_outcome, action, comment)
    now = now or utcnow()
    _apply(db, pass_id,
           guard=[GatePass.status == PassStatus.AWAITING_MENTOR, GatePass.mentor_outcome.is_(None)],
           values={
               GatePass.mentor_outcome: plan.transition.outcome,
               GatePass.mentor_actor_id: actor_id,
               GatePass.mentor_display_name: ctx.name_for_record,
               GatePass.mentor_comment: plan.comment,
               GatePass.mentor_decided_at: now,
               GatePass.status: plan.new_status,
               GatePass.updated_at: now,
           })
    db.refresh(gate_pass)
    logger.info(f"[MENTOR] {actor_id} {plan.transition.outcome.value} pass {pass_id} → {plan.new_status.value}")

    if plan.transition.outcome is MentorOutcome.FORWARDED:
        kind, message = "pass_forwarded", "Your gate pass was forwarded to the HOD"
    else:
        kind, message = "pass_rejected", f"Your gate pass was rejected by your mentor: {plan.comment}"
    note = notify(db, gate_pass.student_id, kind, pass_id, message)
    return DecisionResult(gate_pass, note)


def hod_decide(db: Session, ctx: RequestContext, pass_id: str,
               action: Union[HodAction, str], comment: Optional[str] = None,
               now: datetime = None) -> DecisionResult:
    actor_id = ctx.require(Role.HOD)
    gate_pass = _load(db, pass_id)

    plan = plan_hod_decision(gate_pass.mentor_outcome, gate_pass.hod_outcome, action, comment)
    now = now or utcnow()
    values = {
        GatePass.hod_outcome: plan.transition.outcome,
        GatePass.hod_actor_id: actor_id,
        GatePass.hod_display_name: ctx.name_for_record,
        GatePass.hod_comment: plan.comment,
        GatePass.hod_decided_at: now,
        GatePass.status: plan.new_status,
        GatePass.updated_at: now,
    }
    if plan.new_status is PassStatus.APPROVED:
        token = issue_token(gate_pass, now)
        values[GatePass.qr_token] = token.encode()
        values[GatePass.qr_expires_at] = token.expires_at

    _apply(db, pass_id,
           guard=[GatePass.status == PassStatus.AWAITING_HOD,
                  GatePass.mentor_outcome == MentorOutcome.FORWARDED,
                  GatePass.hod_outcome.is_(None)],
           values=values)
    db.refresh(gate_pass)
    logger.info(f"[HOD] {actor_id} {plan.transition.outcome.value} pass {pass_id} → {plan.new_status.value}")

    if plan.transition.outcome is HodOutcome.APPROVED:
        kind, message = "pass_approved", "Your gate pass was approved. Show the QR code at the gate today."
    else:
        kind, message = "pass_rejected", f"Your gate pass was rejected by the HOD: {plan.comment}"
    note = notify(db, gate_pass.student_id, kind, pass_id, message)
    return DecisionResult(gate_pass, note)


def mentor_queue(db: Session, ctx: RequestContext, limit: int = 50) -> list:
    """Passes assigned to the calling mentor that still await their decision."""
    mentor_id = ctx.require(Role.MENTOR)
    return (db.query(GatePass)
            .filter(GatePass.mentor_id == mentor_id, GatePass.status == PassStatus.AWAITING_MENTOR)
            .order_by(GatePass.created_at.desc())
            .limit(limit).all())


def mentor_history(db: Session, ctx: RequestContext, limit: int = 50) -> list:
    """Passes the calling mentor already forwarded or rejected, latest activity first."""
    mentor_id = ctx.require(Role.MENTOR)
    return (db.query(GatePass)
            .filter(GatePass.mentor_id == mentor_id, GatePass.mentor_outcome.isnot(None))
            .order_by(GatePass.updated_at.desc())
            .limit(limit).all())


def hod_queue(db: Session, ctx: RequestContext, limit: int = 50) -> list:
    """Shared department queue: every pass awaiting an HOD decision."""
    ctx.require(Role.HOD)
    return (db.query(GatePass)
            .filter(GatePass.status == PassStatus.AWAITING_HOD)
            .order_by(GatePass.created_at.desc())
            .limit(limit).all())


def hod_rejected(db: Session, ctx: RequestContext, limit: int = 50) -> list:
    ctx.require(Role.HOD)
    return (db.query(GatePass)
            .filter(GatePass.status == PassStatus.REJECTED)
            .order_by(GatePass.updated_at.desc())
            .limit(limit).all())
