# app/services/pass_service.py
"""
Gate pass creation with per-student quota, plus read helpers.

create_pass() is one DB transaction:
  1. conditional increment: UPDATE quota_counters SET count = count + 1
     WHERE student/period match AND count < LIMIT
  2. no row updated and no row exists → insert the counter at 1 (savepoint;
     a concurrent first request may win the insert, then step 1 is retried)
  3. no row updated and the row exists → limit reached, roll back
  4. insert the gate pass (AWAITING_MENTOR), commit everything together
The conditional UPDATE is what serialises concurrent requests from one student.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.context import RequestContext, Role
from app.errors import InvalidInputError, QuotaExceededError, InternalError, NotFoundError, ForbiddenError
from app.models.gate_pass import GatePass
from app.models.notification import Notification
from app.models.quota_counter import QuotaCounter
from app.schemas.gate_pass import PassCreate
from app.services.approval_state import derive_status
from app.services.notification_service import notify
from app.services.period import period_key, utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS = ("reason", "mentor_id", "student_mobile", "parent_mobile", "department", "year", "section")


@dataclass
class CreationResult:
    gate_pass: GatePass
    period_key: str
    count: int
    remaining: int
    notification: Optional[Notification] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def validate_payload(payload: PassCreate) -> dict:
    """Trimmed field values, or InvalidInputError naming every missing field."""
    fields = {name: _clean(getattr(payload, name, None)) for name in REQUIRED_FIELDS}
    missing = [name for name, value in fields.items() if not value]
    if getattr(payload, "leave_at", None) is None:
        missing.append("leave_at")
    if missing:
        raise InvalidInputError(f"Missing required fields: {', '.join(missing)}")
    fields["leave_at"] = payload.leave_at
    fields["student_name"] = _clean(payload.student_name)
    fields["usn"] = _clean(payload.usn)
    fields["photo_url"] = _clean(payload.photo_url)
    return fields


def _counter_filter(query, student_id: str, key: str):
    return query.filter(QuotaCounter.student_id == student_id, QuotaCounter.period_key == key)


def _increment_if_below(db: Session, student_id: str, key: str, limit: int, now: datetime) -> bool:
    updated = _counter_filter(db.query(QuotaCounter), student_id, key).filter(
        QuotaCounter.count < limit
    ).update({QuotaCounter.count: QuotaCounter.count + 1, QuotaCounter.updated_at: now},
             synchronize_session=False)
    return updated == 1


def _current_count(db: Session, student_id: str, key: str) -> Optional[int]:
    return _counter_filter(db.query(QuotaCounter.count), student_id, key).scalar()


def claim_quota_slot(db: Session, student_id: str, key: str, limit: int, now: datetime) -> Optional[int]:
    """
    Take one slot in the student's counter inside the caller's transaction.
    Returns the new count, or None when the limit is already reached.
    """
    if _increment_if_below(db, student_id, key, limit, now):
        return _current_count(db, student_id, key)
    if _current_count(db, student_id, key) is not None or limit <= 0:
        return None
    try:
        with db.begin_nested():
            db.add(QuotaCounter(student_id=student_id, period_key=key, count=1, updated_at=now))
        return 1
    except IntegrityError:
        # Another request created the counter first
        if _increment_if_below(db, student_id, key, limit, now):
            return _current_count(db, student_id, key)
        return None


def create_pass(db: Session, ctx: RequestContext, payload: PassCreate, now: datetime = None) -> CreationResult:
    student_id = ctx.require(Role.STUDENT)
    fields = validate_payload(payload)
    now = now or utcnow()
    key = period_key(now, settings.QUOTA_PERIOD, settings.campus_tz).label
    limit = settings.QUOTA_LIMIT

    try:
        count = claim_quota_slot(db, student_id, key, limit, now)
        if count is None:
            db.rollback()
            logger.info(f"[QUOTA] {student_id} reached {limit} passes for {key}")
            raise QuotaExceededError(f"Only {limit} passes allowed per {settings.QUOTA_PERIOD}")

        gate_pass = GatePass(
            id=uuid.uuid4().hex,
            student_id=student_id,
            status=derive_status(None, None),
            period_key=key,
            created_at=now,
            updated_at=now,
            **fields,
        )
        db.add(gate_pass)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[QUOTA] createPass failed for {student_id}: {e}", exc_info=True)
        raise InternalError("Could not create pass") from e

    logger.info(f"[QUOTA] Pass {gate_pass.id} created for {student_id} ({count}/{limit} in {key})")
    note = notify(db, gate_pass.mentor_id, "pass_submitted", gate_pass.id,
                  f"New gate pass request from {gate_pass.student_name or student_id}: {gate_pass.reason}")
    return CreationResult(gate_pass, key, count, max(0, limit - count), note)


def quota_status(db: Session, ctx: RequestContext, now: datetime = None) -> dict:
    student_id = ctx.require(Role.STUDENT)
    now = now or utcnow()
    key = period_key(now, settings.QUOTA_PERIOD, settings.campus_tz).label
    used = _current_count(db, student_id, key) or 0
    limit = settings.QUOTA_LIMIT
    return {"period_key": key, "limit": limit, "used": used, "remaining": max(0, limit - used)}


def get_pass(db: Session, ctx: RequestContext, pass_id: str) -> GatePass:
    """Any authenticated role may read a pass; students only their own."""
    actor_id = ctx.require()
    gate_pass = db.query(GatePass).filter(GatePass.id == pass_id).first()
    if not gate_pass:
        raise NotFoundError(f"Gate pass '{pass_id}' not found")
    if ctx.role is Role.STUDENT and gate_pass.student_id != actor_id:
        raise ForbiddenError("Students can only view their own passes")
    return gate_pass


def list_student_passes(db: Session, ctx: RequestContext, limit: int = 50) -> list:
    student_id = ctx.require(Role.STUDENT)
    return (db.query(GatePass)
            .filter(GatePass.student_id == student_id)
            .order_by(GatePass.created_at.desc())
            .limit(limit).all())
