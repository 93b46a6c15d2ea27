# app/services/qr_service.py
"""
QR token issuance and gate-side validation.

Token payload (compact JSON, sorted keys):
  {"expiresAt": <epoch ms, 23:59:59.999 campus time on the approval day>,
   "passId": "...", "studentId": "..."}

The token only points at a pass. validate_token() always re-reads the pass and
checks its live status, so a pass that is no longer APPROVED fails even with an
unexpired token. Scans do not consume the pass; same-day re-entry scans pass.
"""

import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

import qrcode
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.context import RequestContext, Role
from app.errors import InvalidStateError, InternalError, ForbiddenError
from app.models.enums import PassStatus, ScanOutcome
from app.models.gate_pass import GatePass
from app.models.scan_record import ScanRecord
from app.services.approval_state import derive_status
from app.services.period import end_of_day, to_epoch_ms, utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_NAME = "Unknown"
UNKNOWN_IDENTIFIER = "-"


class MalformedTokenError(ValueError):
    pass


@dataclass(frozen=True)
class QrToken:
    pass_id: str
    student_id: str
    expires_at: int     # epoch milliseconds

    def encode(self) -> str:
        return json.dumps(
            {"passId": self.pass_id, "studentId": self.student_id, "expiresAt": self.expires_at},
            sort_keys=True, separators=(",", ":"),
        )


@dataclass
class ScanResult:
    outcome: ScanOutcome
    message: str
    student_name: Optional[str] = None
    identifier: Optional[str] = None
    pass_id: Optional[str] = None
    photo_url: Optional[str] = None


def issue_token(gate_pass: GatePass, now: datetime) -> QrToken:
    expires = end_of_day(now, settings.campus_tz)
    return QrToken(gate_pass.id, gate_pass.student_id, to_epoch_ms(expires))


def parse_token(raw: Union[str, bytes, dict, None]) -> QrToken:
    """Decode a scanned payload. Raises MalformedTokenError on anything unexpected."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedTokenError("Payload is not UTF-8") from e
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError) as e:
            raise MalformedTokenError("Payload is not JSON") from e
    if not isinstance(raw, dict):
        raise MalformedTokenError("Payload must be a JSON object")

    pass_id, student_id, expires_at = raw.get("passId"), raw.get("studentId"), raw.get("expiresAt")
    if not isinstance(pass_id, str) or not pass_id:
        raise MalformedTokenError("passId missing")
    if not isinstance(student_id, str) or not student_id:
        raise MalformedTokenError("studentId missing")
    if isinstance(expires_at, bool) or not isinstance(expires_at, int):
        raise MalformedTokenError("expiresAt must be epoch milliseconds")
    return QrToken(pass_id, student_id, expires_at)


def _stored_token(gate_pass: GatePass) -> Optional[QrToken]:
    if not gate_pass.qr_token:
        return None
    try:
        return parse_token(gate_pass.qr_token)
    except MalformedTokenError:
        logger.warning(f"[QR] Stored token on pass {gate_pass.id} is unreadable")
        return None


def ensure_token(db: Session, ctx: RequestContext, gate_pass: GatePass, now: datetime = None) -> QrToken:
    """
    Token for an approved pass, owned by the caller. Reuses the stored token;
    derives and stores a new one only if it is missing or names another pass/student.
    """
    actor_id = ctx.require(Role.STUDENT)
    if gate_pass.student_id != actor_id:
        raise ForbiddenError("Only the pass owner can display its QR code")
    if derive_status(gate_pass.mentor_outcome, gate_pass.hod_outcome) is not PassStatus.APPROVED:
        raise InvalidStateError("QR codes are only available for approved passes")

    token = _stored_token(gate_pass)
    if token and token.pass_id == gate_pass.id and token.student_id == gate_pass.student_id:
        return token

    token = issue_token(gate_pass, now or utcnow())
    try:
        gate_pass.qr_token = token.encode()
        gate_pass.qr_expires_at = token.expires_at
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[QR] Could not store token for pass {gate_pass.id}: {e}", exc_info=True)
        raise InternalError("Could not issue QR code") from e
    logger.info(f"[QR] Issued token for pass {gate_pass.id} (expires {token.expires_at})")
    return token


def render_png(token: QrToken) -> bytes:
    img = qrcode.make(token.encode())
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _check(db: Session, raw, now: datetime) -> ScanResult:
    try:
        token = parse_token(raw)
    except MalformedTokenError as e:
        return ScanResult(ScanOutcome.ERROR, f"Invalid QR code format: {e}")

    if to_epoch_ms(now) > token.expires_at:
        return ScanResult(ScanOutcome.EXPIRED, "This gate pass has expired", pass_id=token.pass_id)

    try:
        gate_pass = db.query(GatePass).filter(GatePass.id == token.pass_id).first()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[SCAN] Pass lookup failed for {token.pass_id}: {e}", exc_info=True)
        return ScanResult(ScanOutcome.ERROR, "Could not verify pass, try again", pass_id=token.pass_id)
    if not gate_pass:
        return ScanResult(ScanOutcome.REJECTED, "Pass not found in system", pass_id=token.pass_id)

    name = gate_pass.student_name or UNKNOWN_NAME
    usn = gate_pass.usn or UNKNOWN_IDENTIFIER
    photo = gate_pass.photo_url
    if derive_status(gate_pass.mentor_outcome, gate_pass.hod_outcome) is not PassStatus.APPROVED:
        return ScanResult(ScanOutcome.REJECTED, "This pass is not approved anymore", name, usn, gate_pass.id, photo)
    if _stored_token(gate_pass) != token:
        return ScanResult(ScanOutcome.REJECTED, "QR code does not match the issued pass", name, usn, gate_pass.id, photo)
    return ScanResult(ScanOutcome.APPROVED, "Pass verified", name, usn, gate_pass.id, photo)


def record_scan(db: Session, result: ScanResult, scanner_id: Optional[str], scanned_at: datetime) -> None:
    """Append the audit row. Never raises: the guard's response must not depend on it."""
    try:
        db.add(ScanRecord(
            student_name=result.student_name or UNKNOWN_NAME,
            identifier=result.identifier or UNKNOWN_IDENTIFIER,
            outcome=result.outcome,
            pass_id=result.pass_id,
            photo_url=result.photo_url,
            scanner_id=scanner_id,
            scanned_at=scanned_at,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[SCAN] Could not write scan record: {e}")


def validate_token(db: Session, ctx: RequestContext, raw, now: datetime = None) -> ScanResult:
    scanner_id = ctx.require(Role.SECURITY)
    now = now or utcnow()
    result = _check(db, raw, now)
    logger.info(f"[SCAN] {scanner_id} scanned pass={result.pass_id} → {result.outcome.value}")
    record_scan(db, result, scanner_id, now)
    return result


def scan_history(db: Session, ctx: RequestContext, limit: int = 50) -> list:
    ctx.require(Role.SECURITY)
    return db.query(ScanRecord).order_by(ScanRecord.scanned_at.desc(), ScanRecord.id.desc()).limit(limit).all()
