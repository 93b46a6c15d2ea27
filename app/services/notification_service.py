# app/services/notification_service.py
"""
Shared notification dispatch.
Used by pass_service (new request → mentor) and approval_service (decision → student).

notify() stores the notification and never raises: a failed notification must
not undo the workflow step that triggered it. push_notification() forwards a
stored notification to NOTIFY_WEBHOOK_URL (push gateway) and is scheduled as a
FastAPI background task by the routers.
"""

from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.notification import Notification
from app.services.period import utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)


def notify(db: Session, recipient_id: str, kind: str, pass_id: Optional[str], message: str) -> Optional[Notification]:
    """Persist a notification. Commits immediately; returns None if it could not be stored."""
    note = Notification(recipient_id=recipient_id, kind=kind, pass_id=pass_id,
                        message=message, created_at=utcnow())
    try:
        db.add(note)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[NOTIFY] Could not store {kind} for {recipient_id}: {e}")
        return None
    logger.info(f"[NOTIFY][{kind.upper()}] → {recipient_id}: {message}")
    return note


def notification_payload(note: Notification) -> dict:
    return {
        "id": note.id,
        "recipient_id": note.recipient_id,
        "kind": note.kind,
        "pass_id": note.pass_id,
        "message": note.message,
        "created_at": note.created_at.isoformat() if note.created_at else None,
    }


async def push_notification(payload: dict) -> bool:
    """POST a notification to the configured webhook. Best-effort; returns True on 2xx."""
    url = settings.NOTIFY_WEBHOOK_URL
    if not url:
        return False
    try:
        async with httpx.AsyncClient(timeout=settings.NOTIFY_TIMEOUT_SECONDS) as client:
            response = await client.post(url, json=payload)
        if response.status_code >= 300:
            logger.warning(f"[NOTIFY] Webhook returned HTTP {response.status_code} for notification {payload.get('id')}")
            return False
        return True
    except httpx.HTTPError as e:
        logger.warning(f"[NOTIFY] Webhook delivery failed for notification {payload.get('id')}: {e}")
        return False
