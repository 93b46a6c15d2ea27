from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.context import RequestContext, get_request_context
from app.database import get_db
from app.models.notification import Notification
from app.schemas.notification import NotificationOut

router = APIRouter()


@router.get("/notifications", response_model=list[NotificationOut], summary="Caller's notifications")
def my_notifications(limit: int = Query(50, ge=1, le=200), ctx: RequestContext = Depends(get_request_context),
                     db: Session = Depends(get_db)):
    recipient_id = ctx.require()
    return (db.query(Notification)
            .filter(Notification.recipient_id == recipient_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit).all())
