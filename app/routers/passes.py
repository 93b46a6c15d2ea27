# app/routers/passes.py
"""
Gate pass endpoints — student submission, pass details, QR display, and the
mentor / HOD decision actions.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.context import RequestContext, get_request_context
from app.database import get_db
from app.schemas.gate_pass import (
    PassCreate, PassCreatedOut, QuotaStatusOut, GatePassOut,
    MentorDecisionIn, HodDecisionIn, DecisionResultOut, QrTokenOut,
)
from app.services import pass_service, approval_service, qr_service
from app.services.notification_service import notification_payload, push_notification

router = APIRouter()


def _schedule_push(background_tasks: BackgroundTasks, note):
    if note is not None:
        background_tasks.add_task(push_notification, notification_payload(note))


@router.post("/passes", response_model=PassCreatedOut, status_code=201, summary="Submit a gate pass request")
def create_pass(body: PassCreate, background_tasks: BackgroundTasks,
                ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    """Creates the pass if the student still has quota left for the current period."""
    result = pass_service.create_pass(db, ctx, body)
    _schedule_push(background_tasks, result.notification)
    return PassCreatedOut(pass_id=result.gate_pass.id, period_key=result.period_key,
                          count=result.count, remaining=result.remaining)


@router.get("/passes/quota", response_model=QuotaStatusOut, summary="Passes used / left this period")
def get_quota(ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    return pass_service.quota_status(db, ctx)


@router.get("/passes/mine", response_model=list[GatePassOut], summary="Caller's own passes")
def list_my_passes(limit: int = Query(50, ge=1, le=200), ctx: RequestContext = Depends(get_request_context),
                   db: Session = Depends(get_db)):
    return pass_service.list_student_passes(db, ctx, limit)


@router.get("/passes/{pass_id}", response_model=GatePassOut, summary="Gate pass details")
def get_pass(pass_id: str, ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    return pass_service.get_pass(db, ctx, pass_id)


@router.get("/passes/{pass_id}/qr", response_model=QrTokenOut, summary="QR payload for an approved pass")
def get_qr(pass_id: str, ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    gate_pass = pass_service.get_pass(db, ctx, pass_id)
    token = qr_service.ensure_token(db, ctx, gate_pass)
    return QrTokenOut(pass_id=token.pass_id, payload=token.encode(), expires_at=token.expires_at)


@router.get("/passes/{pass_id}/qr.png", summary="QR image for an approved pass",
            response_class=Response, responses={200: {"content": {"image/png": {}}}})
def get_qr_png(pass_id: str, ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    gate_pass = pass_service.get_pass(db, ctx, pass_id)
    token = qr_service.ensure_token(db, ctx, gate_pass)
    return Response(content=qr_service.render_png(token), media_type="image/png")


@router.post("/passes/{pass_id}/mentor-decision", response_model=DecisionResultOut,
             summary="Mentor forwards or rejects a pass")
def mentor_decision(pass_id: str, body: MentorDecisionIn, background_tasks: BackgroundTasks,
                    ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    """FORWARD sends the pass to the HOD queue. REJECT requires a comment."""
    result = approval_service.mentor_decide(db, ctx, pass_id, body.action, body.comment)
    _schedule_push(background_tasks, result.notification)
    return DecisionResultOut(gate_pass=GatePassOut.model_validate(result.gate_pass))


@router.post("/passes/{pass_id}/hod-decision", response_model=DecisionResultOut,
             summary="HOD approves or rejects a forwarded pass")
def hod_decision(pass_id: str, body: HodDecisionIn, background_tasks: BackgroundTasks,
                 ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    """APPROVE issues the pass QR code, valid until the end of today. REJECT requires a comment."""
    result = approval_service.hod_decide(db, ctx, pass_id, body.action, body.comment)
    _schedule_push(background_tasks, result.notification)
    return DecisionResultOut(gate_pass=GatePassOut.model_validate(result.gate_pass))
