"""HOD dashboard — the shared department queue and the rejected list."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.context import RequestContext, get_request_context
from app.database import get_db
from app.schemas.gate_pass import GatePassOut
from app.services import approval_service

router = APIRouter()


@router.get("/hod/passes", response_model=list[GatePassOut], summary="Forwarded requests awaiting an HOD")
def pending_for_hod(limit: int = Query(50, ge=1, le=200), ctx: RequestContext = Depends(get_request_context),
                    db: Session = Depends(get_db)):
    return approval_service.hod_queue(db, ctx, limit)


@router.get("/hod/passes/rejected", response_model=list[GatePassOut], summary="Rejected requests")
def rejected_passes(limit: int = Query(50, ge=1, le=200), ctx: RequestContext = Depends(get_request_context),
                    db: Session = Depends(get_db)):
    return approval_service.hod_rejected(db, ctx, limit)
