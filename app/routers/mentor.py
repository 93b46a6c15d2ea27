"""Mentor dashboard — pending requests and decision history for the calling mentor."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.context import RequestContext, get_request_context
from app.database import get_db
from app.schemas.gate_pass import GatePassOut
from app.services import approval_service

router = APIRouter()


@router.get("/mentor/passes", response_model=list[GatePassOut], summary="Requests awaiting my decision")
def pending_for_mentor(limit: int = Query(50, ge=1, le=200), ctx: RequestContext = Depends(get_request_context),
                       db: Session = Depends(get_db)):
    return approval_service.mentor_queue(db, ctx, limit)


@router.get("/mentor/passes/history", response_model=list[GatePassOut], summary="Requests I forwarded or rejected")
def mentor_history(limit: int = Query(50, ge=1, le=200), ctx: RequestContext = Depends(get_request_context),
                   db: Session = Depends(get_db)):
    """Includes the HOD's outcome once it exists."""
    return approval_service.mentor_history(db, ctx, limit)
