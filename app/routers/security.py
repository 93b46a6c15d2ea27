"""
Security checkpoint endpoints.
POST /security/scan  — validate a scanned QR payload against live pass state.
GET  /security/scans — scan history, newest first.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.context import RequestContext, get_request_context
from app.database import get_db
from app.schemas.scan_record import ScanIn, ScanResultOut, ScanRecordOut
from app.services import qr_service

router = APIRouter()


@router.post("/security/scan", response_model=ScanResultOut, summary="Validate a scanned gate pass")
def scan_pass(body: ScanIn, ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    """
    Always answers with an outcome (APPROVED | REJECTED | EXPIRED | ERROR) for a
    security user, even for unreadable payloads. Every attempt is logged to scan history.
    """
    return qr_service.validate_token(db, ctx, body.payload)


@router.get("/security/scans", response_model=list[ScanRecordOut], summary="Scan history")
def list_scans(limit: int = Query(50, ge=1, le=200), ctx: RequestContext = Depends(get_request_context),
               db: Session = Depends(get_db)):
    return qr_service.scan_history(db, ctx, limit)
