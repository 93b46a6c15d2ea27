# app/schemas/gate_pass.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from app.models.enums import PassStatus
from app.services.approval_state import MentorAction, HodAction


class PassCreate(BaseModel):
    reason: str
    mentor_id: str
    student_mobile: str
    parent_mobile: str
    department: str
    year: str
    section: str
    leave_at: datetime
    student_name: Optional[str] = None
    usn: Optional[str] = None
    photo_url: Optional[str] = None   # URL returned by the external image upload


class DecisionOut(BaseModel):
    actor_id: str
    display_name: str
    comment: Optional[str]
    outcome: str
    decided_at: Optional[datetime]

    class Config:
        from_attributes = True


class GatePassOut(BaseModel):
    id: str
    student_id: str
    student_name: Optional[str]
    usn: Optional[str]
    student_mobile: str
    parent_mobile: str
    department: str
    year: str
    section: str
    reason: str
    leave_at: datetime
    photo_url: Optional[str]
    mentor_id: str
    status: PassStatus
    period_key: str
    mentor_decision: Optional[DecisionOut] = None
    hod_decision: Optional[DecisionOut] = None
    qr_expires_at: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PassCreatedOut(BaseModel):
    ok: bool = True
    pass_id: str
    period_key: str
    count: int
    remaining: int


class QuotaStatusOut(BaseModel):
    period_key: str
    limit: int
    used: int
    remaining: int


class MentorDecisionIn(BaseModel):
    action: MentorAction          # FORWARD | REJECT
    comment: Optional[str] = None


class HodDecisionIn(BaseModel):
    action: HodAction             # APPROVE | REJECT
    comment: Optional[str] = None


class DecisionResultOut(BaseModel):
    ok: bool = True
    gate_pass: GatePassOut


class QrTokenOut(BaseModel):
    pass_id: str
    payload: str                  # Exact string to encode in the QR image
    expires_at: int               # epoch milliseconds
