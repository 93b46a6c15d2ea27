# app/models/gate_pass.py
"""
Gate pass table — one leave request and its approval trail.
Submission fields are a snapshot taken at creation and never updated.
Mentor and HOD decisions are stored as flat column groups; `status` is always
written from approval_state.derive_status().
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, DateTime, Text, BigInteger, Enum
from app.database import Base
from app.models.enums import PassStatus, MentorOutcome, HodOutcome


@dataclass(frozen=True)
class Decision:
    actor_id: str
    display_name: str
    comment: Optional[str]
    outcome: str
    decided_at: Optional[datetime]


class GatePass(Base):
    __tablename__ = "gate_passes"

    id = Column(String(32), primary_key=True)
    student_id = Column(String(128), nullable=False, index=True)

    # Submission snapshot
    student_name = Column(String(200))
    usn = Column(String(50))
    student_mobile = Column(String(30), nullable=False)
    parent_mobile = Column(String(30), nullable=False)
    department = Column(String(100), nullable=False)
    year = Column(String(20), nullable=False)
    section = Column(String(20), nullable=False)
    reason = Column(Text, nullable=False)
    leave_at = Column(DateTime(timezone=True), nullable=False)
    photo_url = Column(String(500))
    mentor_id = Column(String(128), nullable=False, index=True)

    status = Column(Enum(PassStatus, native_enum=False, length=20), nullable=False, index=True)
    period_key = Column(String(32), nullable=False, index=True)

    # Mentor decision
    mentor_outcome = Column(Enum(MentorOutcome, native_enum=False, length=20))
    mentor_actor_id = Column(String(128))
    mentor_display_name = Column(String(200))
    mentor_comment = Column(Text)
    mentor_decided_at = Column(DateTime(timezone=True))

    # HOD decision
    hod_outcome = Column(Enum(HodOutcome, native_enum=False, length=20))
    hod_actor_id = Column(String(128))
    hod_display_name = Column(String(200))
    hod_comment = Column(Text)
    hod_decided_at = Column(DateTime(timezone=True))

    # QR token, set when the pass is approved
    qr_token = Column(Text)
    qr_expires_at = Column(BigInteger)       # epoch milliseconds

    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    @property
    def mentor_decision(self) -> Optional[Decision]:
        if self.mentor_outcome is None:
            return None
        return Decision(self.mentor_actor_id, self.mentor_display_name, self.mentor_comment,
                        self.mentor_outcome.value, self.mentor_decided_at)

    @property
    def hod_decision(self) -> Optional[Decision]:
        if self.hod_outcome is None:
            return None
        return Decision(self.hod_actor_id, self.hod_display_name, self.hod_comment,
                        self.hod_outcome.value, self.hod_decided_at)

    def __repr__(self):
        return f"<GatePass {self.id} student={self.student_id} status={self.status}>"
