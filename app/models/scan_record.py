# app/models/scan_record.py
"""
Scan history table — one append-only row per QR scan attempt at the gate,
whatever the outcome. Shown on the security dashboard.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum
from app.database import Base
from app.models.enums import ScanOutcome


class ScanRecord(Base):
    __tablename__ = "scan_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_name = Column(String(200), nullable=False)
    identifier = Column(String(50), nullable=False)     # USN, "-" when unknown
    outcome = Column(Enum(ScanOutcome, native_enum=False, length=20), nullable=False, index=True)
    pass_id = Column(String(32))
    photo_url = Column(Text)                            # copied from the pass for the history view
    scanner_id = Column(String(128))
    scanned_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<ScanRecord {self.id} {self.identifier} outcome={self.outcome}>"
