# app/schemas/scan_record.py
from pydantic import BaseModel
from datetime import datetime
from typing import Any, Optional

from app.models.enums import ScanOutcome


class ScanIn(BaseModel):
    payload: Any = None           # Raw QR text as read by the scanner (JSON string or object)


class ScanResultOut(BaseModel):
    outcome: ScanOutcome
    message: str
    student_name: Optional[str] = None
    identifier: Optional[str] = None
    pass_id: Optional[str] = None
    photo_url: Optional[str] = None

    class Config:
        from_attributes = True


class ScanRecordOut(BaseModel):
    id: int
    student_name: str
    identifier: str
    outcome: ScanOutcome
    pass_id: Optional[str]
    photo_url: Optional[str] = None
    scanner_id: Optional[str]
    scanned_at: datetime

    class Config:
        from_attributes = True
