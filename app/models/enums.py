# app/models/enums.py
"""Closed value sets stored on gate-pass tables."""

import enum


class PassStatus(str, enum.Enum):
    AWAITING_MENTOR = "AWAITING_MENTOR"
    AWAITING_HOD = "AWAITING_HOD"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class MentorOutcome(str, enum.Enum):
    FORWARDED = "FORWARDED"
    REJECTED = "REJECTED"


class HodOutcome(str, enum.Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ScanOutcome(str, enum.Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    ERROR = "ERROR"


class QuotaPeriod(str, enum.Enum):
    WEEK = "week"   # Monday-anchored
    DAY = "day"
