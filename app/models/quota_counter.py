# app/models/quota_counter.py
"""
Per-student, per-period pass counters.
Created lazily by the creation transaction, only ever incremented, never deleted.
"""

from sqlalchemy import Column, Integer, String, DateTime
from app.database import Base


class QuotaCounter(Base):
    __tablename__ = "quota_counters"

    student_id = Column(String(128), primary_key=True)
    period_key = Column(String(32), primary_key=True)
    count = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True))

    def __repr__(self):
        return f"<QuotaCounter {self.student_id}@{self.period_key} count={self.count}>"
