# app/models/notification.py
"""
Notifications table — one row per notification dispatched by the workflow
(new request for a mentor, decision for a student). Delivery is best-effort.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from app.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_id = Column(String(128), nullable=False, index=True)
    kind = Column(String(50), nullable=False)      # pass_submitted | pass_forwarded | pass_approved | pass_rejected
    pass_id = Column(String(32))
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<Notification {self.id} to={self.recipient_id} kind={self.kind}>"
