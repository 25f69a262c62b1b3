"""
Request Audit Event Model
Tracks every routing decision and action taken on a fund request
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index

from fund_approval.config.database import Base
from fund_approval.utils.helpers import utc_now


class RequestAuditEvent(Base):
    """Request audit event model"""
    __tablename__ = "request_audit_events"
    __table_args__ = (
        Index("ix_audit_request_time", "request_id", "occurred_at"),
        Index("ix_audit_assignee_time", "assignee_user_id", "occurred_at"),
        Index("ix_audit_actor_time", "actor_user_id", "occurred_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    request_id = Column(Integer, nullable=False)
    step_id = Column(Integer, nullable=True)
    assignee_user_id = Column(Integer, nullable=True)
    actor_user_id = Column(Integer, nullable=False)

    event_type = Column(String(50), nullable=False)  # e.g. "submitted", "delegated", "approved"
    meta = Column(JSON, nullable=True)

    occurred_at = Column(DateTime, default=utc_now)

    def __repr__(self):
        return f"<RequestAuditEvent {self.event_type} FR={self.request_id} by {self.actor_user_id}>"
