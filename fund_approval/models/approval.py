"""
Approval Model
One row per (request, level, approver) plus final receiver assignments
"""

from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey, Text, Index, text
from sqlalchemy.orm import relationship
import enum

from fund_approval.config.database import Base
from fund_approval.utils.helpers import utc_now


class ApprovalStatus(str, enum.Enum):
    """Approval status"""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    SENT_BACK = "SentBack"
    FINAL_RECEIVER = "FinalReceiver"


class FinalReceiverStatus(str, enum.Enum):
    """Per-request final receiver assignment status"""
    PENDING = "Pending"
    COMPLETED = "Completed"
    AUTO_CLOSED = "AutoClosed"


# Enum columns persist member names, so the filter matches 'PENDING'
_PENDING_ONLY = text("status = 'PENDING'")


class Approval(Base):
    """Approval model"""
    __tablename__ = "approvals"
    __table_args__ = (
        Index(
            "ux_approvals_pending",
            "fund_request_id", "level", "approver_id",
            unique=True,
            sqlite_where=_PENDING_ONLY,
            postgresql_where=_PENDING_ONLY,
        ),
        Index("ix_approvals_approver_status", "approver_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)

    fund_request_id = Column(Integer, ForeignKey("fund_requests.id"), nullable=False)
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    level = Column(Integer, nullable=False)
    status = Column(Enum(ApprovalStatus), default=ApprovalStatus.PENDING, nullable=False)

    comments = Column(Text, nullable=True)

    # Timestamps
    assigned_at = Column(DateTime, default=utc_now)
    actioned_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    # Previous approver when the row was manually reassigned
    overridden_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    fund_request = relationship("FundRequest", back_populates="approvals")
    approver = relationship("User", foreign_keys=[approver_id])

    def __repr__(self):
        return f"<Approval {self.id} FR={self.fund_request_id} L{self.level} {self.status.value}>"


class FinalReceiverAssignment(Base):
    """Final receiver duty for one approved request; exactly one completes"""
    __tablename__ = "final_receiver_assignments"

    id = Column(Integer, primary_key=True, index=True)
    fund_request_id = Column(Integer, ForeignKey("fund_requests.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(Enum(FinalReceiverStatus), default=FinalReceiverStatus.PENDING, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    fund_request = relationship("FundRequest")
    user = relationship("User")

    def __repr__(self):
        return f"<FinalReceiverAssignment FR={self.fund_request_id} user={self.user_id} {self.status.value}>"
