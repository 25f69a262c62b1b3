"""
Fund Request Model
Represents money requests routed through a workflow
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import relationship
import enum

from fund_approval.config.database import Base
from fund_approval.utils.helpers import utc_now


class FundRequestStatus(str, enum.Enum):
    """Fund request status"""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    SENT_BACK = "SentBack"


class FundRequest(Base):
    """Fund request model"""
    __tablename__ = "fund_requests"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(18, 2), nullable=False)

    initiator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    workflow_id = Column(Integer, ForeignKey("workflows.id"), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True)

    # Status and workflow position
    status = Column(Enum(FundRequestStatus), default=FundRequestStatus.PENDING, nullable=False)
    current_level = Column(Integer, default=0, nullable=False)

    needed_by = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utc_now)
    modified_at = Column(DateTime, nullable=True)

    # Relationships
    initiator = relationship("User", foreign_keys=[initiator_id])
    workflow = relationship("Workflow")
    department = relationship("Department")
    project = relationship("Project")
    fields = relationship("FundRequestField", back_populates="fund_request", cascade="all, delete-orphan")
    approvals = relationship(
        "Approval", back_populates="fund_request", order_by="Approval.id"
    )

    def __repr__(self):
        return f"<FundRequest {self.id} - {self.status.value} - level {self.current_level}>"


class FundRequestField(Base):
    """Free-form key/value form data attached to a request"""
    __tablename__ = "fund_request_fields"

    id = Column(Integer, primary_key=True, index=True)
    fund_request_id = Column(Integer, ForeignKey("fund_requests.id"), nullable=False, index=True)
    field_name = Column(String(200), nullable=False)
    field_value = Column(Text, nullable=False, default="")

    fund_request = relationship("FundRequest", back_populates="fields")
