"""
Workflow Models
Ordered approval templates, their steps and legacy final receiver rows
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from fund_approval.config.database import Base
from fund_approval.utils.helpers import utc_now


class Workflow(Base):
    """Workflow model"""
    __tablename__ = "workflows"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=utc_now)
    modified_at = Column(DateTime, nullable=True)
    modified_by = Column(String(150), nullable=True)

    # Relationships
    steps = relationship(
        "WorkflowStep",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="WorkflowStep.sequence"
    )
    final_receivers = relationship(
        "WorkflowFinalReceiver", back_populates="workflow", cascade="all, delete-orphan"
    )
    department = relationship("Department")

    def __repr__(self):
        return f"<Workflow {self.id} {self.name}>"


class WorkflowStep(Base):
    """One ordered stage of a workflow, bound to a designation"""
    __tablename__ = "workflow_steps"

    id = Column(Integer, primary_key=True, index=True)
    workflow_id = Column(Integer, ForeignKey("workflows.id"), nullable=False, index=True)

    step_name = Column(String(200), nullable=False, default="")
    sequence = Column(Integer, nullable=True)
    sla_hours = Column(Integer, nullable=True)  # stored only, not enforced

    auto_approve = Column(Boolean, default=False)
    is_final_receiver = Column(Boolean, default=False)

    designation_id = Column(Integer, ForeignKey("designations.id"), nullable=True)
    designation_name = Column(String(200), nullable=True)

    # Fixed assignee marker, e.g. "Initiator" or a username
    assigned_user_name = Column(String(150), nullable=True)

    workflow = relationship("Workflow", back_populates="steps")

    def __repr__(self):
        return f"<WorkflowStep {self.id} {self.step_name} seq={self.sequence}>"


class WorkflowFinalReceiver(Base):
    """Legacy per-workflow final receiver row (explicit user and/or designation name)"""
    __tablename__ = "workflow_final_receivers"

    id = Column(Integer, primary_key=True, index=True)
    workflow_id = Column(Integer, ForeignKey("workflows.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, default=0)
    designation_id = Column(Integer, nullable=False, default=0)
    designation_name = Column(String(200), nullable=False, default="")

    workflow = relationship("Workflow", back_populates="final_receivers")

    def __repr__(self):
        return f"<WorkflowFinalReceiver wf={self.workflow_id} user={self.user_id}>"
