"""
Fund Request Schemas - Pydantic V2
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional, List, Dict
from datetime import datetime
from decimal import Decimal

from fund_approval.models.approval import ApprovalStatus
from fund_approval.models.fund_request import FundRequestStatus


class FundRequestCreate(BaseModel):
    """Submit a new fund request"""
    workflow_id: int
    title: str = Field(min_length=1, max_length=256)
    description: Optional[str] = None
    amount: Decimal = Field(gt=0, description="Amount must be positive")
    project_id: Optional[int] = Field(None, ge=0, description="0 or null means no project")
    needed_by: Optional[datetime] = None
    fields: Dict[str, str] = Field(default_factory=dict, description="Free-form form values")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be blank")
        return v


class FundRequestResubmit(BaseModel):
    """Changes applied when resubmitting a sent-back request"""
    title: Optional[str] = Field(None, max_length=256)
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(None, gt=0)
    project_id: Optional[int] = Field(None, ge=0)
    fields: Optional[Dict[str, str]] = None


class FundRequestFieldResponse(BaseModel):
    field_name: str
    field_value: str

    class Config:
        from_attributes = True


class ApprovalStepResponse(BaseModel):
    """One approval row in a request's history"""
    id: int
    level: int
    approver_id: int
    status: ApprovalStatus
    comments: Optional[str] = None
    assigned_at: Optional[datetime] = None
    actioned_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    overridden_user_id: Optional[int] = None

    class Config:
        from_attributes = True


class FundRequestResponse(BaseModel):
    """Schema for fund request response"""
    id: int
    title: str
    description: Optional[str] = None
    amount: Decimal
    initiator_id: int
    workflow_id: int
    department_id: int
    project_id: Optional[int] = None
    status: FundRequestStatus
    current_level: int
    needed_by: Optional[datetime] = None
    created_at: datetime
    modified_at: Optional[datetime] = None
    fields: List[FundRequestFieldResponse] = []
    approvals: List[ApprovalStepResponse] = []

    class Config:
        from_attributes = True


class AuditEventResponse(BaseModel):
    """One entry of a request's audit trail"""
    id: int
    event_type: str
    actor_user_id: int
    assignee_user_id: Optional[int] = None
    step_id: Optional[int] = None
    meta: Optional[Dict[str, Any]] = None
    occurred_at: datetime

    class Config:
        from_attributes = True
