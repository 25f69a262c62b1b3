"""
Approval Schemas
Pydantic models for approval actions and listings
"""

from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime
from decimal import Decimal


class ApprovalAction(BaseModel):
    """Approve, reject or send back an approval"""
    action: Literal["Approve", "Reject", "SendBack"]
    comments: Optional[str] = Field(None, max_length=2000)


class ApprovalReassign(BaseModel):
    """Hand a pending approval to another user"""
    new_user_id: int = Field(gt=0)


class ActionOutcomeResponse(BaseModel):
    """Result of an approval action"""
    request_id: int
    status: str
    current_level: int
    next_approver_id: Optional[int] = None
    conflict: bool = False
    message: str = ""

    class Config:
        from_attributes = True


class ApprovalListItem(BaseModel):
    """One row in the approvals inbox"""
    approval_id: Optional[int] = None
    fund_request_id: int
    title: str
    amount: Decimal
    initiator_id: int
    request_status: str
    current_level: int
    approval_status: Optional[str] = None
    approver_id: Optional[int] = None
    level: Optional[int] = None
    assigned_at: Optional[datetime] = None
    actioned_at: Optional[datetime] = None
    comments: Optional[str] = None
