"""
Final Receiver Schemas
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal

from fund_approval.models.approval import FinalReceiverStatus


class FinalReceiverRequestItem(BaseModel):
    """Approved request waiting on (or handled by) a final receiver"""
    fund_request_id: int
    title: str
    amount: Decimal
    initiator_id: int
    project_id: Optional[int] = None
    assignment_status: str
    completed_at: Optional[datetime] = None


class FinalReceiverAssignmentResponse(BaseModel):
    id: int
    fund_request_id: int
    user_id: int
    status: FinalReceiverStatus
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
