"""
Final Receiver Routes
Approved requests assigned to the current user as final receiver
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from fund_approval.config.database import get_db
from fund_approval.services.auth_service import auth_service
from fund_approval.services.approval_service import approval_workflow_service
from fund_approval.models.user import User
from fund_approval.schemas.final_receiver import FinalReceiverRequestItem, FinalReceiverAssignmentResponse

router = APIRouter()


@router.get("/requests", response_model=List[FinalReceiverRequestItem])
async def final_receiver_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Approved requests where the current user is a final receiver"""
    rows = approval_workflow_service.list_final_receiver_requests(db, current_user.id)
    return [
        FinalReceiverRequestItem(
            fund_request_id=req.id,
            title=req.title,
            amount=req.amount,
            initiator_id=req.initiator_id,
            project_id=req.project_id,
            assignment_status=assignment.status.value,
            completed_at=assignment.completed_at
        )
        for req, assignment in rows
    ]


@router.post("/requests/{request_id}/complete", response_model=FinalReceiverAssignmentResponse)
async def complete_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Complete an approved request; other final receivers are auto-closed"""
    return await approval_workflow_service.complete_final_receiver(db, request_id, current_user.id)
