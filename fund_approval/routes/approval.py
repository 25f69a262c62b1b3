"""
Approval Routes
Approval inbox, actions and reassignment
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from fund_approval.config.database import get_db
from fund_approval.services.auth_service import auth_service
from fund_approval.services.approval_service import approval_workflow_service
from fund_approval.models.user import User
from fund_approval.schemas.approval import (
    ApprovalAction,
    ApprovalReassign,
    ApprovalListItem,
    ActionOutcomeResponse,
)
from fund_approval.schemas.fund_request import ApprovalStepResponse
from fund_approval.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()


@router.get("", response_model=List[ApprovalListItem])
async def list_approvals(
    filter: str = Query("assigned", description="assigned | initiated | approved | rejected | sentback"),
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """List requests relevant to the current user"""
    rows = approval_workflow_service.list_for_user(db, current_user.id, filter)

    items = []
    for req, approval in rows:
        items.append(ApprovalListItem(
            approval_id=approval.id if approval else None,
            fund_request_id=req.id,
            title=req.title,
            amount=req.amount,
            initiator_id=req.initiator_id,
            request_status=req.status.value,
            current_level=req.current_level,
            approval_status=approval.status.value if approval else None,
            approver_id=approval.approver_id if approval else None,
            level=approval.level if approval else None,
            assigned_at=approval.assigned_at if approval else None,
            actioned_at=approval.actioned_at if approval else None,
            comments=approval.comments if approval else None
        ))

    logger.info(f"{current_user.username} viewing {len(items)} '{filter}' approvals")
    return items


@router.post("/{approval_id}/action", response_model=ActionOutcomeResponse)
async def act_on_approval(
    approval_id: int,
    payload: ApprovalAction,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Approve, reject or send back an approval assigned to the current user"""
    outcome = await approval_workflow_service.act_on_approval(
        db,
        approval_id=approval_id,
        actor_id=current_user.id,
        action=payload.action,
        comments=payload.comments
    )
    return ActionOutcomeResponse(
        request_id=outcome.request_id,
        status=outcome.status.value,
        current_level=outcome.current_level,
        next_approver_id=outcome.next_approver_id,
        conflict=outcome.conflict,
        message=outcome.message
    )


@router.post("/{approval_id}/reassign", response_model=ApprovalStepResponse)
async def reassign_approval(
    approval_id: int,
    payload: ApprovalReassign,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Hand a pending approval to another user"""
    return await approval_workflow_service.reassign_approval(
        db,
        approval_id=approval_id,
        new_user_id=payload.new_user_id,
        actor_id=current_user.id
    )
