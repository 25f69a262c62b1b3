"""
Fund Request Routes
Submission, details and resubmission endpoints
"""

from fastapi import APIRouter, Depends, status
from typing import List
from sqlalchemy.orm import Session

from fund_approval.config.database import get_db
from fund_approval.services.auth_service import auth_service
from fund_approval.services.approval_service import approval_workflow_service
from fund_approval.services.audit_service import audit_service
from fund_approval.models.user import User
from fund_approval.schemas.fund_request import (
    AuditEventResponse,
    FundRequestCreate,
    FundRequestResubmit,
    FundRequestResponse,
)
from fund_approval.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()


@router.post("", response_model=FundRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_fund_request(
    payload: FundRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Submit a fund request and route it to its first approver"""
    req = await approval_workflow_service.submit_request(
        db,
        initiator_id=current_user.id,
        workflow_id=payload.workflow_id,
        title=payload.title,
        amount=payload.amount,
        description=payload.description,
        project_id=payload.project_id,
        fields=payload.fields,
        needed_by=payload.needed_by
    )
    logger.info(f"{current_user.username} submitted fund request {req.id}")
    return req


@router.get("/{request_id}", response_model=FundRequestResponse)
async def get_fund_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Get a fund request with its approval history"""
    return approval_workflow_service.get_request_for_user(db, request_id, current_user.id)


@router.get("/{request_id}/history", response_model=List[AuditEventResponse])
async def get_fund_request_history(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Audit trail of a fund request, oldest first"""
    approval_workflow_service.get_request_for_user(db, request_id, current_user.id)
    return audit_service.history(db, request_id)


@router.put("/{request_id}/resubmit", response_model=FundRequestResponse)
async def resubmit_fund_request(
    request_id: int,
    payload: FundRequestResubmit,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Resubmit a request that was sent back"""
    return await approval_workflow_service.resubmit(
        db,
        request_id=request_id,
        actor_id=current_user.id,
        title=payload.title,
        description=payload.description,
        amount=payload.amount,
        project_id=payload.project_id,
        fields=payload.fields
    )
