"""
Delegation Routes
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from fund_approval.config.database import get_db
from fund_approval.services.auth_service import auth_service
from fund_approval.services.delegation_service import delegation_service
from fund_approval.models.user import User
from fund_approval.schemas.delegation import DelegationCreate, DelegationResponse

router = APIRouter()


@router.get("/my", response_model=List[DelegationResponse])
async def my_delegations(
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Delegations created by the current user"""
    return delegation_service.list_mine(db, current_user.id)


@router.post("", response_model=DelegationResponse, status_code=status.HTTP_201_CREATED)
async def create_delegation(
    payload: DelegationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Delegate the current user's approvals for a time window"""
    return delegation_service.create(
        db,
        from_user_id=current_user.id,
        to_user_id=payload.to_user_id,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        reason=payload.reason
    )


@router.delete("/{delegation_id}", response_model=DelegationResponse)
async def revoke_delegation(
    delegation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """Revoke one of the current user's delegations"""
    return delegation_service.revoke(db, delegation_id, current_user.id)
