"""
Delegation Service
Create, list and revoke personal delegations
"""

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from fund_approval.config.settings import settings
from fund_approval.models.delegation import Delegation
from fund_approval.models.user import User
from fund_approval.utils.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from fund_approval.utils.helpers import to_naive_utc
from fund_approval.utils.logger import setup_logger, log_audit

logger = setup_logger()


class DelegationService:
    """Service for delegation management"""

    def __init__(self, max_days: int = settings.DELEGATION_MAX_DAYS):
        self.max_days = max_days

    def create(
        self,
        db: Session,
        from_user_id: int,
        to_user_id: int,
        starts_at: datetime,
        ends_at: datetime,
        reason: Optional[str] = None
    ) -> Delegation:
        """
        Delegate the caller's approvals to another user for a time window

        Args:
            db: Database session
            from_user_id: Delegating user (the caller)
            to_user_id: Delegatee
            starts_at: Window start (converted to UTC)
            ends_at: Window end, exclusive (converted to UTC)
            reason: Optional note

        Returns:
            Delegation: Created delegation

        Raises:
            ValidationError: Self-delegation or invalid window
            NotFoundError: Delegatee does not exist
        """
        if to_user_id == from_user_id:
            raise ValidationError("You cannot delegate to yourself.")

        starts_at = to_naive_utc(starts_at)
        ends_at = to_naive_utc(ends_at)
        if ends_at <= starts_at:
            raise ValidationError("End must be after start.")
        if ends_at - starts_at > timedelta(days=self.max_days):
            raise ValidationError(f"Delegation cannot exceed {self.max_days} days.")

        delegatee = db.query(User).filter(User.id == to_user_id).first()
        if delegatee is None or delegatee.is_active is False:
            raise NotFoundError("Delegatee not found.")

        delegation = Delegation(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            starts_at=starts_at,
            ends_at=ends_at,
            reason=reason
        )
        db.add(delegation)
        db.commit()
        db.refresh(delegation)

        log_audit(from_user_id, "DELEGATION_CREATED", f"to={to_user_id} {starts_at} -> {ends_at}")
        logger.info(f"Delegation {delegation.id} created: user {from_user_id} -> user {to_user_id}")
        return delegation

    def list_mine(self, db: Session, user_id: int) -> List[Delegation]:
        return db.query(Delegation).filter(
            Delegation.from_user_id == user_id
        ).order_by(Delegation.starts_at.desc(), Delegation.id.desc()).all()

    def revoke(self, db: Session, delegation_id: int, user_id: int) -> Delegation:
        """
        Revoke a delegation (soft delete)

        Raises:
            NotFoundError: Unknown delegation
            PermissionDeniedError: Caller does not own the delegation
        """
        delegation = db.query(Delegation).filter(Delegation.id == delegation_id).first()
        if delegation is None:
            raise NotFoundError(f"Delegation {delegation_id} not found")
        if delegation.from_user_id != user_id:
            raise PermissionDeniedError("You can only revoke your own delegations")

        if not delegation.is_revoked:
            delegation.is_revoked = True
            db.commit()
            db.refresh(delegation)
            log_audit(user_id, "DELEGATION_REVOKED", f"delegation={delegation_id}")
            logger.info(f"Delegation {delegation_id} revoked by user {user_id}")

        return delegation


# Create singleton instance
delegation_service = DelegationService()
