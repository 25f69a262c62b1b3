"""
Delegation Resolver
Follows active personal delegations from an intended approver to the effective one
"""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from fund_approval.config.settings import settings
from fund_approval.models.delegation import Delegation
from fund_approval.utils.helpers import utc_now
from fund_approval.utils.logger import setup_logger

logger = setup_logger()

DEFAULT_MAX_HOPS = 5


class DelegationResolver:
    """
    Resolve the effective assignee for an intended approver

    Only the most recently created active delegation (not revoked and
    ``starts_at <= now < ends_at``) out of a user is authoritative. Chains are
    followed hop by hop. A visited set short-circuits cycles, returning the
    user at which the chain first revisits a node, and a hard hop cap ends
    the walk regardless.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        max_hops: int = DEFAULT_MAX_HOPS
    ):
        self.clock = clock
        self.max_hops = max_hops

    def active_delegation_from(self, db: Session, user_id: int, now: datetime) -> Optional[Delegation]:
        """
        Most recent active delegation out of a user

        Args:
            db: Database session
            user_id: Delegating user
            now: UTC moment to evaluate the window at

        Returns:
            Delegation or None
        """
        return db.query(Delegation).filter(
            Delegation.from_user_id == user_id,
            Delegation.is_revoked == False,
            Delegation.starts_at <= now,
            Delegation.ends_at > now
        ).order_by(Delegation.created_at.desc(), Delegation.id.desc()).first()

    def resolve_assignee(self, db: Session, intended_user_id: int) -> int:
        """
        Return the user who should actually receive an assignment

        Never raises for a malformed delegation graph; the worst case is the
        original or cycle-truncated user.

        Args:
            db: Database session
            intended_user_id: Approver picked by the approver resolver

        Returns:
            int: Effective assignee user id
        """
        now = self.clock()
        visited = set()
        current = intended_user_id

        for _ in range(self.max_hops):
            if current in visited:
                logger.warning(
                    f"Delegation cycle detected starting from user {intended_user_id}; "
                    f"stopping at user {current}"
                )
                return current
            visited.add(current)

            delegation = self.active_delegation_from(db, current, now)
            if delegation is None:
                break

            logger.info(f"Delegation {delegation.id}: user {current} -> user {delegation.to_user_id}")
            current = delegation.to_user_id
        else:
            logger.warning(
                f"Delegation chain from user {intended_user_id} exceeded {self.max_hops} hops; "
                f"assigning to user {current}"
            )

        return current


# Create singleton instance
delegation_resolver = DelegationResolver(max_hops=settings.DELEGATION_MAX_HOPS)
