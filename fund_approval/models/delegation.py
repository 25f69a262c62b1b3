"""
Delegation Model
Time-bounded authorization for one user to act on another's behalf
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from fund_approval.config.database import Base
from fund_approval.utils.helpers import utc_now


class Delegation(Base):
    """Delegation model (all timestamps UTC)"""
    __tablename__ = "delegations"
    __table_args__ = (
        Index("ix_delegations_from_active", "from_user_id", "is_revoked", "starts_at", "ends_at"),
        Index("ix_delegations_to_active", "to_user_id", "is_revoked", "starts_at", "ends_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Active window is [starts_at, ends_at)
    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    is_revoked = Column(Boolean, default=False, nullable=False)

    reason = Column(String(500), nullable=True)

    # Relationships
    from_user = relationship("User", back_populates="delegations_from", foreign_keys=[from_user_id])
    to_user = relationship("User", back_populates="delegations_to", foreign_keys=[to_user_id])

    def is_active_at(self, moment) -> bool:
        """Check whether the delegation is authoritative at the given UTC moment"""
        return (not self.is_revoked) and self.starts_at <= moment < self.ends_at

    def __repr__(self):
        return f"<Delegation {self.from_user_id} -> {self.to_user_id}>"
