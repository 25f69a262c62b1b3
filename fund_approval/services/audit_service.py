"""
Audit Service
Persists request audit events and mirrors them to the audit log
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from fund_approval.models.audit_log import RequestAuditEvent
from fund_approval.utils.logger import log_audit


class AuditService:
    """Service for request audit events"""

    def record(
        self,
        db: Session,
        request_id: int,
        actor_user_id: int,
        event_type: str,
        step_id: Optional[int] = None,
        assignee_user_id: Optional[int] = None,
        meta: Optional[Dict[str, Any]] = None
    ) -> RequestAuditEvent:
        """
        Add an audit event to the current unit of work

        Args:
            db: Database session (the caller commits)
            request_id: Fund request ID
            actor_user_id: User performing the action
            event_type: submitted, assigned, delegated, approved, ...
            step_id: Workflow step involved
            assignee_user_id: User the request was assigned to
            meta: Extra details

        Returns:
            RequestAuditEvent: The new event
        """
        event = RequestAuditEvent(
            request_id=request_id,
            step_id=step_id,
            assignee_user_id=assignee_user_id,
            actor_user_id=actor_user_id,
            event_type=event_type,
            meta=meta or {}
        )
        db.add(event)

        log_audit(
            actor_user_id,
            event_type.upper(),
            f"request={request_id} step={step_id} assignee={assignee_user_id} meta={meta or {}}"
        )
        return event

    def history(self, db: Session, request_id: int) -> List[RequestAuditEvent]:
        return db.query(RequestAuditEvent).filter(
            RequestAuditEvent.request_id == request_id
        ).order_by(RequestAuditEvent.occurred_at, RequestAuditEvent.id).all()


# Create singleton instance
audit_service = AuditService()
