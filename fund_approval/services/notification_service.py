"""
Notification Service
Translates approval state changes into email outbox rows
"""

from sqlalchemy.orm import Session
from typing import Iterable, Optional

from fund_approval.config.settings import settings
from fund_approval.models.fund_request import FundRequest
from fund_approval.models.user import User
from fund_approval.services import email_templates
from fund_approval.services.email_service import EmailOutboxService, email_outbox_service
from fund_approval.utils.logger import setup_logger

logger = setup_logger()


class NotificationOrchestrator:
    """
    Enqueue notification emails for approval transitions

    Methods only append outbox rows to the caller's session; the caller
    commits them together with the state change. Users without a usable
    email address are skipped.
    """

    def __init__(
        self,
        outbox: EmailOutboxService = email_outbox_service,
        base_url: str = settings.FRONTEND_BASE_URL
    ):
        self.outbox = outbox
        self.base_url = base_url

    @staticmethod
    def _email_of(db: Session, user_id: Optional[int]) -> Optional[str]:
        if user_id is None:
            return None
        email = db.query(User.email).filter(User.id == user_id).scalar()
        if not email or not email.strip():
            logger.info(f"User {user_id} has no email address; notification skipped")
            return None
        return email.strip()

    async def on_initiated(self, db: Session, req: FundRequest, approver_id: Optional[int]) -> int:
        """
        Acknowledge the initiator and ask the first approver to act

        Args:
            db: Database session
            req: Submitted (or resubmitted) request
            approver_id: Approver of the first real level, if any

        Returns:
            int: Number of messages enqueued
        """
        count = 0

        initiator_email = self._email_of(db, req.initiator_id)
        if initiator_email:
            self.outbox.enqueue(
                db, initiator_email,
                f"Request #{req.id} submitted",
                email_templates.initiator_ack(req)
            )
            count += 1

        if approver_id is not None and approver_id != req.initiator_id:
            approver_email = self._email_of(db, approver_id)
            if approver_email:
                self.outbox.enqueue(
                    db, approver_email,
                    f"Approval required: Request #{req.id}",
                    email_templates.approver_action(req, self.base_url)
                )
                count += 1

        logger.info(f"Request {req.id}: {count} initiation email(s) enqueued")
        return count

    async def on_step_approved(
        self,
        db: Session,
        req: FundRequest,
        next_approver_id: Optional[int],
        is_final: bool
    ) -> int:
        """
        Notify after an approval: the next approver, or the initiator when final

        Args:
            db: Database session
            req: Request that advanced
            next_approver_id: Approver of the newly created level
            is_final: True when the request is now fully approved

        Returns:
            int: Number of messages enqueued
        """
        if is_final:
            email = self._email_of(db, req.initiator_id)
            if not email:
                return 0
            self.outbox.enqueue(
                db, email,
                f"Request #{req.id} Approved",
                email_templates.final_approved(req)
            )
            return 1

        email = self._email_of(db, next_approver_id)
        if not email:
            return 0
        self.outbox.enqueue(
            db, email,
            f"Approval required: Request #{req.id}",
            email_templates.approver_action(req, self.base_url)
        )
        return 1

    async def on_rejected(self, db: Session, req: FundRequest, reason: Optional[str]) -> int:
        email = self._email_of(db, req.initiator_id)
        if not email:
            return 0
        self.outbox.enqueue(
            db, email,
            f"Request #{req.id} Rejected",
            email_templates.rejected(req, reason)
        )
        return 1

    async def on_sent_back(self, db: Session, req: FundRequest, comments: Optional[str]) -> int:
        email = self._email_of(db, req.initiator_id)
        if not email:
            return 0
        self.outbox.enqueue(
            db, email,
            f"Request #{req.id} sent back for changes",
            email_templates.sent_back(req, comments)
        )
        return 1

    async def on_final_receivers(self, db: Session, req: FundRequest, receivers: Iterable[User]) -> int:
        """
        One email per final receiver with a valid address

        Args:
            db: Database session
            req: Approved request
            receivers: Distinct final receivers

        Returns:
            int: Number of messages enqueued
        """
        count = 0
        body = email_templates.final_receiver_notice(req, self.base_url)
        for receiver in receivers:
            email = (receiver.email or "").strip()
            if not email:
                logger.info(f"Final receiver {receiver.id} has no email address; skipped")
                continue
            self.outbox.enqueue(db, email, f"Request #{req.id} approved and assigned to you", body)
            count += 1

        logger.info(f"Request {req.id}: {count} final receiver email(s) enqueued")
        return count


# Create singleton instance
notification_orchestrator = NotificationOrchestrator()
