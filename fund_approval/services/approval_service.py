"""
Approval Workflow Service
Submission, approval actions, resubmission and final receiver completion
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, List, NamedTuple, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from fund_approval.config.settings import settings
from fund_approval.models.approval import Approval, ApprovalStatus, FinalReceiverAssignment, FinalReceiverStatus
from fund_approval.models.fund_request import FundRequest, FundRequestField, FundRequestStatus
from fund_approval.models.organization import Project
from fund_approval.models.user import User
from fund_approval.models.workflow import Workflow, WorkflowStep
from fund_approval.services.approval_state import (
    ensure_approval_transition,
    ensure_request_transition,
    parse_action,
)
from fund_approval.services.approver_resolver import ApproverResolver, is_initiator_step
from fund_approval.services.audit_service import AuditService, audit_service
from fund_approval.services.delegation_resolver import DelegationResolver, delegation_resolver
from fund_approval.services.final_receiver_provider import (
    FINAL_RECEIVER_STEP_NAME,
    FinalReceiverProvider,
    final_receiver_provider,
)
from fund_approval.services.notification_service import NotificationOrchestrator, notification_orchestrator
from fund_approval.utils.exceptions import (
    ApprovalConfigurationError,
    FinalReceiverAlreadyCompletedError,
    FundApprovalError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from fund_approval.utils.helpers import utc_now, parse_date
from fund_approval.utils.logger import setup_logger

logger = setup_logger()

NEEDED_BY_FIELD = "ApprovalBy"

LIST_FILTERS = ("assigned", "initiated", "approved", "rejected", "sentback")


class ChainStep(NamedTuple):
    level: int
    step: WorkflowStep


@dataclass
class ActionOutcome:
    """Result of acting on an approval"""
    request_id: int
    status: FundRequestStatus
    current_level: int
    next_approver_id: Optional[int] = None
    conflict: bool = False
    message: str = ""


def approval_chain(workflow: Workflow) -> List[ChainStep]:
    """
    Ordered approval steps of a workflow with their levels

    Final receiver stages are not part of the chain. A step's level is its
    sequence; steps without a sequence take their position.
    """
    steps = sorted(
        workflow.steps,
        key=lambda s: (s.sequence if s.sequence is not None else 0, s.id or 0)
    )
    chain = []
    for index, step in enumerate(steps):
        if step.is_final_receiver or (step.step_name or "").strip() == FINAL_RECEIVER_STEP_NAME:
            continue
        chain.append(ChainStep(step.sequence if step.sequence is not None else index, step))
    return chain


def first_real_index(chain: List[ChainStep]) -> int:
    """Index of the first step that is not an initiator marker"""
    for index, item in enumerate(chain):
        if not is_initiator_step(item.step):
            return index
    return len(chain)


def _parse_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Amount must be a number.")
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0.")
    return amount


class ApprovalWorkflowService:
    """
    Drive fund requests through their workflow

    Every public method is one unit of work: it commits on success and
    rolls back before re-raising on failure.
    """

    def __init__(
        self,
        approver_resolver: ApproverResolver,
        delegation_resolver: DelegationResolver,
        final_receiver_provider: FinalReceiverProvider,
        notifications: NotificationOrchestrator,
        audit: AuditService,
        resubmit_reentry: str = "restart"
    ):
        self.approver_resolver = approver_resolver
        self.delegation_resolver = delegation_resolver
        self.final_receiver_provider = final_receiver_provider
        self.notifications = notifications
        self.audit = audit
        self.resubmit_reentry = resubmit_reentry

    # ---------- lookups ----------

    @staticmethod
    def get_request_or_404(db: Session, request_id: int) -> FundRequest:
        req = db.query(FundRequest).filter(FundRequest.id == request_id).first()
        if req is None:
            raise NotFoundError(f"Fund request {request_id} not found")
        return req

    @staticmethod
    def _pending_at(db: Session, request_id: int, level: int) -> Optional[Approval]:
        return db.query(Approval).filter(
            Approval.fund_request_id == request_id,
            Approval.level == level,
            Approval.status == ApprovalStatus.PENDING
        ).first()

    def get_request_for_user(self, db: Session, request_id: int, user_id: int) -> FundRequest:
        """
        Load a request visible to the user (initiator, any approver or final receiver)

        Raises:
            NotFoundError, PermissionDeniedError
        """
        req = self.get_request_or_404(db, request_id)
        if req.initiator_id == user_id:
            return req

        involved = db.query(Approval.id).filter(
            Approval.fund_request_id == request_id,
            (Approval.approver_id == user_id) | (Approval.overridden_user_id == user_id)
        ).first()
        if involved is None:
            raise PermissionDeniedError("You are not allowed to view this request")
        return req

    # ---------- routing ----------

    async def _assign_from(
        self,
        db: Session,
        req: FundRequest,
        chain: List[ChainStep],
        index: int,
        actor_id: int
    ) -> Tuple[Optional[int], bool]:
        """
        Create the next Pending approval starting at ``chain[index]``

        Auto-approve steps are recorded as Approved and skipped over.

        Returns:
            (approver_id, is_final): the new approver, or ``(None, True)`` when
            the chain is exhausted and the request is fully approved
        """
        while index < len(chain):
            level, step = chain[index]

            existing = self._pending_at(db, req.id, level)
            if existing is not None:
                # Someone else already advanced this level
                logger.info(
                    f"Request {req.id}: level {level} already pending for user "
                    f"{existing.approver_id}; not creating another"
                )
                req.current_level = level
                return existing.approver_id, False

            resolution = self.approver_resolver.resolve(
                db, step, req.initiator_id, req.project_id, req.department_id
            )
            assignee = self.delegation_resolver.resolve_assignee(db, resolution.approver_id)
            if assignee != resolution.approver_id:
                self.audit.record(
                    db, req.id, actor_id, "delegated",
                    step_id=step.id,
                    assignee_user_id=assignee,
                    meta={"intended_user_id": resolution.approver_id, "level": level}
                )

            now = utc_now()
            req.current_level = level

            if step.auto_approve:
                db.add(Approval(
                    fund_request_id=req.id,
                    approver_id=assignee,
                    level=level,
                    status=ApprovalStatus.APPROVED,
                    comments="Auto-approved",
                    assigned_at=now,
                    actioned_at=now,
                    approved_at=now
                ))
                self.audit.record(
                    db, req.id, actor_id, "auto_approved",
                    step_id=step.id, assignee_user_id=assignee, meta={"level": level}
                )
                logger.info(f"Request {req.id}: step {step.step_name} (level {level}) auto-approved")
                index += 1
                continue

            db.add(Approval(
                fund_request_id=req.id,
                approver_id=assignee,
                level=level,
                status=ApprovalStatus.PENDING,
                assigned_at=now
            ))
            self.audit.record(
                db, req.id, actor_id, "assigned",
                step_id=step.id, assignee_user_id=assignee, meta={"level": level}
            )
            logger.info(f"Request {req.id}: level {level} ({step.step_name}) assigned to user {assignee}")
            return assignee, False

        return None, True

    async def _finalize(self, db: Session, req: FundRequest, chain: List[ChainStep], actor_id: int) -> List[User]:
        """Mark the request Approved and fan out to final receivers"""
        ensure_request_transition(req.status, FundRequestStatus.APPROVED)
        req.status = FundRequestStatus.APPROVED
        req.modified_at = utc_now()

        final_level = (chain[-1].level if chain else 0) + 1
        receivers = self.final_receiver_provider.get_final_receivers(
            db, req.workflow_id, req.project_id, req.department_id
        )

        already = {
            row.user_id for row in db.query(FinalReceiverAssignment.user_id).filter(
                FinalReceiverAssignment.fund_request_id == req.id
            ).all()
        }
        now = utc_now()
        for receiver in receivers:
            if receiver.id in already:
                continue
            db.add(Approval(
                fund_request_id=req.id,
                approver_id=receiver.id,
                level=final_level,
                status=ApprovalStatus.FINAL_RECEIVER,
                assigned_at=now
            ))
            db.add(FinalReceiverAssignment(
                fund_request_id=req.id,
                user_id=receiver.id,
                status=FinalReceiverStatus.PENDING
            ))
        req.current_level = final_level

        self.audit.record(
            db, req.id, actor_id, "final_approved",
            meta={"final_receivers": [u.id for u in receivers], "level": final_level}
        )
        await self.notifications.on_step_approved(db, req, None, is_final=True)
        await self.notifications.on_final_receivers(db, req, receivers)

        logger.info(f"Request {req.id} fully approved; {len(receivers)} final receiver(s)")
        return receivers

    # ---------- submission ----------

    @staticmethod
    def _apply_fields(db: Session, req: FundRequest, fields: Optional[Dict[str, str]]):
        if not fields:
            return
        existing = {f.field_name: f for f in req.fields}
        for name, value in fields.items():
            name = (name or "").strip()
            if not name:
                continue
            value = "" if value is None else str(value)
            if name in existing:
                existing[name].field_value = value
            else:
                req.fields.append(FundRequestField(field_name=name, field_value=value))

        if req.needed_by is None and fields.get(NEEDED_BY_FIELD):
            req.needed_by = parse_date(fields.get(NEEDED_BY_FIELD))

    @staticmethod
    def _validate_project(db: Session, project_id: Optional[int]) -> Optional[int]:
        if project_id is None or project_id <= 0:
            return None
        if db.query(Project.id).filter(Project.id == project_id).first() is None:
            raise ValidationError(f"Project {project_id} does not exist")
        return project_id

    async def submit_request(
        self,
        db: Session,
        initiator_id: int,
        workflow_id: int,
        title: str,
        amount,
        description: Optional[str] = None,
        project_id: Optional[int] = None,
        fields: Optional[Dict[str, str]] = None,
        needed_by=None
    ) -> FundRequest:
        """
        Create a fund request and assign its first approver

        Args:
            db: Database session
            initiator_id: Submitting user
            workflow_id: Workflow to follow
            title: Request title
            amount: Requested amount (> 0)
            description: Optional description
            project_id: Optional project (0 or None means no project)
            fields: Free-form form values
            needed_by: Optional deadline; defaults to the ApprovalBy field

        Returns:
            FundRequest: The persisted request

        Raises:
            ValidationError, NotFoundError, ApprovalRoutingError
        """
        amount = _parse_amount(amount)
        if not title or not title.strip():
            raise ValidationError("Title is required.")

        workflow = db.query(Workflow).filter(Workflow.id == workflow_id).first()
        if workflow is None or not workflow.is_active:
            raise NotFoundError(f"Workflow {workflow_id} not found or inactive")
        if workflow.department_id is None:
            raise ValidationError("Selected workflow is not linked to a department.")

        if db.query(User.id).filter(User.id == initiator_id).first() is None:
            raise NotFoundError(f"User {initiator_id} not found")

        try:
            project_id = self._validate_project(db, project_id)
            chain = approval_chain(workflow)
            start = first_real_index(chain)
            if start >= len(chain):
                raise ApprovalConfigurationError(f"Workflow {workflow_id} has no approval steps.")

            req = FundRequest(
                title=title.strip(),
                description=description,
                amount=amount,
                initiator_id=initiator_id,
                workflow_id=workflow.id,
                department_id=workflow.department_id,
                project_id=project_id,
                status=FundRequestStatus.PENDING,
                current_level=0,
                needed_by=needed_by
            )
            self._apply_fields(db, req, fields)
            db.add(req)
            db.flush()

            self.audit.record(
                db, req.id, initiator_id, "submitted",
                meta={"workflow_id": workflow.id, "amount": str(amount)}
            )

            approver_id, is_final = await self._assign_from(db, req, chain, start, initiator_id)
            if is_final:
                await self._finalize(db, req, chain, initiator_id)
            else:
                await self.notifications.on_initiated(db, req, approver_id)

            db.commit()
        except FundApprovalError:
            db.rollback()
            raise

        db.refresh(req)
        logger.info(f"Fund request {req.id} submitted by user {initiator_id}")
        return req

    # ---------- actions ----------

    async def act_on_approval(
        self,
        db: Session,
        approval_id: int,
        actor_id: int,
        action: str,
        comments: Optional[str] = None
    ) -> ActionOutcome:
        """
        Approve, reject or send back a Pending approval

        Args:
            db: Database session
            approval_id: Approval being acted on
            actor_id: Acting user (must be the assigned approver)
            action: Approve, Reject or SendBack
            comments: Optional comments (the reason on Reject)

        Returns:
            ActionOutcome: ``conflict`` is True when another action already
            advanced this level and nothing was changed

        Raises:
            NotFoundError, PermissionDeniedError, ValidationError,
            InvalidTransitionError, ApprovalRoutingError
        """
        try:
            target = parse_action(action)
        except ValueError as e:
            raise ValidationError(str(e))

        approval = db.query(Approval).filter(Approval.id == approval_id).first()
        if approval is None:
            raise NotFoundError(f"Approval {approval_id} not found")
        if approval.approver_id != actor_id:
            raise PermissionDeniedError("Not authorized to act on this approval")

        ensure_approval_transition(approval.status, target)

        req = approval.fund_request
        request_id = req.id
        if req.status != FundRequestStatus.PENDING:
            raise InvalidTransitionError("FundRequest", req.status.value, target.value)

        try:
            now = utc_now()
            claim = {"status": target, "comments": comments, "actioned_at": now}
            if target == ApprovalStatus.APPROVED:
                claim["approved_at"] = now

            # Only one action may move this approval out of Pending
            claimed = db.query(Approval).filter(
                Approval.id == approval_id,
                Approval.status == ApprovalStatus.PENDING
            ).update(claim, synchronize_session=False)
            if claimed != 1:
                db.rollback()
                return self._conflict_outcome(db, request_id, approval_id)

            db.refresh(approval)
            req.modified_at = now
            next_approver_id = None

            if target == ApprovalStatus.APPROVED:
                self.audit.record(
                    db, req.id, actor_id, "approved",
                    meta={"level": approval.level, "comments": comments}
                )

                chain = approval_chain(req.workflow)
                levels = [item.level for item in chain]
                next_index = levels.index(approval.level) + 1 if approval.level in levels else len(chain)

                next_approver_id, is_final = await self._assign_from(db, req, chain, next_index, actor_id)
                if is_final:
                    await self._finalize(db, req, chain, actor_id)
                else:
                    await self.notifications.on_step_approved(db, req, next_approver_id, is_final=False)

            elif target == ApprovalStatus.REJECTED:
                ensure_request_transition(req.status, FundRequestStatus.REJECTED)
                req.status = FundRequestStatus.REJECTED
                self.audit.record(
                    db, req.id, actor_id, "rejected",
                    meta={"level": approval.level, "comments": comments}
                )
                await self.notifications.on_rejected(db, req, comments)

            else:
                ensure_request_transition(req.status, FundRequestStatus.SENT_BACK)
                req.status = FundRequestStatus.SENT_BACK
                self.audit.record(
                    db, req.id, actor_id, "sent_back",
                    meta={"level": approval.level, "comments": comments}
                )
                await self.notifications.on_sent_back(db, req, comments)

            db.commit()
        except IntegrityError:
            db.rollback()
            return self._conflict_outcome(db, request_id, approval_id)
        except FundApprovalError:
            db.rollback()
            raise

        db.refresh(req)
        logger.info(
            f"Approval {approval_id} {target.value} by user {actor_id}; "
            f"request {req.id} is {req.status.value} at level {req.current_level}"
        )
        return ActionOutcome(
            request_id=req.id,
            status=req.status,
            current_level=req.current_level,
            next_approver_id=next_approver_id,
            message=f"{target.value} recorded"
        )

    def _conflict_outcome(self, db: Session, request_id: int, approval_id: int) -> ActionOutcome:
        logger.warning(
            f"Concurrent action on request {request_id} (approval {approval_id}); "
            f"level already advanced, no changes applied"
        )
        req = self.get_request_or_404(db, request_id)
        return ActionOutcome(
            request_id=request_id,
            status=req.status,
            current_level=req.current_level,
            conflict=True,
            message="Request was already advanced by another action"
        )

    async def resubmit(
        self,
        db: Session,
        request_id: int,
        actor_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        amount=None,
        project_id: Optional[int] = None,
        fields: Optional[Dict[str, str]] = None
    ) -> FundRequest:
        """
        Resubmit a sent-back request

        Approval history is kept; new approvals are appended. Re-entry is at
        the first real step ("restart") or at the level that sent the request
        back ("resume").

        Raises:
            NotFoundError, PermissionDeniedError, InvalidTransitionError,
            ValidationError, ApprovalRoutingError
        """
        req = self.get_request_or_404(db, request_id)
        if req.initiator_id != actor_id:
            raise PermissionDeniedError("Only the initiator can resubmit this request")
        if req.status != FundRequestStatus.SENT_BACK:
            raise InvalidTransitionError("FundRequest", req.status.value, FundRequestStatus.PENDING.value)

        try:
            if amount is not None:
                new_amount = _parse_amount(amount)
                if new_amount != req.amount:
                    progressed = db.query(Approval.id).filter(
                        Approval.fund_request_id == req.id,
                        Approval.status == ApprovalStatus.APPROVED
                    ).first()
                    if progressed is not None:
                        raise ValidationError(
                            "Amount cannot be changed once the request has been approved at any level."
                        )
                    req.amount = new_amount

            if title is not None:
                if not title.strip():
                    raise ValidationError("Title is required.")
                req.title = title.strip()
            if description is not None:
                req.description = description
            if project_id is not None:
                req.project_id = self._validate_project(db, project_id)
            self._apply_fields(db, req, fields)

            chain = approval_chain(req.workflow)
            start = first_real_index(chain)
            if self.resubmit_reentry == "resume":
                for index, item in enumerate(chain):
                    if item.level == req.current_level and index >= start:
                        start = index
                        break

            ensure_request_transition(req.status, FundRequestStatus.PENDING)
            req.status = FundRequestStatus.PENDING
            req.modified_at = utc_now()

            self.audit.record(
                db, req.id, actor_id, "resubmitted",
                meta={"reentry": self.resubmit_reentry, "from_level": req.current_level}
            )

            approver_id, is_final = await self._assign_from(db, req, chain, start, actor_id)
            if is_final:
                await self._finalize(db, req, chain, actor_id)
            else:
                await self.notifications.on_initiated(db, req, approver_id)

            db.commit()
        except FundApprovalError:
            db.rollback()
            raise

        db.refresh(req)
        logger.info(f"Fund request {req.id} resubmitted; re-entered at level {req.current_level}")
        return req

    async def reassign_approval(self, db: Session, approval_id: int, new_user_id: int, actor_id: int) -> Approval:
        """
        Hand a Pending approval to another user

        The previous approver is kept in ``overridden_user_id``. Only the
        current approver may reassign.

        Raises:
            NotFoundError, PermissionDeniedError, InvalidTransitionError, ValidationError
        """
        approval = db.query(Approval).filter(Approval.id == approval_id).first()
        if approval is None:
            raise NotFoundError(f"Approval {approval_id} not found")
        if approval.approver_id != actor_id:
            raise PermissionDeniedError("Only the current approver can reassign this approval")
        if approval.status != ApprovalStatus.PENDING:
            raise InvalidTransitionError("Approval", approval.status.value, "Reassigned")
        if new_user_id == approval.approver_id:
            raise ValidationError("Approval is already assigned to this user")

        new_user = db.query(User).filter(User.id == new_user_id).first()
        if new_user is None or new_user.is_active is False:
            raise NotFoundError(f"User {new_user_id} not found or inactive")

        previous = approval.approver_id
        approval.overridden_user_id = previous
        approval.approver_id = new_user_id
        approval.assigned_at = utc_now()

        self.audit.record(
            db, approval.fund_request_id, actor_id, "reassigned",
            assignee_user_id=new_user_id,
            meta={"previous_user_id": previous, "level": approval.level}
        )
        await self.notifications.on_step_approved(db, approval.fund_request, new_user_id, is_final=False)

        db.commit()
        db.refresh(approval)
        logger.info(f"Approval {approval_id} reassigned from user {previous} to user {new_user_id}")
        return approval

    # ---------- final receivers ----------

    async def complete_final_receiver(self, db: Session, request_id: int, user_id: int) -> FinalReceiverAssignment:
        """
        Complete a request as its final receiver

        The first receiver to complete wins; all other Pending assignments
        are auto-closed.

        Raises:
            NotFoundError, PermissionDeniedError, InvalidTransitionError,
            FinalReceiverAlreadyCompletedError
        """
        req = self.get_request_or_404(db, request_id)
        if req.status != FundRequestStatus.APPROVED:
            raise InvalidTransitionError("FundRequest", req.status.value, "Completed")

        assignment = db.query(FinalReceiverAssignment).filter(
            FinalReceiverAssignment.fund_request_id == request_id,
            FinalReceiverAssignment.user_id == user_id
        ).first()
        if assignment is None:
            raise PermissionDeniedError("You are not a final receiver for this request")

        now = utc_now()
        done = aliased(FinalReceiverAssignment)
        already_completed = db.query(done.id).filter(
            done.fund_request_id == request_id,
            done.status == FinalReceiverStatus.COMPLETED
        ).exists()

        claimed = db.query(FinalReceiverAssignment).filter(
            FinalReceiverAssignment.id == assignment.id,
            FinalReceiverAssignment.status == FinalReceiverStatus.PENDING,
            ~already_completed
        ).update(
            {"status": FinalReceiverStatus.COMPLETED, "completed_at": now},
            synchronize_session=False
        )
        if claimed != 1:
            db.rollback()
            raise FinalReceiverAlreadyCompletedError(f"Request {request_id} was already completed")

        closed = db.query(FinalReceiverAssignment).filter(
            FinalReceiverAssignment.fund_request_id == request_id,
            FinalReceiverAssignment.id != assignment.id,
            FinalReceiverAssignment.status == FinalReceiverStatus.PENDING
        ).update(
            {"status": FinalReceiverStatus.AUTO_CLOSED, "completed_at": now},
            synchronize_session=False
        )

        db.query(Approval).filter(
            Approval.fund_request_id == request_id,
            Approval.approver_id == user_id,
            Approval.status == ApprovalStatus.FINAL_RECEIVER
        ).update({"actioned_at": now}, synchronize_session=False)

        self.audit.record(
            db, request_id, user_id, "final_receiver_completed",
            meta={"auto_closed": closed}
        )
        db.commit()
        db.refresh(assignment)

        logger.info(f"Request {request_id} completed by final receiver {user_id}; {closed} auto-closed")
        return assignment

    def list_final_receiver_requests(
        self, db: Session, user_id: int
    ) -> List[Tuple[FundRequest, FinalReceiverAssignment]]:
        rows = db.query(FundRequest, FinalReceiverAssignment).join(
            FinalReceiverAssignment, FinalReceiverAssignment.fund_request_id == FundRequest.id
        ).filter(
            FinalReceiverAssignment.user_id == user_id,
            FundRequest.status == FundRequestStatus.APPROVED
        ).order_by(FundRequest.id.desc()).all()
        return [(req, assignment) for req, assignment in rows]

    # ---------- listings ----------

    def list_for_user(
        self, db: Session, user_id: int, list_filter: str = "assigned"
    ) -> List[Tuple[FundRequest, Optional[Approval]]]:
        """
        Requests relevant to a user

        Args:
            db: Database session
            user_id: Current user
            list_filter: assigned, initiated, approved, rejected or sentback

        Returns:
            list: (request, approval) pairs; approval is the user's own row,
            or the current Pending row for "initiated"
        """
        list_filter = (list_filter or "assigned").strip().lower()
        if list_filter not in LIST_FILTERS:
            raise ValidationError(f"Unknown filter '{list_filter}'. Use one of: {', '.join(LIST_FILTERS)}")

        if list_filter == "initiated":
            requests = db.query(FundRequest).filter(
                FundRequest.initiator_id == user_id
            ).order_by(FundRequest.id.desc()).all()
            return [
                (req, self._pending_at(db, req.id, req.current_level))
                for req in requests
            ]

        status = {
            "assigned": ApprovalStatus.PENDING,
            "approved": ApprovalStatus.APPROVED,
            "rejected": ApprovalStatus.REJECTED,
            "sentback": ApprovalStatus.SENT_BACK,
        }[list_filter]

        rows = db.query(FundRequest, Approval).join(
            Approval, Approval.fund_request_id == FundRequest.id
        ).filter(
            Approval.approver_id == user_id,
            Approval.status == status
        ).order_by(Approval.id.desc()).all()
        return [(req, approval) for req, approval in rows]


# Create singleton instance
approval_workflow_service = ApprovalWorkflowService(
    approver_resolver=ApproverResolver(allow_fallback_lookup=settings.APPROVALS_ALLOW_FALLBACK_LOOKUP),
    delegation_resolver=delegation_resolver,
    final_receiver_provider=final_receiver_provider,
    notifications=notification_orchestrator,
    audit=audit_service,
    resubmit_reentry=settings.APPROVALS_RESUBMIT_REENTRY
)
