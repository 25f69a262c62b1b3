"""
Approver Resolver
Finds the concrete user who must act on a workflow step
"""

from typing import NamedTuple, Optional

from sqlalchemy import func, or_, and_, exists
from sqlalchemy.orm import Session, Query

from fund_approval.models.approval import Approval, ApprovalStatus
from fund_approval.models.user import User, UserProject
from fund_approval.models.workflow import WorkflowStep
from fund_approval.utils.exceptions import ApprovalConfigurationError, NoApproverFoundError
from fund_approval.utils.logger import setup_logger

logger = setup_logger()

INITIATOR_MARKERS = ("initiator", "default initiator")


class ApproverResolution(NamedTuple):
    approver_id: int
    approver_name: Optional[str]
    step_designation_id: int


def is_initiator_step(step: WorkflowStep) -> bool:
    """
    Check whether a step stands for the initiator rather than a real approver

    Args:
        step: Workflow step

    Returns:
        bool: True when the step name is "Initiator" or the fixed assignee is
        "Initiator"/"Default Initiator" (case-insensitive)
    """
    name = (step.step_name or "").strip().lower()
    assigned = (step.assigned_user_name or "").strip().lower()
    return name == "initiator" or assigned in INITIATOR_MARKERS


def _has_project(project_id: Optional[int]) -> bool:
    return project_id is not None and project_id > 0


class ApproverResolver:
    """
    Resolve the approver for a step

    Candidate search runs scoped first (designation, plus project membership
    when a positive project id is given) and then, only when no project was
    requested and fallback is allowed, globally by designation. Among
    candidates the one with the fewest Pending approvals system-wide wins,
    ties broken by lowest user id. The pending-count tie-break is
    best-effort under concurrent assignment; it is deterministic for a given
    database snapshot only.
    """

    def __init__(self, allow_fallback_lookup: bool = True):
        self.allow_fallback_lookup = allow_fallback_lookup

    # ---------- candidate queries ----------

    @staticmethod
    def _designation_filter(designation_id: int):
        # Users without an explicit active flag are treated as active
        return and_(
            User.designation_id == designation_id,
            or_(User.is_active.is_(None), User.is_active == True),
        )

    def build_scoped_query(self, db: Session, designation_id: int, project_id: Optional[int]) -> Query:
        """
        Candidates holding the designation, restricted to project members when
        a positive project id is given (email match, trimmed and case-insensitive)
        """
        query = db.query(User.id, User.full_name).filter(self._designation_filter(designation_id))

        if _has_project(project_id):
            member = exists().where(
                and_(
                    UserProject.project_id == project_id,
                    func.lower(func.trim(UserProject.email_id)) == func.lower(func.trim(User.email)),
                )
            )
            query = query.filter(User.email.isnot(None), func.trim(User.email) != "", member)

        return query

    def build_global_query(self, db: Session, designation_id: int) -> Query:
        """Candidates holding the designation anywhere in the organization"""
        return db.query(User.id, User.full_name).filter(self._designation_filter(designation_id))

    def pick_least_loaded(self, db: Session, candidates: Query):
        """
        Pick the candidate with the fewest Pending approvals, then lowest id

        Args:
            db: Database session
            candidates: Query yielding (id, full_name)

        Returns:
            Row with ``id`` and ``full_name`` or None
        """
        pending = db.query(
            Approval.approver_id.label("approver_id"),
            func.count(Approval.id).label("pending_count"),
        ).filter(
            Approval.status == ApprovalStatus.PENDING
        ).group_by(Approval.approver_id).subquery()

        people = candidates.subquery()

        return db.query(people.c.id, people.c.full_name).outerjoin(
            pending, pending.c.approver_id == people.c.id
        ).order_by(
            func.coalesce(pending.c.pending_count, 0).asc(),
            people.c.id.asc(),
        ).first()

    # ---------- resolution ----------

    def _resolve_initiator(self, db: Session, initiator_user_id: int) -> ApproverResolution:
        initiator = db.query(User).filter(User.id == initiator_user_id).first()
        if initiator is None:
            raise ApprovalConfigurationError("Initiator user not found.")
        if initiator.designation_id is None:
            raise ApprovalConfigurationError("Initiator has no DesignationId.")
        return ApproverResolution(initiator.id, initiator.full_name, initiator.designation_id)

    def determine_designation(self, db: Session, step: WorkflowStep) -> int:
        """
        Designation for a step: explicit id, else the designation of the user
        named by the step's fixed assigned username

        Raises:
            ApprovalConfigurationError: When neither yields a designation
        """
        designation_id = step.designation_id

        if designation_id is None:
            username = (step.assigned_user_name or "").strip()
            if username:
                designation_id = db.query(User.designation_id).filter(
                    User.username == username
                ).scalar()

        if designation_id is None:
            raise ApprovalConfigurationError(
                f"Step {step.id} has no DesignationId and no resolvable AssignedUserName.",
                step_id=step.id
            )
        return designation_id

    def resolve(
        self,
        db: Session,
        step: WorkflowStep,
        initiator_user_id: int,
        project_id: Optional[int] = None,
        department_id: Optional[int] = None
    ) -> ApproverResolution:
        """
        Resolve who must act on a step. Read-only; the caller persists the Approval.

        Args:
            db: Database session
            step: Workflow step to resolve
            initiator_user_id: User who initiated the request
            project_id: Optional project scope (only positive ids scope)
            department_id: Department context, reported in errors

        Returns:
            ApproverResolution: (approver_id, approver_name, step_designation_id)

        Raises:
            ApprovalConfigurationError: Initiator or designation cannot be determined
            NoApproverFoundError: No candidate after scoped and fallback search
        """
        if is_initiator_step(step):
            return self._resolve_initiator(db, initiator_user_id)

        designation_id = self.determine_designation(db, step)

        winner = self.pick_least_loaded(db, self.build_scoped_query(db, designation_id, project_id))

        if winner is None:
            if _has_project(project_id):
                # Never route outside an explicitly requested project
                raise NoApproverFoundError(
                    f"No approver found for DesignationId={designation_id} in ProjectId={project_id}. "
                    "Ensure the user is mapped to this project in UserProjects.",
                    designation_id=designation_id,
                    department_id=department_id,
                    project_id=project_id
                )

            if self.allow_fallback_lookup:
                logger.info(f"No scoped approver for designation {designation_id}; trying global lookup")
                winner = self.pick_least_loaded(db, self.build_global_query(db, designation_id))

        if winner is None:
            where = (
                (f" dept={department_id}" if department_id is not None else " any dept") +
                (f" proj={project_id}" if project_id is not None else " any proj")
            )
            raise NoApproverFoundError(
                f"No user found for DesignationId={designation_id} ({where.strip()}).",
                designation_id=designation_id,
                department_id=department_id,
                project_id=project_id
            )

        logger.info(
            f"Step {step.id} ({step.step_name}) resolved to user {winner.id} "
            f"for designation {designation_id}"
        )
        return ApproverResolution(winner.id, winner.full_name, designation_id)
