"""
Final Receiver Provider
Computes who receives a request once its workflow is fully approved
"""

from typing import Iterable, List, Optional, Sequence, TypeVar, Callable, Hashable

from sqlalchemy import func, or_, and_, exists
from sqlalchemy.orm import Session

from fund_approval.models.user import User, UserProject
from fund_approval.models.workflow import WorkflowStep, WorkflowFinalReceiver
from fund_approval.utils.logger import setup_logger

logger = setup_logger()

FINAL_RECEIVER_STEP_NAME = "Final Receiver"

T = TypeVar("T")


def merge_distinct_by_id(
    channels: Iterable[Sequence[T]],
    key: Callable[[T], Hashable] = lambda item: item.id
) -> List[T]:
    """
    Concatenate channels and keep the first occurrence of each key

    Args:
        channels: Result lists in priority order
        key: Identity function (user id by default)

    Returns:
        list: De-duplicated items in first-seen order
    """
    seen = set()
    merged = []
    for channel in channels:
        for item in channel:
            k = key(item)
            if k in seen:
                continue
            seen.add(k)
            merged.append(item)
    return merged


class FinalReceiverProvider:
    """
    Merge three independent receiver channels:

    1. users holding a designation id flagged as final receiver on a step
    2. users holding a designation name flagged on a step or named on a
       legacy workflow_final_receivers row
    3. users listed by id on legacy workflow_final_receivers rows

    Each channel is scoped by department (exact match) and by project, where
    a user qualifies through the legacy users.project_id column OR through
    email membership in user_projects. Over-inclusion is preferred: the
    result is a notification audience.
    """

    # ---------- configuration lookups ----------

    @staticmethod
    def _final_steps(db: Session, workflow_id: int):
        return db.query(WorkflowStep).filter(
            WorkflowStep.workflow_id == workflow_id,
            or_(
                WorkflowStep.is_final_receiver == True,
                WorkflowStep.step_name == FINAL_RECEIVER_STEP_NAME,
            )
        ).order_by(WorkflowStep.sequence, WorkflowStep.id).all()

    @staticmethod
    def _legacy_rows(db: Session, workflow_id: int) -> List[WorkflowFinalReceiver]:
        return db.query(WorkflowFinalReceiver).filter(
            WorkflowFinalReceiver.workflow_id == workflow_id
        ).order_by(WorkflowFinalReceiver.id).all()

    def step_designation_ids(self, db: Session, workflow_id: int) -> List[int]:
        ids = []
        for step in self._final_steps(db, workflow_id):
            if step.designation_id and step.designation_id > 0 and step.designation_id not in ids:
                ids.append(step.designation_id)
        return ids

    def designation_names(self, db: Session, workflow_id: int) -> List[str]:
        names = []
        candidates = [s.designation_name for s in self._final_steps(db, workflow_id)]
        candidates += [r.designation_name for r in self._legacy_rows(db, workflow_id)]
        for name in candidates:
            name = (name or "").strip()
            if name and name not in names:
                names.append(name)
        return names

    def explicit_user_ids(self, db: Session, workflow_id: int) -> List[int]:
        ids = []
        for row in self._legacy_rows(db, workflow_id):
            if row.user_id and row.user_id > 0 and row.user_id not in ids:
                ids.append(row.user_id)
        return ids

    # ---------- channel queries ----------

    @staticmethod
    def _scope(query, project_id: Optional[int], department_id: Optional[int]):
        if department_id is not None:
            query = query.filter(User.department_id == department_id)

        if project_id is not None:
            member = exists().where(
                and_(
                    UserProject.project_id == project_id,
                    func.lower(func.trim(UserProject.email_id)) == func.lower(func.trim(User.email)),
                )
            )
            query = query.filter(or_(User.project_id == project_id, member))

        return query.order_by(User.id)

    def users_by_designation_ids(
        self, db: Session, designation_ids: List[int],
        project_id: Optional[int] = None, department_id: Optional[int] = None
    ) -> List[User]:
        if not designation_ids:
            return []
        query = db.query(User).filter(User.designation_id.in_(designation_ids))
        return self._scope(query, project_id, department_id).all()

    def users_by_designation_names(
        self, db: Session, designation_names: List[str],
        project_id: Optional[int] = None, department_id: Optional[int] = None
    ) -> List[User]:
        if not designation_names:
            return []
        query = db.query(User).filter(
            User.designation_name.isnot(None),
            User.designation_name.in_(designation_names)
        )
        return self._scope(query, project_id, department_id).all()

    def users_by_ids(
        self, db: Session, user_ids: List[int],
        project_id: Optional[int] = None, department_id: Optional[int] = None
    ) -> List[User]:
        if not user_ids:
            return []
        query = db.query(User).filter(User.id.in_(user_ids))
        return self._scope(query, project_id, department_id).all()

    # ---------- provider ----------

    def get_final_receivers(
        self,
        db: Session,
        workflow_id: int,
        project_id: Optional[int] = None,
        department_id: Optional[int] = None
    ) -> List[User]:
        """
        Distinct final receivers for a workflow, ordered by name

        Args:
            db: Database session
            workflow_id: Workflow whose configuration is read
            project_id: Optional project scope
            department_id: Optional department scope

        Returns:
            list: Users (empty when nothing matches)
        """
        explicit = self.users_by_ids(
            db, self.explicit_user_ids(db, workflow_id), project_id, department_id
        )
        by_designation_id = self.users_by_designation_ids(
            db, self.step_designation_ids(db, workflow_id), project_id, department_id
        )
        by_designation_name = self.users_by_designation_names(
            db, self.designation_names(db, workflow_id), project_id, department_id
        )

        receivers = merge_distinct_by_id([explicit, by_designation_id, by_designation_name])
        receivers.sort(key=lambda u: ((u.full_name or ""), u.id))

        logger.info(
            f"Workflow {workflow_id}: {len(receivers)} final receiver(s) "
            f"(project={project_id}, department={department_id})"
        )
        return receivers


# Create singleton instance
final_receiver_provider = FinalReceiverProvider()
