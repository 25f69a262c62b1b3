"""
Approval State Machine
Central transition tables for approvals and fund requests
"""

from typing import Dict, FrozenSet

from fund_approval.models.approval import ApprovalStatus
from fund_approval.models.fund_request import FundRequestStatus
from fund_approval.utils.exceptions import InvalidTransitionError


APPROVAL_TRANSITIONS: Dict[ApprovalStatus, FrozenSet[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
        ApprovalStatus.SENT_BACK,
    }),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset(),
    ApprovalStatus.SENT_BACK: frozenset(),
    ApprovalStatus.FINAL_RECEIVER: frozenset(),
}

FUND_REQUEST_TRANSITIONS: Dict[FundRequestStatus, FrozenSet[FundRequestStatus]] = {
    # Pending -> Pending is an advance to the next level
    FundRequestStatus.PENDING: frozenset({
        FundRequestStatus.PENDING,
        FundRequestStatus.APPROVED,
        FundRequestStatus.REJECTED,
        FundRequestStatus.SENT_BACK,
    }),
    FundRequestStatus.SENT_BACK: frozenset({FundRequestStatus.PENDING}),
    FundRequestStatus.APPROVED: frozenset(),
    FundRequestStatus.REJECTED: frozenset(),
}

# Action names accepted from callers, mapped to the approval status they produce
ACTION_TO_STATUS: Dict[str, ApprovalStatus] = {
    "Approve": ApprovalStatus.APPROVED,
    "Reject": ApprovalStatus.REJECTED,
    "SendBack": ApprovalStatus.SENT_BACK,
}


def can_transition_approval(current: ApprovalStatus, target: ApprovalStatus) -> bool:
    return target in APPROVAL_TRANSITIONS.get(current, frozenset())


def can_transition_request(current: FundRequestStatus, target: FundRequestStatus) -> bool:
    return target in FUND_REQUEST_TRANSITIONS.get(current, frozenset())


def ensure_approval_transition(current: ApprovalStatus, target: ApprovalStatus) -> None:
    """
    Validate an approval status change

    Raises:
        InvalidTransitionError: If the change is not allowed
    """
    if not can_transition_approval(current, target):
        raise InvalidTransitionError("Approval", current.value, target.value)


def ensure_request_transition(current: FundRequestStatus, target: FundRequestStatus) -> None:
    """
    Validate a fund request status change

    Raises:
        InvalidTransitionError: If the change is not allowed
    """
    if not can_transition_request(current, target):
        raise InvalidTransitionError("FundRequest", current.value, target.value)


def parse_action(action: str) -> ApprovalStatus:
    """
    Map an action name (Approve, Reject, SendBack) to its approval status

    Raises:
        ValueError: For unknown actions
    """
    status = ACTION_TO_STATUS.get((action or "").strip())
    if status is None:
        raise ValueError("Invalid action. Use Approve, Reject, or SendBack.")
    return status
