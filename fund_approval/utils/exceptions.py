"""
Exception Hierarchy
Typed errors raised by the approval routing core

    FundApprovalError
    +-- ApprovalRoutingError
    |   +-- ApprovalConfigurationError
    |   +-- NoApproverFoundError
    +-- InvalidTransitionError
    +-- NotFoundError
    +-- PermissionDeniedError
    +-- ValidationError
    +-- FinalReceiverAlreadyCompletedError

Routing errors bubble to the action-handling layer, which decides how to
present them. Delegation anomalies and missing email addresses never raise.
"""

from typing import Optional


class FundApprovalError(Exception):
    """Base class for all fund approval errors"""

    code: str = "FUND_APPROVAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ApprovalRoutingError(FundApprovalError):
    """No concrete approver could be determined for a step"""

    code = "APPROVAL_ROUTING_ERROR"


class ApprovalConfigurationError(ApprovalRoutingError):
    """Workflow or user data does not allow resolution (missing designation)"""

    code = "APPROVAL_CONFIGURATION_ERROR"

    def __init__(self, message: str, step_id: Optional[int] = None):
        self.step_id = step_id
        super().__init__(message)


class NoApproverFoundError(ApprovalRoutingError):
    """Candidate search came back empty"""

    code = "NO_APPROVER_FOUND"

    def __init__(
        self,
        message: str,
        designation_id: int,
        department_id: Optional[int] = None,
        project_id: Optional[int] = None
    ):
        self.designation_id = designation_id
        self.department_id = department_id
        self.project_id = project_id
        super().__init__(message)


class InvalidTransitionError(FundApprovalError):
    """A status change not allowed by the approval state machine"""

    code = "INVALID_TRANSITION"

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"{entity} cannot move from {current} to {target}.")


class NotFoundError(FundApprovalError):
    code = "NOT_FOUND"


class PermissionDeniedError(FundApprovalError):
    code = "PERMISSION_DENIED"


class ValidationError(FundApprovalError):
    code = "VALIDATION_ERROR"


class FinalReceiverAlreadyCompletedError(FundApprovalError):
    """Another final receiver already completed the request"""

    code = "FINAL_RECEIVER_ALREADY_COMPLETED"
