# This project was developed with assistance from AI tools.
"""Workflow error taxonomy.

Services raise these; ``main.py`` turns them into RFC 7807 problem details
carrying the machine-checkable ``kind``.
"""


class WorkflowError(Exception):
    """Base class for errors surfaced to API callers."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(WorkflowError):
    kind = "validation_error"
    status_code = 400


class NotFoundError(WorkflowError):
    kind = "not_found"
    status_code = 404


class ForbiddenError(WorkflowError):
    kind = "forbidden"
    status_code = 403


class UnauthorizedError(WorkflowError):
    kind = "unauthorized"
    status_code = 401


class InvalidStateError(WorkflowError):
    """Operation not permitted from the entity's current state."""

    kind = "invalid_state"
    status_code = 400

    def __init__(self, message: str, *, current_state: str | None = None):
        super().__init__(message)
        self.current_state = current_state


class ConflictError(WorkflowError):
    kind = "conflict"
    status_code = 409


class DependencyError(WorkflowError):
    """A downstream provider (email, e-sign, rendering, storage) failed."""

    kind = "dependency_error"
    status_code = 502
