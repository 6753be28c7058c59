"""Errors raised when a workflow command is rejected."""


class WorkflowError(Exception):
    """Base class for rejected commands. No state has been written when one is raised."""

    tag = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.tag}: {self.message}"


class ValidationError(WorkflowError):
    """Input is missing or malformed."""

    tag = "validation"


class AuthorizationError(WorkflowError):
    """The actor lacks the role or relationship the command needs."""

    tag = "authorization"


class ConflictError(WorkflowError):
    """The command does not apply to the current state."""

    tag = "conflict"


class NotFoundError(WorkflowError):
    """An identifier does not resolve to a record."""

    tag = "not_found"
