"""Domain exceptions raised by the workflow and store layers.

Each class carries the HTTP status the API layer answers with; the message is
what the client sees under ``{"error": ...}``.
"""


class WorkflowError(Exception):
    """Base class for every domain error."""

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(WorkflowError):
    status_code = 400
    default_message = "Invalid request"


class InvalidStatus(ValidationError):
    default_message = "Invalid status"


class AuthorizationError(WorkflowError):
    status_code = 403
    default_message = "Access denied"


class NotAssigned(AuthorizationError):
    default_message = "Paper not assigned to this reviewer"


class NotFound(WorkflowError):
    status_code = 404
    default_message = "Not found"


class Conflict(WorkflowError):
    status_code = 400
    default_message = "Conflict"


class AlreadyAssigned(Conflict):
    default_message = "Reviewer already assigned to this paper"


class NoAvailableSlot(Conflict):
    default_message = "No available slot"


class AlreadyNotified(Conflict):
    default_message = "Notification already sent"


class StorageError(WorkflowError):
    status_code = 500
    default_message = "Database error"


class NotificationError(Exception):
    """Email could not be rendered or delivered. Never escapes a workflow operation."""
