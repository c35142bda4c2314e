"""
confreview/workflow: reviewer assignment and review-status workflow.

Submodules are imported directly by callers:
    from confreview.workflow import assignment, review, listings
"""

from confreview.workflow.errors import (
    AlreadyAssigned,
    AlreadyNotified,
    AuthorizationError,
    Conflict,
    InvalidStatus,
    NoAvailableSlot,
    NotAssigned,
    NotFound,
    NotificationError,
    StorageError,
    ValidationError,
    WorkflowError,
)
from confreview.workflow.slots import ReviewerSlots

__all__ = [
    "WorkflowError",
    "ValidationError",
    "InvalidStatus",
    "AuthorizationError",
    "NotAssigned",
    "NotFound",
    "Conflict",
    "AlreadyAssigned",
    "NoAvailableSlot",
    "AlreadyNotified",
    "StorageError",
    "NotificationError",
    "ReviewerSlots",
]
