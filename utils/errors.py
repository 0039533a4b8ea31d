"""
Error taxonomy for the loot tracker.

Services raise these and never swallow them. The Lambda decorators in
``utils.decorators`` map each one onto an HTTP status.
"""

from typing import Any, Dict, Optional


class LootTrackerError(Exception):
    """Base class for all domain errors."""

    error_code = "LOOT_TRACKER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(LootTrackerError):
    """A referenced member, week, assignment, link or slot does not exist."""

    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        if identifier is not None:
            message = f"{resource} '{identifier}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message, {"resource": resource, "identifier": identifier})
        self.resource = resource
        self.identifier = identifier


class ConflictError(LootTrackerError):
    """A uniqueness rule was violated (duplicate week or duplicate drop assignment)."""

    error_code = "CONFLICT"

    def __init__(self, message: str, conflicting_id: Optional[str] = None):
        details = {"conflicting_id": conflicting_id} if conflicting_id else None
        super().__init__(message, details)
        self.conflicting_id = conflicting_id


class ValidationError(LootTrackerError):
    """Malformed input: duplicate BiS slot, unknown slot, bad floor or week, bad PIN."""

    error_code = "VALIDATION_ERROR"


class AuthenticationError(LootTrackerError):
    """Credentials or session token were rejected."""

    error_code = "UNAUTHORIZED"


class PermissionDeniedError(LootTrackerError):
    """The authenticated member lacks the permission role for an action."""

    error_code = "FORBIDDEN"
