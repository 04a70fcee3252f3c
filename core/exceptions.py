"""
Custom exceptions for the Batch Delivery Portal.

Exception Hierarchy:
    PortalError (base)
    ├── ValidationError       - Bad operator input, caught before any network call
    │   └── DuplicateOrderError - Student already has an order for the batch
    ├── AuthenticationError   - No signed-in user where one is required
    ├── NotFoundError         - Unknown course or student
    └── RemoteCallError       - Backend request failed (HTTP error, timeout, bad JSON)

Usage:
    Routes translate these into JSON responses with a notification payload.
    Preference store parse failures never raise - they are logged and read as
    "no record".
"""

from typing import Optional, Dict, Any, List


class PortalError(Exception):
    """
    Base exception for all portal errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS - No request was sent, no state was mutated
# =============================================================================

class ValidationError(PortalError):
    """
    Operator input failed validation.

    Carries per-field messages so a form can show them inline. The top-level
    message is what goes into the notification.
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None
    ):
        self.field_errors = field_errors or {}
        details = {"field_errors": self.field_errors} if self.field_errors else None
        super().__init__(message, details)


class DuplicateOrderError(ValidationError):
    """
    A delivery order already exists for this (student, course) pair.

    Raised when the cached order list shows an existing order at submission
    time. Another session may still create one concurrently; that race is
    only closed by the backend.
    """

    status_code = 409

    def __init__(self, student_number: str, course_code: str, order_id: str):
        message = (
            f"Student {student_number} already has delivery order {order_id} "
            f"for {course_code}"
        )
        super().__init__(message)
        self.details.update({
            "student_number": student_number,
            "course_code": course_code,
            "order_id": order_id,
        })
        self.student_number = student_number
        self.course_code = course_code
        self.order_id = order_id


class AuthenticationError(PortalError):
    """No signed-in user, or the user has no username."""

    status_code = 401

    def __init__(self, message: str = "You must be logged in to continue."):
        super().__init__(message)


class NotFoundError(PortalError):
    """A course or student referenced by the request does not exist."""

    status_code = 404

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found: {identifier}", {kind.lower(): identifier})
        self.kind = kind
        self.identifier = identifier


# =============================================================================
# REMOTE ERRORS - Request was sent and failed; caller may resubmit manually
# =============================================================================

class RemoteCallError(PortalError):
    """
    A backend request failed.

    Covers non-2xx responses, connection errors, timeouts and undecodable
    bodies. The message is the one shown to the operator, so it prefers
    the backend's own error text.
    """

    status_code = 502

    def __init__(
        self,
        message: str,
        operation: str,
        http_status: Optional[int] = None
    ):
        details: Dict[str, Any] = {"operation": operation}
        if http_status is not None:
            details["http_status"] = http_status
        super().__init__(message, details)
        self.operation = operation
        self.http_status = http_status
