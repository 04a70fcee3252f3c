"""
Shared helpers for route handlers.

Every JSON response that reports an outcome carries a "notification" object
{title, description, variant} that the client shows as a toast. Variant is
"default" for success and "destructive" for errors.
"""

from typing import Any, Dict, Optional, Tuple

from flask import current_app, session

from core.exceptions import PortalError, ValidationError
from models.user import PortalUser


def notification(title: str, description: str, variant: str = "default") -> Dict[str, str]:
    """Build a notification payload."""
    return {"title": title, "description": description, "variant": variant}


def error_response(error: PortalError, title: str) -> Tuple[Dict[str, Any], int]:
    """
    Convert a portal error into a JSON error response.

    Validation errors include their per-field messages.
    """
    body: Dict[str, Any] = {
        "error": type(error).__name__,
        "notification": notification(title, error.message, "destructive"),
    }
    if isinstance(error, ValidationError) and error.field_errors:
        body["field_errors"] = error.field_errors
    return body, error.status_code


def current_user() -> Optional[PortalUser]:
    """The signed-in user from the session, if any."""
    return PortalUser.from_session(session.get("user"))


def service(name: str) -> Any:
    """
    Fetch a service registered by create_app().

    Raises:
        RuntimeError: If the service was not registered
    """
    instance = current_app.config.get(name)
    if instance is None:
        raise RuntimeError(f"{name} is not configured")
    return instance
