"""
Core module for the Batch Delivery Portal.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- api_client: REST client for the portal backend
"""

from .exceptions import (
    PortalError,
    ValidationError,
    DuplicateOrderError,
    AuthenticationError,
    NotFoundError,
    RemoteCallError,
)
from .api_client import PortalAPIClient

__all__ = [
    "PortalError",
    "ValidationError",
    "DuplicateOrderError",
    "AuthenticationError",
    "NotFoundError",
    "RemoteCallError",
    "PortalAPIClient",
]
