"""
Signed-in user model.

Authentication happens outside the portal; the login layer leaves the user in
the Flask session as {"username": ..., "avatar": ...}.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, Optional


@dataclass(frozen=True)
class PortalUser:
    """The user the current request acts for."""

    username: str
    avatar: Optional[str] = None

    @classmethod
    def from_session(cls, data: Optional[Dict[str, Any]]) -> Optional["PortalUser"]:
        """Build from the session's 'user' entry; None when nobody is signed in."""
        if not isinstance(data, dict):
            return None
        return cls(
            username=str(data.get("username") or ""),
            avatar=data.get("avatar"),
        )
