"""
Course batch data models.

These are read-only projections of backend records. They are fetched through
the query cache and never modified locally, so they are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, Optional


@dataclass(frozen=True)
class Course:
    """A course batch. Identity is ``id``; ``course_code`` keys backend lookups."""

    id: str
    """Backend identifier."""

    course_code: str
    """Batch code (e.g., 'BATCH-101')."""

    name: str
    """Display name."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the backend's camelCase shape."""
        return {
            "id": self.id,
            "courseCode": self.course_code,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Course":
        """Create from a backend record."""
        return cls(
            id=str(data.get("id", "")),
            course_code=data.get("courseCode", data.get("course_code", "")),
            name=data.get("name", ""),
        )


@dataclass(frozen=True)
class StudentInBatch:
    """
    A student enrolled in a course batch.

    Only the fields the portal reads are kept. Address fields are optional on
    the backend and default to empty strings here.
    """

    username: str
    """Student number; also the key for the student's order list."""

    full_name: str
    address_line_1: str = ""
    address_line_2: str = ""
    city: str = ""
    telephone_1: str = ""
    student_course_id: str = ""

    @property
    def delivery_address(self) -> str:
        """Address line sent with a delivery order."""
        return f"{self.address_line_1 or ''}, {self.city or ''}"

    @property
    def display_address(self) -> str:
        """Full address for display, with 'N/A' when the first line is missing."""
        return f"{self.address_line_1 or 'N/A'}, {self.address_line_2 or ''}, {self.city or ''}"

    def matches(self, search_term: str) -> bool:
        """Case-insensitive substring match on username or full name."""
        term = search_term.lower()
        if not term:
            return True
        return term in (self.username or "").lower() or term in (self.full_name or "").lower()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "username": self.username,
            "full_name": self.full_name,
            "address_line_1": self.address_line_1,
            "address_line_2": self.address_line_2,
            "city": self.city,
            "telephone_1": self.telephone_1,
            "student_course_id": self.student_course_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StudentInBatch":
        """Create from a backend record, tolerating nulls."""
        return cls(
            username=data.get("username") or "",
            full_name=data.get("full_name") or "",
            address_line_1=data.get("address_line_1") or "",
            address_line_2=data.get("address_line_2") or "",
            city=data.get("city") or "",
            telephone_1=data.get("telephone_1") or "",
            student_course_id=str(data.get("student_course_id") or ""),
        )


@dataclass(frozen=True)
class DeliverySetting:
    """A delivery pack that can be sent to students of a batch."""

    id: str
    delivery_title: str
    value: float = 0

    @property
    def label(self) -> str:
        """Option label, e.g. 'Starter (LKR 500)'."""
        value = int(self.value) if float(self.value).is_integer() else self.value
        return f"{self.delivery_title} (LKR {value})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the backend shape (sent back inside create-order requests)."""
        return {
            "id": self.id,
            "delivery_title": self.delivery_title,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliverySetting":
        """Create from a backend record."""
        raw_value: Optional[Any] = data.get("value", 0)
        if isinstance(raw_value, (int, float)):
            value = raw_value
        else:
            # Some batches store the price as a string
            try:
                value = float(raw_value)
            except (TypeError, ValueError):
                value = 0
        return cls(
            id=str(data.get("id", "")),
            delivery_title=data.get("delivery_title", ""),
            value=value,
        )
