"""
Support ticket data models.

Ticket categories, priorities and statuses are closed sets. TicketDraft keeps
the raw form strings; TicketDraft.validate() applies the form rules, and
Ticket.from_dict() rejects values outside the sets.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, List, Optional

SUBJECT_MIN_LENGTH = 5
SUBJECT_MAX_LENGTH = 100
DESCRIPTION_MIN_LENGTH = 1
DESCRIPTION_MAX_LENGTH = 1000


class TicketCategory(Enum):
    """Routing category chosen by the student."""

    COURSE = "Course"
    PAYMENT = "Payment"
    GAMES = "Games"
    DELIVERY_PACKS = "Delivery Packs"
    OTHER = "Other"


class TicketPriority(Enum):
    """How urgent the student says the issue is."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class TicketStatus(Enum):
    """Lifecycle status. New tickets are always OPEN."""

    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    CLOSED = "Closed"


@dataclass
class TicketDraft:
    """
    Student input from the create-ticket form.

    Fields stay as raw strings until validate() so every problem can be
    reported at once, the way a form shows all its field messages together.
    """

    subject: str = ""
    category: str = ""
    priority: str = TicketPriority.MEDIUM.value
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TicketDraft":
        """Create from submitted JSON."""
        return cls(
            subject=str(data.get("subject") or ""),
            category=str(data.get("category") or ""),
            priority=str(data.get("priority") or TicketPriority.MEDIUM.value),
            description=str(data.get("description") or ""),
        )

    def validate(self) -> Dict[str, List[str]]:
        """
        Check every field against the form rules.

        Returns:
            Mapping of field name to error messages (empty when valid)
        """
        errors: Dict[str, List[str]] = {}

        if len(self.subject) < SUBJECT_MIN_LENGTH:
            errors.setdefault("subject", []).append(
                f"Subject must be at least {SUBJECT_MIN_LENGTH} characters."
            )
        elif len(self.subject) > SUBJECT_MAX_LENGTH:
            errors.setdefault("subject", []).append(
                f"Subject must be at most {SUBJECT_MAX_LENGTH} characters."
            )

        if not self.category:
            errors.setdefault("category", []).append("You need to select a ticket category.")
        elif self.category not in {c.value for c in TicketCategory}:
            errors.setdefault("category", []).append(f"Unknown ticket category: {self.category}")

        if not self.priority:
            errors.setdefault("priority", []).append("You need to select a ticket priority.")
        elif self.priority not in {p.value for p in TicketPriority}:
            errors.setdefault("priority", []).append(f"Unknown ticket priority: {self.priority}")

        if len(self.description) < DESCRIPTION_MIN_LENGTH:
            errors.setdefault("description", []).append("Description cannot be empty.")
        elif len(self.description) > DESCRIPTION_MAX_LENGTH:
            errors.setdefault("description", []).append(
                f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters."
            )

        return errors


@dataclass(frozen=True)
class CreateTicketRequest:
    """Immutable payload for the create-ticket call."""

    subject: str
    category: TicketCategory
    priority: TicketPriority
    description: str
    student_number: str
    student_name: str
    student_avatar: Optional[str]
    status: TicketStatus = TicketStatus.OPEN

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the backend's camelCase JSON body."""
        return {
            "subject": self.subject,
            "category": self.category.value,
            "priority": self.priority.value,
            "description": self.description,
            "studentNumber": self.student_number,
            "studentName": self.student_name,
            "studentAvatar": self.student_avatar,
            "status": self.status.value,
        }


@dataclass
class Ticket:
    """A support ticket record returned by the backend."""

    id: str
    subject: str
    category: TicketCategory
    priority: TicketPriority
    description: str
    student_number: str = ""
    student_name: str = ""
    student_avatar: Optional[str] = None
    status: TicketStatus = TicketStatus.OPEN
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "id": self.id,
            "subject": self.subject,
            "category": self.category.value,
            "priority": self.priority.value,
            "description": self.description,
            "studentNumber": self.student_number,
            "studentName": self.student_name,
            "studentAvatar": self.student_avatar,
            "status": self.status.value,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ticket":
        """
        Create from a backend record.

        Raises:
            ValueError: If category, priority or status is outside its closed set
        """
        return cls(
            id=str(data.get("id", "")),
            subject=data.get("subject", ""),
            category=TicketCategory(data.get("category", TicketCategory.OTHER.value)),
            priority=TicketPriority(data.get("priority", TicketPriority.MEDIUM.value)),
            description=data.get("description", ""),
            student_number=data.get("studentNumber", "") or "",
            student_name=data.get("studentName", "") or "",
            student_avatar=data.get("studentAvatar"),
            status=TicketStatus(data.get("status", TicketStatus.OPEN.value)),
            created_at=data.get("createdAt", "") or "",
        )
