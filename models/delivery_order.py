"""
Delivery order data models.

These models represent a delivery order as it flows through the portal:
form (operator input) -> request (frozen payload) -> order (backend record).

The defaults record is the only one persisted locally; see
services/preference_store.py.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Any, Optional

from .course import DeliverySetting


PENDING_TRACKING_NUMBER = "PENDING"
"""Placeholder sent when the operator leaves the tracking number blank."""


class DeliveryOrderStatus(Enum):
    """
    Status of a delivery order.

    Values are the backend's string codes.
    """

    PROCESSING = "1"
    PACKED = "2"
    DELIVERED = "3"
    REMOVED = "4"

    @property
    def label(self) -> str:
        """Human-readable name."""
        return self.name.title()

    @classmethod
    def choices(cls) -> Dict[str, str]:
        """Mapping of code to label, in code order."""
        return {status.value: status.label for status in cls}


@dataclass(frozen=True)
class DeliveryOrder:
    """A delivery order record returned by the backend."""

    id: str
    course_code: str
    tracking_number: str = ""
    student_number: str = ""
    current_status: str = DeliveryOrderStatus.PROCESSING.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliveryOrder":
        """Create from a backend record."""
        return cls(
            id=str(data.get("id", "")),
            course_code=data.get("course_code", data.get("courseCode", "")),
            tracking_number=data.get("tracking_number", data.get("trackingNumber", "")) or "",
            student_number=data.get("student_number", data.get("studentNumber", "")) or "",
            current_status=str(
                data.get("current_status", data.get("currentStatus", DeliveryOrderStatus.PROCESSING.value))
            ),
        )


@dataclass
class DeliveryOrderForm:
    """
    The operator's in-progress order form.

    Mutable: the workflow fills it with defaults when opened and resets
    fields after a successful submission.
    """

    delivery_setting_id: str = ""
    """Selected delivery pack id ('' when nothing is selected)."""

    tracking_number: str = ""
    """Tracking number; blank is submitted as PENDING."""

    current_status: str = DeliveryOrderStatus.PROCESSING.value
    """Initial status code ('1'..'4')."""

    notes: str = ""
    """Free-text delivery notes."""

    remember: bool = False
    """Persist pack/status/tracking as defaults for the next order."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliveryOrderForm":
        """Create from submitted JSON."""
        remember = data.get("remember", False)
        if isinstance(remember, str):
            remember = remember.lower() in ("1", "true", "on", "yes")
        return cls(
            delivery_setting_id=str(data.get("delivery_setting_id") or ""),
            tracking_number=str(data.get("tracking_number") or ""),
            current_status=str(data.get("current_status") or DeliveryOrderStatus.PROCESSING.value),
            notes=str(data.get("notes") or ""),
            remember=bool(remember),
        )


@dataclass(frozen=True)
class CreateDeliveryOrderRequest:
    """
    Immutable payload for the create-delivery-order call.

    Built once per submission from the form, the student and the resolved
    delivery setting.
    """

    student_number: str
    course_code: str
    delivery_setting: DeliverySetting
    notes: str
    address: str
    full_name: str
    phone: str
    current_status: str
    tracking_number: str

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the backend's camelCase JSON body."""
        return {
            "studentNumber": self.student_number,
            "courseCode": self.course_code,
            "deliverySetting": self.delivery_setting.to_dict(),
            "notes": self.notes,
            "address": self.address,
            "fullName": self.full_name,
            "phone": self.phone,
            "currentStatus": self.current_status,
            "trackingNumber": self.tracking_number,
        }


@dataclass
class DeliveryOrderDefaults:
    """
    Remembered form defaults, persisted between sessions.

    Stored under a fixed key with the original camelCase field names.
    """

    delivery_setting_id: str = ""
    status: str = DeliveryOrderStatus.PROCESSING.value
    tracking: str = ""
    remember: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored record shape."""
        return {
            "deliverySettingId": self.delivery_setting_id,
            "status": self.status,
            "tracking": self.tracking,
            "remember": self.remember,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliveryOrderDefaults":
        """
        Create from a stored record.

        Raises:
            ValueError: If the record is not a mapping
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping, got {type(data).__name__}")
        return cls(
            delivery_setting_id=data.get("deliverySettingId") or "",
            status=data.get("status") or DeliveryOrderStatus.PROCESSING.value,
            tracking=data.get("tracking") or "",
            remember=bool(data.get("remember", False)),
        )

    @classmethod
    def from_form(cls, form: DeliveryOrderForm) -> "DeliveryOrderDefaults":
        """Snapshot the remembered fields of a submitted form."""
        return cls(
            delivery_setting_id=form.delivery_setting_id,
            status=form.current_status,
            tracking=form.tracking_number,
            remember=True,
        )


def find_order_for_course(orders, course_code: str) -> Optional[DeliveryOrder]:
    """Return the first order for ``course_code``, or None."""
    for order in orders or []:
        if order.course_code == course_code:
            return order
    return None
