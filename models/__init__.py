"""
Data models for the Batch Delivery Portal.

This module contains dataclasses for:
- Course, StudentInBatch, DeliverySetting: read-only backend projections
- DeliveryOrder, DeliveryOrderForm, CreateDeliveryOrderRequest: order workflow
- DeliveryOrderDefaults: the locally persisted "remember my selections" record
- Ticket, TicketDraft, CreateTicketRequest: support tickets

Backend projections and request payloads are frozen so they can be shared
between request threads and the query cache's refresh workers.
"""

from .course import Course, StudentInBatch, DeliverySetting
from .delivery_order import (
    PENDING_TRACKING_NUMBER,
    DeliveryOrderStatus,
    DeliveryOrder,
    DeliveryOrderForm,
    CreateDeliveryOrderRequest,
    DeliveryOrderDefaults,
    find_order_for_course,
)
from .user import PortalUser
from .ticket import (
    TicketCategory,
    TicketPriority,
    TicketStatus,
    TicketDraft,
    CreateTicketRequest,
    Ticket,
)

__all__ = [
    # Course models
    "Course",
    "StudentInBatch",
    "DeliverySetting",
    # Delivery order models
    "PENDING_TRACKING_NUMBER",
    "DeliveryOrderStatus",
    "DeliveryOrder",
    "DeliveryOrderForm",
    "CreateDeliveryOrderRequest",
    "DeliveryOrderDefaults",
    "find_order_for_course",
    # User
    "PortalUser",
    # Ticket models
    "TicketCategory",
    "TicketPriority",
    "TicketStatus",
    "TicketDraft",
    "CreateTicketRequest",
    "Ticket",
]
