"""
Services layer for the Batch Delivery Portal.

This module contains the business logic services:
- QueryCache: Keyed backend-read cache with coalescing and background refresh
- PreferenceStore: Durable JSON record store for operator defaults
- BatchService: Cached reads of batches, students, packs and orders
- OrderCreationWorkflow: Delivery order creation and its side effects
- TicketService: Support ticket validation and submission

Thread Model:
    Request threads (Flask)
    └── QueryCache refresh workers (stale-while-revalidate)

All services share one PortalAPIClient and one QueryCache, built by
create_app() and stored in app.config.
"""

from .query_cache import QueryCache, CacheEntry
from .preference_store import PreferenceStore
from .batch_service import BatchService, StaleTimes, StudentPage
from .delivery_order_service import OrderCreationWorkflow
from .ticket_service import TicketService

__all__ = [
    "QueryCache",
    "CacheEntry",
    "PreferenceStore",
    "BatchService",
    "StaleTimes",
    "StudentPage",
    "OrderCreationWorkflow",
    "TicketService",
]
