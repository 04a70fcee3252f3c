"""
Delivery order creation workflow.

Orchestrates one "create order" round for a (student, batch) pair:

    1. open_form()   - pre-fill from remembered defaults, else first pack
    2. submit()      - validate the pack locally, create the order remotely
    3. on success    - invalidate the student's cached order list,
                       save or forget the defaults, reset the form
    4. on failure    - nothing changes; the form keeps what was typed

PREFERENCE SCOPE:
    The remembered defaults live under the fixed key "deliveryOrderDefaults",
    shared by every operator of this portal instance. With
    preference_scope="user" the key is suffixed with the operator's username
    so operators on a shared machine do not inherit each other's selections.

Side effects after a successful create are independent: a failed preference
write does not undo the cache invalidation, and neither undoes the order.
"""

from __future__ import annotations

from typing import List, Optional

from core.api_client import PortalAPIClient
from core.exceptions import DuplicateOrderError, ValidationError
from models.course import Course, StudentInBatch, DeliverySetting
from models.delivery_order import (
    PENDING_TRACKING_NUMBER,
    CreateDeliveryOrderRequest,
    DeliveryOrder,
    DeliveryOrderDefaults,
    DeliveryOrderForm,
    DeliveryOrderStatus,
    find_order_for_course,
)
from modules.text import sanitize_text
from services.batch_service import BatchService, student_orders_key
from services.preference_store import PreferenceStore
from services.query_cache import QueryCache
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

DEFAULTS_KEY = "deliveryOrderDefaults"
MAX_NOTES_LENGTH = 1000

PREFERENCE_SCOPES = ("shared", "user")


class OrderCreationWorkflow:
    """
    Creates delivery orders and keeps the cache and remembered defaults in step.

    Attributes:
        preference_scope: 'shared' (one defaults record) or 'user' (per operator)
    """

    def __init__(
        self,
        api_client: PortalAPIClient,
        cache: QueryCache,
        batches: BatchService,
        preferences: PreferenceStore,
        preference_scope: str = "shared"
    ):
        """
        Args:
            api_client: Backend client used for the create call
            cache: Shared query cache (invalidated after a create)
            batches: Cached reads for packs and existing orders
            preferences: Store holding the remembered defaults
            preference_scope: 'shared' or 'user'

        Raises:
            ValueError: If preference_scope is not recognised
        """
        if preference_scope not in PREFERENCE_SCOPES:
            raise ValueError(
                f"preference_scope must be one of {PREFERENCE_SCOPES}, got {preference_scope!r}"
            )

        self._api = api_client
        self._cache = cache
        self._batches = batches
        self._preferences = preferences
        self._scope = preference_scope

    @property
    def preference_scope(self) -> str:
        return self._scope

    # =========================================================================
    # REMEMBERED DEFAULTS
    # =========================================================================

    def defaults_key(self, operator: Optional[str] = None) -> str:
        """Preference record key for this operator."""
        if self._scope == "user" and operator:
            return f"{DEFAULTS_KEY}:{operator}"
        return DEFAULTS_KEY

    def load_defaults(self, operator: Optional[str] = None) -> Optional[DeliveryOrderDefaults]:
        """
        Read the remembered defaults.

        Returns:
            The record, or None if absent or malformed
        """
        record = self._preferences.get(self.defaults_key(operator))
        if record is None:
            return None

        try:
            return DeliveryOrderDefaults.from_dict(record)
        except ValueError as e:
            logger.warning(f"Ignoring malformed delivery order defaults: {e}")
            return None

    # =========================================================================
    # WORKFLOW
    # =========================================================================

    def find_existing_order(self, student: StudentInBatch, course: Course) -> Optional[DeliveryOrder]:
        """
        The student's order for this batch, if one exists.

        Raises:
            RemoteCallError: If the order list cannot be fetched
        """
        return find_order_for_course(self._batches.get_student_orders(student), course.course_code)

    def open_form(
        self,
        student: StudentInBatch,
        course: Course,
        operator: Optional[str] = None
    ) -> DeliveryOrderForm:
        """
        Build the initial form for a new order.

        Remembered defaults fill pack, status and tracking number. When no
        pack is selected after that, the first pack of the batch is chosen.

        Raises:
            RemoteCallError: If the batch's delivery packs cannot be fetched
        """
        form = DeliveryOrderForm()

        defaults = self.load_defaults(operator)
        if defaults is not None and defaults.remember:
            form.delivery_setting_id = defaults.delivery_setting_id or ""
            form.current_status = defaults.status or DeliveryOrderStatus.PROCESSING.value
            form.tracking_number = defaults.tracking or ""
            form.remember = True
            logger.debug(f"Pre-filled order form from remembered defaults: {defaults}")

        settings = self._batches.get_delivery_settings(course)
        if not form.delivery_setting_id and settings:
            form.delivery_setting_id = settings[0].id

        logger.debug(
            f"Opened order form for {student.username} in {course.course_code}: "
            f"pack={form.delivery_setting_id or '-'}, remember={form.remember}"
        )
        return form

    def submit(
        self,
        student: StudentInBatch,
        course: Course,
        form: DeliveryOrderForm,
        operator: Optional[str] = None
    ) -> DeliveryOrder:
        """
        Create the order described by ``form``.

        On success the form is reset in place: notes are always cleared;
        pack, status and tracking are cleared only when not remembering.

        Args:
            student: Student receiving the delivery
            course: Batch the order belongs to
            form: Operator input (mutated on success only)
            operator: Signed-in operator, used for per-user defaults

        Returns:
            The created order

        Raises:
            ValidationError: No valid pack or status selected (no request sent)
            DuplicateOrderError: The cached order list already has an order
                for this batch (no request sent)
            RemoteCallError: The create call failed (nothing changed)
        """
        settings = self._batches.get_delivery_settings(course)
        setting = self._resolve_setting(settings, form.delivery_setting_id)
        if setting is None:
            raise ValidationError(
                "Please select a delivery pack.",
                {"delivery_setting_id": ["Please select a delivery pack."]},
            )

        try:
            status = DeliveryOrderStatus(form.current_status)
        except ValueError:
            raise ValidationError(
                "Please select a valid order status.",
                {"current_status": [f"Unknown status: {form.current_status}"]},
            ) from None

        existing = self.find_existing_order(student, course)
        if existing is not None:
            raise DuplicateOrderError(student.username, course.course_code, existing.id)

        request = CreateDeliveryOrderRequest(
            student_number=student.username,
            course_code=course.course_code,
            delivery_setting=setting,
            notes=sanitize_text(form.notes, max_length=MAX_NOTES_LENGTH),
            address=student.delivery_address,
            full_name=student.full_name,
            phone=student.telephone_1,
            current_status=status.value,
            tracking_number=form.tracking_number.strip() or PENDING_TRACKING_NUMBER,
        )

        order = self._api.create_delivery_order(request)

        logger.info(
            f"Order {order.id} created for {student.username} ({course.course_code}), "
            f"tracking={request.tracking_number}"
        )

        self._cache.invalidate(student_orders_key(student.username))
        self._save_or_forget_defaults(form, operator)
        self._reset_form(form, settings)

        return order

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @staticmethod
    def _resolve_setting(settings: List[DeliverySetting], setting_id: str) -> Optional[DeliverySetting]:
        if not setting_id:
            return None
        for setting in settings:
            if setting.id == setting_id:
                return setting
        return None

    def _save_or_forget_defaults(self, form: DeliveryOrderForm, operator: Optional[str]) -> None:
        key = self.defaults_key(operator)
        if form.remember:
            defaults = DeliveryOrderDefaults.from_form(form)
            if not self._preferences.set(key, defaults.to_dict()):
                logger.error("Order created but remembered defaults could not be saved")
        else:
            self._preferences.delete(key)

    @staticmethod
    def _reset_form(form: DeliveryOrderForm, settings: List[DeliverySetting]) -> None:
        if not form.remember:
            form.delivery_setting_id = settings[0].id if settings else ""
            form.current_status = DeliveryOrderStatus.PROCESSING.value
            form.tracking_number = ""
        form.notes = ""
