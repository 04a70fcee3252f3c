"""
Tests for the delivery order creation workflow.

The backend is mocked; the query cache and preference store are real, so
these tests check the cache invalidation and remembered defaults that follow
a create.
"""

import pytest

from core.exceptions import DuplicateOrderError, RemoteCallError, ValidationError
from models.delivery_order import DeliveryOrder, DeliveryOrderForm
from services.batch_service import student_orders_key
from services.delivery_order_service import DEFAULTS_KEY, OrderCreationWorkflow


REMEMBERED_PREMIUM = {
    "deliverySettingId": "s2",
    "status": "2",
    "tracking": "TRK-9",
    "remember": True,
}


@pytest.fixture
def two_packs(mock_api, starter_setting, premium_setting):
    mock_api.get_delivery_settings.return_value = [starter_setting, premium_setting]
    return [starter_setting, premium_setting]


class TestOpenForm:

    def test_defaults_to_first_pack(self, workflow, student, course):
        form = workflow.open_form(student, course)

        assert form.delivery_setting_id == "s1"
        assert form.current_status == "1"
        assert form.tracking_number == ""
        assert form.remember is False

    def test_prefills_remembered_defaults(self, workflow, preferences, student, course, two_packs):
        preferences.set(DEFAULTS_KEY, REMEMBERED_PREMIUM)

        form = workflow.open_form(student, course)

        assert form.delivery_setting_id == "s2"
        assert form.current_status == "2"
        assert form.tracking_number == "TRK-9"
        assert form.remember is True

    def test_ignores_defaults_without_remember(self, workflow, preferences, student, course, two_packs):
        preferences.set(DEFAULTS_KEY, dict(REMEMBERED_PREMIUM, remember=False))

        form = workflow.open_form(student, course)

        assert form.delivery_setting_id == "s1"
        assert form.remember is False

    def test_no_packs_leaves_selection_empty(self, workflow, mock_api, student, course):
        mock_api.get_delivery_settings.return_value = []

        form = workflow.open_form(student, course)

        assert form.delivery_setting_id == ""

    def test_pack_fetch_failure_propagates(self, workflow, mock_api, student, course):
        mock_api.get_delivery_settings.side_effect = RemoteCallError(
            "Request timed out after 15.0s", operation="list delivery settings"
        )

        with pytest.raises(RemoteCallError):
            workflow.open_form(student, course)


class TestSubmit:

    def test_creates_order_with_pending_tracking(
        self, workflow, mock_api, preferences, student, course, created_order
    ):
        """BATCH-101 / stu001 / first pack, remember checked, blank tracking."""
        form = workflow.open_form(student, course)
        form.remember = True

        order = workflow.submit(student, course, form)

        assert order == created_order
        request = mock_api.create_delivery_order.call_args[0][0]
        assert request.student_number == "stu001"
        assert request.course_code == "BATCH-101"
        assert request.delivery_setting.id == "s1"
        assert request.tracking_number == "PENDING"
        assert request.current_status == "1"
        assert request.address == "12 Temple Road, Colombo"
        assert request.full_name == "Nimal Perera"
        assert request.phone == "0771234567"

        assert preferences.get(DEFAULTS_KEY) == {
            "deliverySettingId": "s1",
            "status": "1",
            "tracking": "",
            "remember": True,
        }

    def test_success_invalidates_student_orders(self, workflow, cache, student, course):
        form = workflow.open_form(student, course)

        workflow.submit(student, course, form)

        entry = cache.get_entry(student_orders_key("stu001"))
        assert entry is not None
        assert entry.invalidated is True

    def test_success_keeps_other_students_cached(self, workflow, cache, student, course):
        cache.set_query_data(student_orders_key("stu002"), [])
        form = workflow.open_form(student, course)

        workflow.submit(student, course, form)

        assert cache.get_entry(student_orders_key("stu002")).invalidated is False

    def test_remembered_form_keeps_selection_but_clears_notes(
        self, workflow, student, course, two_packs
    ):
        form = DeliveryOrderForm(
            delivery_setting_id="s2",
            tracking_number="TRK-9",
            current_status="2",
            notes="Call before delivery",
            remember=True,
        )

        workflow.submit(student, course, form)

        assert form.delivery_setting_id == "s2"
        assert form.current_status == "2"
        assert form.tracking_number == "TRK-9"
        assert form.notes == ""

    def test_unchecked_remember_forgets_defaults(
        self, workflow, preferences, student, course, two_packs
    ):
        preferences.set(DEFAULTS_KEY, REMEMBERED_PREMIUM)
        form = workflow.open_form(student, course)
        form.remember = False

        workflow.submit(student, course, form)

        assert preferences.get(DEFAULTS_KEY) is None
        # Form is reset to the batch defaults
        assert form.delivery_setting_id == "s1"
        assert form.current_status == "1"
        assert form.tracking_number == ""

        # Next form falls back to the first pack
        next_form = workflow.open_form(student, course)
        assert next_form.delivery_setting_id == "s1"
        assert next_form.remember is False

    def test_notes_are_sanitised(self, workflow, mock_api, student, course):
        form = workflow.open_form(student, course)
        form.notes = "  <b>Leave at the gate</b> <script>x</script> "

        workflow.submit(student, course, form)

        request = mock_api.create_delivery_order.call_args[0][0]
        assert "<" not in request.notes
        assert request.notes.startswith("Leave at the gate")

    def test_notes_keep_typed_characters(self, workflow, mock_api, student, course):
        form = workflow.open_form(student, course)
        form.notes = "Fragile & heavy, weight < 5kg"

        workflow.submit(student, course, form)

        request = mock_api.create_delivery_order.call_args[0][0]
        assert request.notes == "Fragile & heavy, weight < 5kg"

    def test_truncation_counts_typed_characters(self, workflow, mock_api, student, course):
        form = workflow.open_form(student, course)
        form.notes = "&" * 1200

        workflow.submit(student, course, form)

        assert mock_api.create_delivery_order.call_args[0][0].notes == "&" * 1000

    def test_notes_are_truncated(self, workflow, mock_api, student, course):
        form = workflow.open_form(student, course)
        form.notes = "x" * 1500

        workflow.submit(student, course, form)

        request = mock_api.create_delivery_order.call_args[0][0]
        assert len(request.notes) == 1000

    def test_explicit_tracking_number_is_sent(self, workflow, mock_api, student, course):
        form = workflow.open_form(student, course)
        form.tracking_number = "  TRK-42 "

        workflow.submit(student, course, form)

        assert mock_api.create_delivery_order.call_args[0][0].tracking_number == "TRK-42"


class TestSubmitRejected:

    def test_missing_pack_sends_nothing(self, workflow, mock_api, student, course):
        form = DeliveryOrderForm(delivery_setting_id="")

        with pytest.raises(ValidationError) as exc_info:
            workflow.submit(student, course, form)

        assert exc_info.value.message == "Please select a delivery pack."
        assert "delivery_setting_id" in exc_info.value.field_errors
        mock_api.create_delivery_order.assert_not_called()

    def test_unknown_pack_sends_nothing(self, workflow, mock_api, student, course):
        form = DeliveryOrderForm(delivery_setting_id="s99")

        with pytest.raises(ValidationError):
            workflow.submit(student, course, form)

        mock_api.create_delivery_order.assert_not_called()

    def test_unknown_status_sends_nothing(self, workflow, mock_api, student, course):
        form = DeliveryOrderForm(delivery_setting_id="s1", current_status="9")

        with pytest.raises(ValidationError, match="valid order status") as exc_info:
            workflow.submit(student, course, form)

        # Raised on its own, not chained to the enum lookup failure
        assert exc_info.value.__suppress_context__ is True
        assert exc_info.value.__cause__ is None
        mock_api.create_delivery_order.assert_not_called()

    def test_existing_order_is_a_duplicate(self, workflow, mock_api, student, course):
        mock_api.get_delivery_orders.return_value = [
            DeliveryOrder(id="DO-77", course_code="BATCH-101", tracking_number="TRK-1")
        ]
        form = workflow.open_form(student, course)

        with pytest.raises(DuplicateOrderError) as exc_info:
            workflow.submit(student, course, form)

        assert exc_info.value.order_id == "DO-77"
        assert exc_info.value.status_code == 409
        mock_api.create_delivery_order.assert_not_called()

    def test_order_for_other_batch_is_not_a_duplicate(self, workflow, mock_api, student, course):
        mock_api.get_delivery_orders.return_value = [
            DeliveryOrder(id="DO-12", course_code="BATCH-099")
        ]
        form = workflow.open_form(student, course)

        workflow.submit(student, course, form)

        mock_api.create_delivery_order.assert_called_once()

    def test_remote_failure_changes_nothing(
        self, workflow, mock_api, cache, preferences, student, course, two_packs
    ):
        preferences.set(DEFAULTS_KEY, REMEMBERED_PREMIUM)
        mock_api.create_delivery_order.side_effect = RemoteCallError(
            "Student has no address", operation="create delivery order", http_status=422
        )
        form = workflow.open_form(student, course)
        form.remember = False
        form.notes = "Leave at the gate"

        with pytest.raises(RemoteCallError, match="Student has no address"):
            workflow.submit(student, course, form)

        # Form keeps what the operator typed
        assert form.delivery_setting_id == "s2"
        assert form.notes == "Leave at the gate"
        assert form.remember is False
        # Preferences and cache untouched
        assert preferences.get(DEFAULTS_KEY) == REMEMBERED_PREMIUM
        assert cache.get_entry(student_orders_key("stu001")).invalidated is False


class TestPreferenceScope:

    def test_invalid_scope_rejected(self, mock_api, cache, batch_service, preferences):
        with pytest.raises(ValueError):
            OrderCreationWorkflow(mock_api, cache, batch_service, preferences, preference_scope="team")

    def test_shared_scope_ignores_operator(self, workflow):
        assert workflow.defaults_key("op1") == DEFAULTS_KEY

    def test_user_scope_keeps_operators_apart(
        self, mock_api, cache, batch_service, preferences, student, course, two_packs
    ):
        workflow = OrderCreationWorkflow(
            mock_api, cache, batch_service, preferences, preference_scope="user"
        )
        form = DeliveryOrderForm(delivery_setting_id="s2", remember=True)

        workflow.submit(student, course, form, operator="op1")

        assert preferences.get("deliveryOrderDefaults:op1")["deliverySettingId"] == "s2"
        assert preferences.get(DEFAULTS_KEY) is None
        assert workflow.open_form(student, course, operator="op2").delivery_setting_id == "s1"
        assert workflow.open_form(student, course, operator="op1").delivery_setting_id == "s2"

    def test_defaults_without_pack_fall_back_to_first(self, workflow, preferences, student, course):
        preferences.set(DEFAULTS_KEY, {"deliverySettingId": None, "remember": True})

        form = workflow.open_form(student, course)

        assert form.delivery_setting_id == "s1"
