"""
Shared fixtures for the portal test suite.

The backend is always a MagicMock shaped like PortalAPIClient; the query
cache and preference store are the real implementations.
"""

import pytest
from unittest.mock import MagicMock

from core.api_client import PortalAPIClient
from models.course import Course, StudentInBatch, DeliverySetting
from models.delivery_order import DeliveryOrder
from services.query_cache import QueryCache
from services.preference_store import PreferenceStore
from services.batch_service import BatchService, StaleTimes
from services.delivery_order_service import OrderCreationWorkflow
from services.ticket_service import TicketService


# Fixtures - domain data

@pytest.fixture
def course():
    """The BATCH-101 course batch."""
    return Course(id="c-101", course_code="BATCH-101", name="Batch 101")


@pytest.fixture
def student():
    """A student with no delivery orders."""
    return StudentInBatch(
        username="stu001",
        full_name="Nimal Perera",
        address_line_1="12 Temple Road",
        address_line_2="Nugegoda",
        city="Colombo",
        telephone_1="0771234567",
        student_course_id="sc-1",
    )


@pytest.fixture
def starter_setting():
    return DeliverySetting(id="s1", delivery_title="Starter", value=500)


@pytest.fixture
def premium_setting():
    return DeliverySetting(id="s2", delivery_title="Premium", value=1500)


@pytest.fixture
def created_order():
    return DeliveryOrder(
        id="DO-1001",
        course_code="BATCH-101",
        tracking_number="PENDING",
        student_number="stu001",
    )


# Fixtures - collaborators

@pytest.fixture
def mock_api(course, student, starter_setting, created_order):
    """Backend client mock with one course, one student and one pack."""
    api = MagicMock(spec=PortalAPIClient)
    api.base_url = "http://backend.test/api"
    api.get_courses.return_value = [course]
    api.get_students_by_course.return_value = [student]
    api.get_delivery_settings.return_value = [starter_setting]
    api.get_delivery_orders.return_value = []
    api.create_delivery_order.return_value = created_order
    return api


@pytest.fixture
def cache():
    """A real query cache, shut down after the test."""
    query_cache = QueryCache(default_stale_time=0.0, max_workers=2)
    yield query_cache
    query_cache.shutdown(wait=True)


@pytest.fixture
def preferences(tmp_path):
    """A preference store in a temp directory."""
    return PreferenceStore(tmp_path / "preferences.json")


@pytest.fixture
def batch_service(mock_api, cache):
    """Batch service whose packs and orders never go stale during a test."""
    return BatchService(
        mock_api,
        cache,
        StaleTimes(courses=None, students=None, delivery_settings=None, student_orders=300.0),
    )


@pytest.fixture
def workflow(mock_api, cache, batch_service, preferences):
    return OrderCreationWorkflow(mock_api, cache, batch_service, preferences)


@pytest.fixture
def ticket_service(mock_api, cache):
    return TicketService(mock_api, cache)


# Fixtures - Flask

@pytest.fixture
def app(mock_api, tmp_path):
    """Portal app wired to the mock backend."""
    from app import create_app

    flask_app = create_app(
        "config.TestingConfig",
        api_client=mock_api,
        overrides={
            "PREFERENCES_PATH": str(tmp_path / "app_preferences.json"),
            "STUDENTS_STALE_TIME": None,
            "SETTINGS_STALE_TIME": None,
        },
    )
    yield flask_app
    flask_app.config["QUERY_CACHE"].shutdown(wait=True)


@pytest.fixture
def client(app):
    return app.test_client()
