"""Tests for the batch roster service: lookup, search, pagination, order status."""

import pytest

from core.exceptions import NotFoundError, RemoteCallError
from models.course import StudentInBatch
from models.delivery_order import DeliveryOrder
from services.batch_service import (
    COURSES_KEY,
    STUDENTS_PER_PAGE,
    filter_students,
    paginate,
    students_key,
)


def _students(count):
    return [
        StudentInBatch(username=f"stu{i:03d}", full_name=f"Student {i}")
        for i in range(1, count + 1)
    ]


class TestFilterStudents:

    def test_empty_term_keeps_everyone(self):
        students = _students(3)
        assert filter_students(students, "") == students

    def test_matches_username_case_insensitive(self):
        students = _students(12)
        result = filter_students(students, "STU01")
        assert [s.username for s in result] == ["stu010", "stu011", "stu012"]

    def test_matches_full_name(self):
        students = [
            StudentInBatch(username="stu001", full_name="Nimal Perera"),
            StudentInBatch(username="stu002", full_name="Kamala Silva"),
        ]
        assert [s.username for s in filter_students(students, "silva")] == ["stu002"]


class TestPaginate:

    def test_first_page(self):
        page = paginate(_students(60), 1)

        assert len(page.items) == STUDENTS_PER_PAGE
        assert page.total_pages == 3
        assert page.total_items == 60

    def test_last_page_is_partial(self):
        page = paginate(_students(60), 3)

        assert len(page.items) == 10
        assert page.items[0].username == "stu051"

    @pytest.mark.parametrize("requested,expected", [(0, 1), (-4, 1), (9, 3)])
    def test_page_is_clamped(self, requested, expected):
        assert paginate(_students(60), requested).page == expected

    def test_empty_list(self):
        page = paginate([], 5)

        assert page.items == []
        assert page.page == 1
        assert page.total_pages == 0


class TestBatchService:

    def test_courses_are_cached_without_expiry(self, batch_service, mock_api, cache):
        batch_service.list_courses()
        batch_service.list_courses()

        mock_api.get_courses.assert_called_once()
        assert cache.get_entry(COURSES_KEY) is not None

    def test_get_course_by_id(self, batch_service, course):
        assert batch_service.get_course("c-101") == course

    def test_unknown_course(self, batch_service):
        with pytest.raises(NotFoundError) as exc_info:
            batch_service.get_course("c-404")
        assert exc_info.value.status_code == 404

    def test_students_cached_per_course(self, batch_service, mock_api, cache, course):
        batch_service.list_students(course)

        mock_api.get_students_by_course.assert_called_once_with("BATCH-101")
        assert cache.get_entry(students_key("BATCH-101")) is not None

    def test_get_student(self, batch_service, course, student):
        assert batch_service.get_student(course, "stu001") == student

    def test_unknown_student(self, batch_service, course):
        with pytest.raises(NotFoundError, match="stu999"):
            batch_service.get_student(course, "stu999")

    def test_search_students(self, batch_service, mock_api, course):
        mock_api.get_students_by_course.return_value = _students(30)

        page = batch_service.search_students(course, "stu02", page=1)

        assert page.total_items == 10
        assert page.total_pages == 1


class TestOrderStatus:

    def test_no_order(self, batch_service, student, course):
        assert batch_service.order_status(student, course) == {"state": "none"}

    def test_existing_order(self, batch_service, mock_api, student, course):
        mock_api.get_delivery_orders.return_value = [
            DeliveryOrder(id="DO-1", course_code="BATCH-099", tracking_number="OLD"),
            DeliveryOrder(id="DO-2", course_code="BATCH-101", tracking_number="TRK-5"),
        ]

        assert batch_service.order_status(student, course) == {
            "state": "ordered",
            "order_id": "DO-2",
            "tracking_number": "TRK-5",
        }

    def test_lookup_failure_is_reported_per_student(self, batch_service, mock_api, student, course):
        mock_api.get_delivery_orders.side_effect = RemoteCallError(
            "Connection error: refused", operation="list delivery orders"
        )

        assert batch_service.order_status(student, course) == {
            "state": "error",
            "message": "Connection error: refused",
        }
