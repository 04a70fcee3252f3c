"""
Batch roster service.

Read side of the delivery-orders page: courses, the students in a batch,
a batch's delivery packs and each student's delivery orders. Every read goes
through the shared QueryCache under a fixed key layout so the order workflow
can invalidate exactly what it changes.

Cache keys:
    ("allCourses",)                          never stale
    ("studentsByCourse", <courseCode>)
    ("deliverySettings", <courseCode>)
    ("studentDeliveryOrders", <username>)    5 minutes by default
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.api_client import PortalAPIClient
from core.exceptions import NotFoundError, RemoteCallError
from models.course import Course, StudentInBatch, DeliverySetting
from models.delivery_order import DeliveryOrder, find_order_for_course
from services.query_cache import QueryCache
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

STUDENTS_PER_PAGE = 25

COURSES_KEY = ("allCourses",)


def students_key(course_code: str) -> tuple:
    return ("studentsByCourse", course_code)


def delivery_settings_key(course_code: str) -> tuple:
    return ("deliverySettings", course_code)


def student_orders_key(username: str) -> tuple:
    return ("studentDeliveryOrders", username)


@dataclass(frozen=True)
class StaleTimes:
    """
    Staleness window per query family, in seconds (None = never stale).

    Built from config by create_app().
    """

    courses: Optional[float] = None
    students: Optional[float] = 0.0
    delivery_settings: Optional[float] = 0.0
    student_orders: Optional[float] = 300.0


@dataclass
class StudentPage:
    """One page of a filtered student list."""

    items: List[StudentInBatch] = field(default_factory=list)
    page: int = 1
    total_pages: int = 0
    total_items: int = 0


def filter_students(students: List[StudentInBatch], search_term: str) -> List[StudentInBatch]:
    """Keep students whose username or full name contains the term (any case)."""
    if not search_term:
        return list(students)
    return [s for s in students if s.matches(search_term)]


def paginate(items: List[Any], page: int, per_page: int = STUDENTS_PER_PAGE) -> StudentPage:
    """
    Slice one page out of ``items``.

    The page number is clamped to [1, total_pages]; an empty list yields
    page 1 of 0.
    """
    total_items = len(items)
    total_pages = math.ceil(total_items / per_page) if per_page > 0 else 0
    page = max(1, min(page, total_pages)) if total_pages else 1

    start = (page - 1) * per_page
    return StudentPage(
        items=items[start:start + per_page],
        page=page,
        total_pages=total_pages,
        total_items=total_items,
    )


class BatchService:
    """
    Cached reads for course batches and their students.

    Attributes:
        stale_times: Staleness windows used for each query family
    """

    def __init__(
        self,
        api_client: PortalAPIClient,
        cache: QueryCache,
        stale_times: Optional[StaleTimes] = None
    ):
        self._api = api_client
        self._cache = cache
        self._stale = stale_times or StaleTimes()

    @property
    def stale_times(self) -> StaleTimes:
        return self._stale

    # =========================================================================
    # COURSES
    # =========================================================================

    def list_courses(self) -> List[Course]:
        """All batches, cached without expiry."""
        return self._cache.fetch(
            COURSES_KEY,
            self._api.get_courses,
            stale_time=self._stale.courses,
        )

    def get_course(self, course_id: str) -> Course:
        """
        Look up a batch by its id.

        Raises:
            NotFoundError: If no batch has this id
            RemoteCallError: If the course list cannot be fetched
        """
        for course in self.list_courses():
            if course.id == course_id:
                return course
        raise NotFoundError("Course", course_id)

    # =========================================================================
    # STUDENTS
    # =========================================================================

    def list_students(self, course: Course) -> List[StudentInBatch]:
        """Students enrolled in ``course``."""
        return self._cache.fetch(
            students_key(course.course_code),
            lambda: self._api.get_students_by_course(course.course_code),
            stale_time=self._stale.students,
        )

    def get_student(self, course: Course, username: str) -> StudentInBatch:
        """
        Look up one student of a batch.

        Raises:
            NotFoundError: If the student is not enrolled in the batch
        """
        for student in self.list_students(course):
            if student.username == username:
                return student
        raise NotFoundError("Student", username)

    def search_students(self, course: Course, search_term: str = "", page: int = 1) -> StudentPage:
        """Filtered, paginated student list for a batch."""
        students = filter_students(self.list_students(course), search_term)
        return paginate(students, page)

    # =========================================================================
    # DELIVERY PACKS AND ORDERS
    # =========================================================================

    def get_delivery_settings(self, course: Course) -> List[DeliverySetting]:
        """Delivery packs for a batch, in backend order."""
        return self._cache.fetch(
            delivery_settings_key(course.course_code),
            lambda: self._api.get_delivery_settings(course.course_code),
            stale_time=self._stale.delivery_settings,
        )

    def get_student_orders(self, student: StudentInBatch) -> List[DeliveryOrder]:
        """Every delivery order for a student."""
        return self._cache.fetch(
            student_orders_key(student.username),
            lambda: self._api.get_delivery_orders(student.username),
            stale_time=self._stale.student_orders,
        )

    def order_status(self, student: StudentInBatch, course: Course) -> Dict[str, Any]:
        """
        Delivery-order status of one student for one batch.

        Returns:
            {"state": "ordered", "order_id", "tracking_number"} when an order
            exists, {"state": "none"} when one can be created, or
            {"state": "error", "message"} when the lookup failed
        """
        try:
            orders = self.get_student_orders(student)
        except RemoteCallError as e:
            logger.warning(f"Order lookup failed for {student.username}: {e.message}")
            return {"state": "error", "message": e.message}

        order = find_order_for_course(orders, course.course_code)
        if order is None:
            return {"state": "none"}

        return {
            "state": "ordered",
            "order_id": order.id,
            "tracking_number": order.tracking_number,
        }
