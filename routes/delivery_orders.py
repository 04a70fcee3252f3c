"""
Batch delivery order routes.

Handles:
- /api/batches - Course batches for the batch selector
- /api/batches/<course_id>/students - Paginated students with order status
- /api/batches/<course_id>/students/<username>/order-form - Defaulted form
- /api/batches/<course_id>/students/<username>/delivery-orders - Create order
"""

from flask import Blueprint, request

from core.exceptions import (
    DuplicateOrderError,
    NotFoundError,
    RemoteCallError,
    ValidationError,
)
from models.delivery_order import DeliveryOrderForm, DeliveryOrderStatus
from logging_config import get_logger
from .common import current_user, error_response, notification, service


# Module logger
logger = get_logger(__name__)

delivery_orders_bp = Blueprint("delivery_orders", __name__, url_prefix="/api/batches")


def _operator():
    user = current_user()
    return user.username if user and user.username else None


@delivery_orders_bp.route("", methods=["GET"])
def list_batches():
    """Course batches, served from the never-stale course cache."""
    batches = service("BATCH_SERVICE")
    try:
        courses = batches.list_courses()
    except RemoteCallError as e:
        return error_response(e, "Error Loading Batches")

    return {"courses": [c.to_dict() for c in courses]}


@delivery_orders_bp.route("/<course_id>/students", methods=["GET"])
def list_students(course_id: str):
    """
    Students of one batch with their delivery-order status.

    Query parameters:
        search: Filter on student ID or name (case-insensitive)
        page: 1-based page number (clamped to the valid range)
    """
    batches = service("BATCH_SERVICE")
    search_term = request.args.get("search", "").strip()
    try:
        page_number = int(request.args.get("page", "1"))
    except ValueError:
        page_number = 1

    try:
        course = batches.get_course(course_id)
        page = batches.search_students(course, search_term, page_number)
    except NotFoundError as e:
        return error_response(e, "Unknown Batch")
    except RemoteCallError as e:
        return error_response(e, "Error Loading Students")

    students = []
    for student in page.items:
        row = student.to_dict()
        row["order_status"] = batches.order_status(student, course)
        students.append(row)

    return {
        "course": course.to_dict(),
        "students": students,
        "page": page.page,
        "total_pages": page.total_pages,
        "total_items": page.total_items,
        "summary": f"Showing {len(students)} of {page.total_items} students.",
    }


@delivery_orders_bp.route("/<course_id>/students/<username>/order-form", methods=["GET"])
def order_form(course_id: str, username: str):
    """
    Initial state of the create-order form.

    When the student already has an order for this batch, that order is
    returned instead and no form is offered.
    """
    batches = service("BATCH_SERVICE")
    workflow = service("ORDER_WORKFLOW")

    try:
        course = batches.get_course(course_id)
        student = batches.get_student(course, username)

        existing = workflow.find_existing_order(student, course)
        if existing is not None:
            return {"can_create": False, "existing_order": existing.to_dict()}

        form = workflow.open_form(student, course, operator=_operator())
        settings = batches.get_delivery_settings(course)
    except NotFoundError as e:
        return error_response(e, "Not Found")
    except RemoteCallError as e:
        return error_response(e, "Error Loading Order Form")

    return {
        "can_create": True,
        "title": f"New Delivery for {student.full_name}",
        "student": dict(student.to_dict(), display_address=student.display_address),
        "form": form.to_dict(),
        "delivery_settings": [dict(s.to_dict(), label=s.label) for s in settings],
        "status_choices": DeliveryOrderStatus.choices(),
    }


@delivery_orders_bp.route("/<course_id>/students/<username>/delivery-orders", methods=["POST"])
def create_delivery_order(course_id: str, username: str):
    """
    Submit the create-order form.

    On failure the submitted form is echoed back unchanged so the operator
    can correct it and resubmit.
    """
    batches = service("BATCH_SERVICE")
    workflow = service("ORDER_WORKFLOW")
    form = DeliveryOrderForm.from_dict(request.get_json(silent=True) or {})

    try:
        course = batches.get_course(course_id)
        student = batches.get_student(course, username)
    except NotFoundError as e:
        return error_response(e, "Not Found")
    except RemoteCallError as e:
        return error_response(e, "Failed to create order")

    try:
        order = workflow.submit(student, course, form, operator=_operator())
    except DuplicateOrderError as e:
        body, status = error_response(e, "Order Already Exists")
        body["form"] = form.to_dict()
        return body, status
    except ValidationError as e:
        body, status = error_response(e, "Error")
        body["form"] = form.to_dict()
        return body, status
    except RemoteCallError as e:
        logger.warning(f"Delivery order for {username} failed: {e}")
        body, status = error_response(e, "Failed to create order")
        body["form"] = form.to_dict()
        return body, status

    return {
        "order": order.to_dict(),
        "form": form.to_dict(),
        "notification": notification(
            "Order Created!",
            f"A new delivery order for {student.full_name} has been created.",
        ),
    }, 201
