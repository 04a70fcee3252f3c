"""
Support ticket routes.

Handles:
- /api/tickets (POST) - Create a ticket for the signed-in student
"""

from flask import Blueprint, request

from core.exceptions import AuthenticationError, RemoteCallError, ValidationError
from models.ticket import TicketDraft
from logging_config import get_logger
from .common import current_user, error_response, notification, service


# Module logger
logger = get_logger(__name__)

tickets_bp = Blueprint("tickets", __name__, url_prefix="/api/tickets")


@tickets_bp.route("", methods=["POST"])
def create_ticket():
    """
    Create a support ticket.

    Expects JSON {subject, category, priority, description}. The student
    fields and the Open status are filled in from the session user.
    """
    tickets = service("TICKET_SERVICE")
    draft = TicketDraft.from_dict(request.get_json(silent=True) or {})

    try:
        ticket = tickets.create_ticket(draft, current_user())
    except ValidationError as e:
        return error_response(e, "Invalid Ticket")
    except AuthenticationError as e:
        return error_response(e, "Authentication Error")
    except RemoteCallError as e:
        logger.warning(f"Ticket submission failed: {e}")
        if not e.message:
            e.message = "An unknown error occurred."
        return error_response(e, "Submission Failed")

    return {
        "ticket": ticket.to_dict(),
        "redirect": f"/dashboard/tickets/{ticket.id}",
        "notification": notification(
            "Ticket Submitted!",
            f'Your ticket "{ticket.subject}" has been created.',
        ),
    }, 201
