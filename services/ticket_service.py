"""
Support ticket service.

Validates the create-ticket form, submits it for the signed-in student and
invalidates the cached ticket lists that now miss the new ticket.

Cache keys invalidated on success:
    ("tickets", <username>)   the student's own tickets
    ("admin-tickets",)        the administrators' queue
"""

from __future__ import annotations

from typing import Optional

from core.api_client import PortalAPIClient
from core.exceptions import AuthenticationError, ValidationError
from models.ticket import (
    CreateTicketRequest,
    Ticket,
    TicketCategory,
    TicketDraft,
    TicketPriority,
    TicketStatus,
)
from models.user import PortalUser
from modules.text import sanitize_text
from services.query_cache import QueryCache
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

ADMIN_TICKETS_KEY = ("admin-tickets",)


def user_tickets_key(username: str) -> tuple:
    return ("tickets", username)


class TicketService:
    """Creates support tickets on behalf of the signed-in student."""

    def __init__(self, api_client: PortalAPIClient, cache: QueryCache):
        self._api = api_client
        self._cache = cache

    def clean_draft(self, draft: TicketDraft) -> TicketDraft:
        """
        Sanitize free-text fields and validate the result.

        Returns:
            A new, sanitized draft

        Raises:
            ValidationError: With every field problem found
        """
        cleaned = TicketDraft(
            subject=sanitize_text(draft.subject),
            category=draft.category.strip(),
            priority=draft.priority.strip(),
            description=sanitize_text(draft.description),
        )

        errors = cleaned.validate()
        if errors:
            first_message = next(iter(errors.values()))[0]
            logger.debug(f"Ticket form rejected: {errors}")
            raise ValidationError(first_message, errors)

        return cleaned

    def build_request(self, draft: TicketDraft, user: Optional[PortalUser]) -> CreateTicketRequest:
        """
        Turn a validated draft into a request for ``user``.

        Raises:
            ValidationError: If the draft is invalid
            AuthenticationError: If nobody with a username is signed in
        """
        cleaned = self.clean_draft(draft)

        if user is None or not user.username:
            raise AuthenticationError("You must be logged in to create a ticket.")

        return CreateTicketRequest(
            subject=cleaned.subject,
            category=TicketCategory(cleaned.category),
            priority=TicketPriority(cleaned.priority),
            description=cleaned.description,
            student_number=user.username,
            student_name=user.username,
            student_avatar=user.avatar,
            status=TicketStatus.OPEN,
        )

    def create_ticket(self, draft: TicketDraft, user: Optional[PortalUser]) -> Ticket:
        """
        Validate and submit a ticket.

        Returns:
            The created ticket

        Raises:
            ValidationError: Invalid form (no request sent)
            AuthenticationError: Not signed in (no request sent)
            RemoteCallError: The create call failed
        """
        request = self.build_request(draft, user)
        ticket = self._api.create_ticket(request)

        self._cache.invalidate(user_tickets_key(request.student_number))
        self._cache.invalidate(ADMIN_TICKETS_KEY)

        logger.info(f"Ticket {ticket.id} submitted by {request.student_number}: {ticket.subject!r}")
        return ticket
