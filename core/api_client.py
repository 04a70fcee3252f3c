"""
REST client for the portal backend.

This module wraps every backend call the portal makes behind one class that
returns parsed domain objects or raises RemoteCallError.

THREAD SAFETY:
    - One PortalAPIClient is shared by all request threads and the query
      cache's refresh workers
    - requests.Session is safe for concurrent use as long as its headers
      are not mutated after construction, which this class never does
    - Each call returns freshly parsed objects (no shared mutable state)

NO RETRIES:
    A failed call raises immediately. The operator resubmits manually.

Usage:
    api_client = PortalAPIClient(
        base_url="https://portal.example.com/api",
        token=os.environ.get("PORTAL_API_TOKEN"),
        timeout_seconds=15.0,
    )

    courses = api_client.get_courses()
    settings = api_client.get_delivery_settings(courses[0].course_code)
    order = api_client.create_delivery_order(request)
"""

from __future__ import annotations

import logging
from typing import Dict, Any, List, Optional
from urllib.parse import quote

import requests

from models.course import Course, StudentInBatch, DeliverySetting
from models.delivery_order import CreateDeliveryOrderRequest, DeliveryOrder
from models.ticket import CreateTicketRequest, Ticket
from .exceptions import RemoteCallError


class PortalAPIClient:
    """
    Typed wrapper for the portal backend's REST API.

    This class provides methods for:
    - Listing courses, students in a batch, and a batch's delivery settings
    - Listing and creating delivery orders
    - Creating support tickets

    Every method either returns domain objects or raises RemoteCallError
    whose message is suitable for showing to the operator.

    Attributes:
        base_url: Backend root URL without trailing slash
        timeout_seconds: Per-request timeout
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_seconds: float = 15.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the API client.

        Args:
            base_url: Backend root URL (e.g., 'https://portal.example.com/api')
            token: Optional bearer token sent with every request
            timeout_seconds: Per-request timeout
            session: Pre-built session (tests pass a mock here)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required - set PORTAL_API_BASE_URL")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._logger = logger or logging.getLogger("batch_portal.core.api_client")

        self._session = session or requests.Session()
        self._session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

        self._logger.debug(f"PortalAPIClient initialized for {self._base_url}")

    @property
    def base_url(self) -> str:
        """Backend root URL."""
        return self._base_url

    @property
    def timeout_seconds(self) -> float:
        """Per-request timeout."""
        return self._timeout

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    def get_courses(self) -> List[Course]:
        """
        List all course batches.

        Returns:
            Courses in backend order

        Raises:
            RemoteCallError: If the request fails
        """
        records = self._request_list("GET", "/courses", operation="list courses")
        return [Course.from_dict(r) for r in records]

    def get_students_by_course(self, course_code: str) -> List[StudentInBatch]:
        """
        List students enrolled in a batch.

        Args:
            course_code: Batch code (e.g., 'BATCH-101')

        Raises:
            RemoteCallError: If the request fails
        """
        records = self._request_list(
            "GET",
            f"/courses/{quote(course_code, safe='')}/students",
            operation="list students",
        )
        return [StudentInBatch.from_dict(r) for r in records]

    def get_delivery_settings(self, course_code: str) -> List[DeliverySetting]:
        """
        List delivery packs configured for a batch.

        The order of the returned list is the backend's; the order workflow
        treats the first entry as the default pack.

        Raises:
            RemoteCallError: If the request fails
        """
        records = self._request_list(
            "GET",
            f"/courses/{quote(course_code, safe='')}/delivery-settings",
            operation="list delivery settings",
        )
        return [DeliverySetting.from_dict(r) for r in records]

    def get_delivery_orders(self, student_number: str) -> List[DeliveryOrder]:
        """
        List every delivery order for a student (across all batches).

        Raises:
            RemoteCallError: If the request fails
        """
        records = self._request_list(
            "GET",
            f"/students/{quote(student_number, safe='')}/delivery-orders",
            operation="list delivery orders",
        )
        return [DeliveryOrder.from_dict(r) for r in records]

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    def create_delivery_order(self, request: CreateDeliveryOrderRequest) -> DeliveryOrder:
        """
        Create a delivery order for a student.

        Args:
            request: Frozen request payload

        Returns:
            The created order

        Raises:
            RemoteCallError: If the backend rejects the order or is unreachable
        """
        self._logger.info(
            f"Creating delivery order: student={request.student_number}, "
            f"course={request.course_code}, pack={request.delivery_setting.id}"
        )
        data = self._request(
            "POST",
            "/delivery-orders",
            operation="create delivery order",
            json_body=request.to_payload(),
        )
        record = self._require_record(
            self._unwrap(data, "create delivery order"), "delivery order", "create delivery order"
        )
        order = DeliveryOrder.from_dict(record)
        self._logger.info(f"Delivery order created: {order.id}")
        return order

    def create_ticket(self, request: CreateTicketRequest) -> Ticket:
        """
        Create a support ticket.

        Raises:
            RemoteCallError: If the request fails or the response is malformed
        """
        self._logger.info(
            f"Creating ticket for {request.student_number}: "
            f"category={request.category.value}, priority={request.priority.value}"
        )
        data = self._request(
            "POST",
            "/tickets",
            operation="create ticket",
            json_body=request.to_payload(),
        )
        try:
            ticket = Ticket.from_dict(
                self._require_record(self._unwrap(data, "create ticket"), "ticket", "create ticket")
            )
        except ValueError as e:
            raise RemoteCallError(
                f"Invalid ticket in response: {e}", operation="create ticket"
            ) from e
        self._logger.info(f"Ticket created: {ticket.id}")
        return ticket

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _request_list(self, method: str, path: str, operation: str) -> List[Dict[str, Any]]:
        """Issue a request whose response is a JSON list of records."""
        data = self._request(method, path, operation=operation)
        records = self._unwrap(data, operation)
        if not isinstance(records, list):
            raise RemoteCallError(
                f"Expected a list in {operation} response, got {type(records).__name__}",
                operation=operation,
            )
        return [self._require_record(r, "record", operation) for r in records]

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json_body: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Issue one HTTP request and decode its JSON body.

        Returns:
            Decoded JSON (None for an empty body)

        Raises:
            RemoteCallError: On timeout, connection failure, non-2xx status,
                or undecodable body
        """
        url = f"{self._base_url}{path}"
        self._logger.debug(f"{method} {url}")

        try:
            response = self._session.request(
                method,
                url,
                json=json_body,
                timeout=self._timeout,
            )
        except requests.exceptions.Timeout:
            self._logger.error(f"{operation} timed out after {self._timeout:.1f}s")
            raise RemoteCallError(
                f"Request timed out after {self._timeout:.1f}s", operation=operation
            )
        except requests.exceptions.RequestException as e:
            self._logger.error(f"{operation} failed: {e}")
            raise RemoteCallError(f"Connection error: {e}", operation=operation)

        if not response.ok:
            message = self._error_message(response)
            self._logger.error(f"{operation} failed with HTTP {response.status_code}: {message}")
            raise RemoteCallError(message, operation=operation, http_status=response.status_code)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            self._logger.error(f"Invalid JSON in {operation} response: {e}")
            raise RemoteCallError(f"Invalid JSON in response: {e}", operation=operation)

    @staticmethod
    def _require_record(record: Any, kind: str, operation: str) -> Dict[str, Any]:
        """Reject anything but a JSON object where one record is expected."""
        if not isinstance(record, dict):
            raise RemoteCallError(
                f"Invalid {kind} in response: expected an object, got {type(record).__name__}",
                operation=operation,
            )
        return record

    @staticmethod
    def _unwrap(data: Any, operation: str) -> Any:
        """Accept both bare payloads and {'data': payload} envelopes."""
        if isinstance(data, dict) and "data" in data:
            return data["data"]
        if data is None:
            raise RemoteCallError("Empty response from server", operation=operation)
        return data

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """
        Extract a human-readable message from an error response.

        Prefers the backend's 'message' or 'error' field, then the HTTP
        reason phrase.
        """
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            for key in ("message", "error"):
                if body.get(key):
                    return str(body[key])

        reason = response.reason or "Request failed"
        return f"{reason} (HTTP {response.status_code})"
