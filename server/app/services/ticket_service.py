"""HTTP client for the external ticket/payment service.

The service owns the inventory, payment processing and credential generation.
This module only maps its JSON contract onto the models in
``app.schemas.ticket`` and turns every failure into ``TicketServiceError``.
"""

import logging
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from app.core.config import get_settings
from app.core.validation import mask_phone_number
from app.schemas.ticket import PurchaseRequest, PurchaseResult, Ticket, TicketType

logger = logging.getLogger(__name__)

TYPES_PATH = "/tickets/types"
TYPE_TICKETS_PATH = "/tickets/types/{type_id}/tickets"
AVAILABLE_TICKETS_PATH = "/tickets/available"
PURCHASE_PATH = "/tickets/purchase"

_ticket_types_adapter = TypeAdapter(list[TicketType])
_tickets_adapter = TypeAdapter(list[Ticket])
_purchase_adapter = TypeAdapter(PurchaseResult)


class TicketServiceError(Exception):
    """The ticket service could not be reached or rejected the call.

    ``message`` never contains URLs or credentials. ``service_message`` is the
    rejection reason the service itself gave (payment declined, ticket sold),
    when there was one.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        service_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.service_message = service_message


def describe_http_error(e: httpx.HTTPError) -> str:
    """Return a safe description that never leaks URLs, headers or keys."""
    if isinstance(e, httpx.TimeoutException):
        return "Ticket service timeout"
    if isinstance(e, httpx.ConnectError):
        return "Ticket service unreachable"
    if isinstance(e, httpx.HTTPStatusError):
        return f"Ticket service error: HTTP {e.response.status_code}"
    return "Ticket service error"


def _service_message(response: httpx.Response) -> str | None:
    """Pull the human-readable rejection reason out of an error body."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ("message", "detail", "error"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class TicketServiceClient:
    """Async client for the ticket/payment service contract.

    A new ``httpx.AsyncClient`` is opened per call; ``transport`` lets tests
    plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return httpx.AsyncClient(
            base_url=self.base_url, headers=headers, transport=self._transport
        )

    async def _request(self, method: str, path: str, json: dict | None = None) -> object:
        async with self._client() as client:
            try:
                response = await client.request(method, path, json=json)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                service_message = _service_message(e.response)
                logger.warning(
                    "Ticket service %s %s failed: HTTP %d",
                    method,
                    path,
                    e.response.status_code,
                )
                raise TicketServiceError(
                    service_message or describe_http_error(e),
                    e.response.status_code,
                    service_message=service_message,
                ) from e
            except httpx.HTTPError as e:
                logger.warning("Ticket service %s %s failed: %s", method, path, type(e).__name__)
                raise TicketServiceError(describe_http_error(e)) from e

        try:
            return response.json()
        except ValueError as e:
            logger.warning("Ticket service %s %s returned a non-JSON body", method, path)
            raise TicketServiceError("Unexpected response from ticket service") from e

    @staticmethod
    def _parse(adapter: TypeAdapter, data: object, what: str):
        try:
            return adapter.validate_python(data)
        except ValidationError as e:
            logger.warning("Invalid %s payload from ticket service: %d errors", what, e.error_count())
            raise TicketServiceError("Unexpected response from ticket service") from e

    async def list_ticket_types(self) -> list[TicketType]:
        data = await self._request("GET", TYPES_PATH)
        return self._parse(_ticket_types_adapter, data, "ticket type")

    async def list_tickets_by_type(self, type_id: str) -> list[Ticket]:
        path = TYPE_TICKETS_PATH.format(type_id=quote(type_id, safe=""))
        data = await self._request("GET", path)
        return self._parse(_tickets_adapter, data, "ticket")

    async def list_available_tickets(self) -> list[Ticket]:
        data = await self._request("GET", AVAILABLE_TICKETS_PATH)
        return self._parse(_tickets_adapter, data, "ticket")

    async def purchase_ticket(self, request: PurchaseRequest) -> PurchaseResult:
        """Submit a purchase. One attempt, no retry."""
        logger.info(
            "Submitting purchase: ticket=%s phone=%s method=%s",
            request.ticket_id,
            mask_phone_number(request.phone_number),
            request.method.value,
        )
        data = await self._request(
            "POST", PURCHASE_PATH, json=request.model_dump(by_alias=True, mode="json")
        )
        return self._parse(_purchase_adapter, data, "purchase")


def get_ticket_service() -> TicketServiceClient:
    """Build a client from settings (FastAPI dependency)."""
    settings = get_settings()
    return TicketServiceClient(
        base_url=settings.ticket_service_base_url,
        api_key=settings.ticket_service_api_key,
    )
