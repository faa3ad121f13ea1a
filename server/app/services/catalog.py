"""Ticket catalog loading for the purchase page.

Two scopes:
- a ticket type was requested (``?type=<id>``): the type list and that type's
  tickets are fetched concurrently, the type is resolved, and only tickets
  with status ``available`` are kept
- no type: the service's pre-filtered list of available tickets is used

Failures never raise out of ``load``: the visitor gets one notice and an
empty catalog.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from app.schemas.ticket import Ticket, TicketStatus, TicketType
from app.services.notifications import Notifier
from app.services.ticket_service import TicketServiceClient, TicketServiceError

logger = logging.getLogger(__name__)

TYPE_NOT_FOUND_MESSAGE = "Ticket type not found"
TYPE_LOAD_FAILED_MESSAGE = "Could not load this ticket type. Please try again."
TICKETS_LOAD_FAILED_MESSAGE = "Could not load the available tickets. Please try again."
TYPES_LOAD_FAILED_MESSAGE = "Could not load the ticket offers. Please try again."


class TicketTypeNotFoundError(LookupError):
    """The requested ticket type is not in the service's type list."""

    def __init__(self, type_id: str) -> None:
        super().__init__(f"Ticket type {type_id!r} not found")
        self.type_id = type_id


@dataclass(frozen=True)
class Catalog:
    """What the visitor can currently pick from."""

    type_id: str | None = None
    ticket_type: TicketType | None = None
    tickets: tuple[Ticket, ...] = ()
    redirect_to: str | None = None

    def find_ticket(self, ticket_id: str) -> Ticket | None:
        return next((t for t in self.tickets if t.id == ticket_id), None)


@dataclass
class TicketCatalogLoader:
    service: TicketServiceClient
    notifier: Notifier
    catalog_entry_path: str = "/home"
    loading: bool = field(default=False, init=False)

    async def load(self, type_id: str | None = None) -> Catalog:
        """Fetch the catalog for the given scope; ``loading`` is true meanwhile."""
        self.loading = True
        try:
            if type_id:
                return await self._load_type(type_id)
            return await self._load_available()
        finally:
            self.loading = False

    async def _load_type(self, type_id: str) -> Catalog:
        results = await asyncio.gather(
            self.service.list_ticket_types(),
            self.service.list_tickets_by_type(type_id),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, TicketServiceError):
                self.notifier.error(TYPE_LOAD_FAILED_MESSAGE)
                return Catalog(type_id=type_id)
            if isinstance(result, BaseException):
                raise result
        types, tickets = results

        try:
            ticket_type = resolve_ticket_type(types, type_id)
        except TicketTypeNotFoundError:
            logger.info("Unknown ticket type requested: %s", type_id)
            self.notifier.error(TYPE_NOT_FOUND_MESSAGE)
            return Catalog(redirect_to=self.catalog_entry_path)

        available = tuple(t for t in tickets if t.status == TicketStatus.AVAILABLE)
        logger.info(
            "Loaded ticket type %s: %d of %d tickets available",
            type_id,
            len(available),
            len(tickets),
        )
        return Catalog(type_id=type_id, ticket_type=ticket_type, tickets=available)

    async def _load_available(self) -> Catalog:
        try:
            tickets = await self.service.list_available_tickets()
        except TicketServiceError:
            self.notifier.error(TICKETS_LOAD_FAILED_MESSAGE)
            return Catalog()
        return Catalog(tickets=tuple(tickets))


def resolve_ticket_type(types: list[TicketType], type_id: str) -> TicketType:
    for ticket_type in types:
        if ticket_type.id == type_id:
            return ticket_type
    raise TicketTypeNotFoundError(type_id)


async def list_purchasable_types(service: TicketServiceClient) -> list[TicketType]:
    """Ticket types worth offering on the general catalog page.

    Raises TicketServiceError; the caller decides how to report it.
    """
    types = await service.list_ticket_types()
    purchasable = [t for t in types if t.is_purchasable]
    logger.info("Ticket types: %d total, %d purchasable", len(types), len(purchasable))
    return purchasable
