"""Ticket purchase form state machine.

The controller holds exactly one state value:

    Browsing -> Selected     a ticket from the loaded catalog is picked
    Selected -> Submitting   guard passed, request sent
    Submitting -> Succeeded  service issued credentials
    Submitting -> Selected   service rejected the purchase, input kept
    Succeeded -> Browsing    restart

Entering ``Submitting`` happens before the first ``await`` so a second submit
on the same controller always sees the lock.
"""

import logging
from dataclasses import dataclass, replace

from app.core.validation import is_valid_phone_number, mask_phone_number, normalize_phone_number
from app.schemas.ticket import PaymentMethod, PurchaseRequest, PurchaseResult, Ticket
from app.services.catalog import Catalog, TicketCatalogLoader
from app.services.notifications import Notifier
from app.services.ticket_service import TicketServiceClient, TicketServiceError

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "Please select a ticket and enter your phone number"
INVALID_PHONE_MESSAGE = "Please enter a valid phone number (e.g. +243900000000 or 0900000000)"
UNKNOWN_TICKET_MESSAGE = "This ticket is no longer in the list. Please pick another one."
PURCHASE_SUCCESS_MESSAGE = "Ticket purchased successfully!"
PURCHASE_FAILED_MESSAGE = "The ticket purchase failed. Please try again."


class PurchaseValidationError(ValueError):
    """Input rejected locally; nothing was sent to the ticket service."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PurchaseInProgressError(RuntimeError):
    """The form is locked while a purchase request is in flight."""


class InvalidTransitionError(RuntimeError):
    """The requested action makes no sense in the current state."""


@dataclass(frozen=True)
class Browsing:
    phone_number: str = ""


@dataclass(frozen=True)
class Selected:
    ticket: Ticket
    phone_number: str = ""


@dataclass(frozen=True)
class Submitting:
    ticket: Ticket
    phone_number: str
    request: PurchaseRequest


@dataclass(frozen=True)
class Succeeded:
    result: PurchaseResult


PurchaseState = Browsing | Selected | Submitting | Succeeded


def validate_purchase_input(ticket: Ticket | None, phone_number: str) -> str:
    """Check the submission guard and return the normalized phone number."""
    if ticket is None or not phone_number.strip():
        raise PurchaseValidationError(MISSING_INPUT_MESSAGE)
    normalized = normalize_phone_number(phone_number)
    if not is_valid_phone_number(normalized):
        raise PurchaseValidationError(INVALID_PHONE_MESSAGE)
    return normalized


class PurchaseFormController:
    """Drives one visitor's purchase form over the loaded catalog."""

    def __init__(
        self,
        service: TicketServiceClient,
        loader: TicketCatalogLoader,
        notifier: Notifier,
        catalog: Catalog | None = None,
    ) -> None:
        self.service = service
        self.loader = loader
        self.notifier = notifier
        self.catalog = catalog or Catalog()
        self.state: PurchaseState = Browsing()

    @property
    def selected_ticket(self) -> Ticket | None:
        if isinstance(self.state, (Selected, Submitting)):
            return self.state.ticket
        return None

    @property
    def phone_number(self) -> str:
        if isinstance(self.state, (Browsing, Selected, Submitting)):
            return self.state.phone_number
        return ""

    @property
    def is_submitting(self) -> bool:
        return isinstance(self.state, Submitting)

    @property
    def can_submit(self) -> bool:
        """Whether the purchase button should be enabled."""
        return isinstance(self.state, Selected) and bool(self.state.phone_number.strip())

    def _ensure_editable(self) -> None:
        if isinstance(self.state, Submitting):
            raise PurchaseInProgressError("A purchase is already being processed")
        if isinstance(self.state, Succeeded):
            raise InvalidTransitionError("Start a new purchase before changing the form")

    async def load(self, type_id: str | None = None) -> Catalog:
        self.catalog = await self.loader.load(type_id)
        return self.catalog

    def select(self, ticket_id: str) -> Ticket:
        """Select a ticket from the loaded catalog, replacing any previous pick."""
        self._ensure_editable()
        ticket = self.catalog.find_ticket(ticket_id)
        if ticket is None:
            self.notifier.error(UNKNOWN_TICKET_MESSAGE)
            raise PurchaseValidationError(UNKNOWN_TICKET_MESSAGE)
        self.state = Selected(ticket=ticket, phone_number=self.phone_number)
        return ticket

    def set_phone_number(self, phone_number: str) -> None:
        self._ensure_editable()
        self.state = replace(self.state, phone_number=phone_number)

    async def submit(self) -> PurchaseResult | None:
        """Validate and submit the purchase.

        Returns the result on success and None when the service rejected the
        purchase (the form is then back in ``Selected`` with its input
        intact). Raises PurchaseValidationError without calling the service
        when the guard fails.
        """
        self._ensure_editable()
        previous = self.state
        try:
            phone_number = validate_purchase_input(self.selected_ticket, self.phone_number)
        except PurchaseValidationError as e:
            self.notifier.error(e.message)
            raise

        ticket = previous.ticket
        request = PurchaseRequest(
            ticket_id=ticket.id,
            phone_number=phone_number,
            method=PaymentMethod.MOBILE_MONEY,
        )
        self.state = Submitting(ticket=ticket, phone_number=previous.phone_number, request=request)

        try:
            result = await self.service.purchase_ticket(request)
        except TicketServiceError as e:
            logger.info(
                "Purchase of ticket %s for %s rejected: %s",
                ticket.id,
                mask_phone_number(phone_number),
                e.message,
            )
            self.state = previous
            self.notifier.error(e.service_message or PURCHASE_FAILED_MESSAGE)
            return None
        except BaseException:
            self.state = previous
            raise

        logger.info("Ticket %s sold to %s", ticket.id, mask_phone_number(phone_number))
        self.state = Succeeded(result=result)
        self.notifier.success(PURCHASE_SUCCESS_MESSAGE)

        # The sold ticket is gone from the pool; only the service knows what's left
        await self.load(self.catalog.type_id)
        return result

    def restart(self) -> None:
        """Discard the purchase result and go back to browsing."""
        if not isinstance(self.state, Succeeded):
            raise InvalidTransitionError("There is no completed purchase to leave")
        self.state = Browsing()
