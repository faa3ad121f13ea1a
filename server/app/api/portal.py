"""Public ticket purchase endpoints (secure surface, no auth).

The purchase page drives a per-visitor session: opening ``/buy-ticket``
starts a fresh one and sets the session cookie, every other call acts on it
and answers with the full page state plus the notices to show.
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.api.deps import get_portal_session
from app.core.config import get_settings
from app.core.formatting import format_limit, format_price
from app.core.rate_limit import get_visitor_key, limiter
from app.schemas.portal import (
    CredentialFieldOut,
    NoticeOut,
    PhoneNumberRequest,
    PortalStateResponse,
    PurchaseTicketRequest,
    SelectTicketRequest,
    TicketOut,
    TicketTypeListResponse,
    TicketTypeOut,
)
from app.schemas.ticket import Ticket, TicketType
from app.services.catalog import TYPES_LOAD_FAILED_MESSAGE, list_purchasable_types
from app.services.credentials import CopyTarget
from app.services.portal_session import PortalSession, PortalSessionStore, get_session_store
from app.services.purchase_flow import (
    InvalidTransitionError,
    PurchaseInProgressError,
    PurchaseValidationError,
    Selected,
    Submitting,
    Succeeded,
)
from app.services.ticket_service import (
    TicketServiceClient,
    TicketServiceError,
    get_ticket_service,
)

router = APIRouter()
settings = get_settings()

NO_CREDENTIALS_MESSAGE = "There are no credentials to show. Please buy a ticket first."

FORM_ERRORS = (PurchaseValidationError, PurchaseInProgressError, InvalidTransitionError)


class ResponseClipboard:
    """Hands copied text back to the page, which writes it to the real clipboard."""

    def __init__(self) -> None:
        self.text: str | None = None

    def write(self, text: str) -> None:
        self.text = text


def _state_name(session: PortalSession) -> str:
    state = session.controller.state
    if isinstance(state, Succeeded):
        return "succeeded"
    if isinstance(state, Submitting):
        return "submitting"
    if isinstance(state, Selected):
        return "selected"
    return "browsing"


def ticket_type_out(ticket_type: TicketType) -> TicketTypeOut:
    return TicketTypeOut(
        id=ticket_type.id,
        name=ticket_type.name,
        description=ticket_type.description,
        price=ticket_type.price,
        price_display=format_price(ticket_type.price, settings.currency),
        time_limit=format_limit(ticket_type.time_limit),
        data_limit=format_limit(ticket_type.data_limit),
        available_count=ticket_type.available_count,
        purchase_path=f"{settings.secure_entry_path}?type={quote(ticket_type.id, safe='')}",
    )


def ticket_out(ticket: Ticket) -> TicketOut:
    return TicketOut(
        id=ticket.id,
        profile=ticket.profile,
        price=ticket.price,
        price_display=format_price(ticket.price, settings.currency),
        time_limit=format_limit(ticket.time_limit),
        data_limit=format_limit(ticket.data_limit),
    )


def build_portal_state(session: PortalSession, clipboard: str | None = None) -> PortalStateResponse:
    """Snapshot the session for the page and hand over its pending notices."""
    controller = session.controller
    catalog = controller.catalog
    selected = controller.selected_ticket
    presenter = session.presenter()

    credentials = None
    if presenter is not None:
        credentials = [
            CredentialFieldOut(
                name=f.name, label=f.label, value=f.value, copyable=f.copyable
            )
            for f in presenter.fields()
        ]

    return PortalStateResponse(
        state=_state_name(session),
        ticket_type=ticket_type_out(catalog.ticket_type) if catalog.ticket_type else None,
        tickets=[ticket_out(t) for t in catalog.tickets],
        selected_ticket_id=selected.id if selected else None,
        phone_number=controller.phone_number,
        can_submit=controller.can_submit,
        credentials=credentials,
        notices=[
            NoticeOut(level=n.level.value, message=n.message)
            for n in session.notifier.drain()
        ],
        redirect_to=catalog.redirect_to,
        clipboard=clipboard,
    )


def _respond(
    session: PortalSession, status_code: int = 200, clipboard: str | None = None
) -> JSONResponse:
    state = build_portal_state(session, clipboard=clipboard)
    return JSONResponse(status_code=status_code, content=state.model_dump(mode="json"))


def _form_error(session: PortalSession, error: Exception) -> JSONResponse:
    """Map a refused form action to its status; validation already notified."""
    if isinstance(error, PurchaseValidationError):
        return _respond(session, 422)
    session.notifier.error(str(error))
    return _respond(session, 409)


@router.get("/ticket-types", response_model=TicketTypeListResponse)
@limiter.limit(lambda: f"{settings.catalog_rate_limit_per_minute}/minute")
async def list_ticket_types(
    request: Request,
    service: TicketServiceClient = Depends(get_ticket_service),
) -> TicketTypeListResponse:
    """Offers for the general catalog page: active types with tickets left."""
    try:
        types = await list_purchasable_types(service)
    except TicketServiceError:
        return TicketTypeListResponse(
            results=[],
            notices=[NoticeOut(level="error", message=TYPES_LOAD_FAILED_MESSAGE)],
        )
    return TicketTypeListResponse(results=[ticket_type_out(t) for t in types])


@router.get("/buy-ticket", response_model=PortalStateResponse)
@limiter.limit(lambda: f"{settings.catalog_rate_limit_per_minute}/minute")
async def start_purchase(
    request: Request,
    type_id: str | None = Query(default=None, alias="type", max_length=100),
    service: TicketServiceClient = Depends(get_ticket_service),
    store: PortalSessionStore = Depends(get_session_store),
):
    """Open the purchase page: new session, catalog loaded for the requested scope."""
    session = store.create(
        service,
        catalog_entry_path=settings.catalog_entry_path,
        replace_token=request.cookies.get(settings.session_cookie_name),
    )
    await session.controller.load(type_id or None)

    response = _respond(session)
    response.set_cookie(
        settings.session_cookie_name,
        session.token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@router.get("/buy-ticket/state", response_model=PortalStateResponse)
async def get_purchase_state(session: PortalSession = Depends(get_portal_session)):
    return _respond(session)


@router.post("/buy-ticket/select", response_model=PortalStateResponse)
async def select_ticket(
    body: SelectTicketRequest,
    session: PortalSession = Depends(get_portal_session),
):
    try:
        session.controller.select(body.ticket_id)
    except FORM_ERRORS as e:
        return _form_error(session, e)
    return _respond(session)


@router.put("/buy-ticket/phone", response_model=PortalStateResponse)
async def set_phone_number(
    body: PhoneNumberRequest,
    session: PortalSession = Depends(get_portal_session),
):
    try:
        session.controller.set_phone_number(body.phone_number)
    except FORM_ERRORS as e:
        return _form_error(session, e)
    return _respond(session)


@router.post("/buy-ticket/purchase", response_model=PortalStateResponse)
@limiter.limit(
    lambda: f"{settings.purchase_rate_limit_per_minute}/minute", key_func=get_visitor_key
)
async def purchase_ticket(
    request: Request,
    body: PurchaseTicketRequest | None = None,
    session: PortalSession = Depends(get_portal_session),
):
    """Submit the purchase for the selected ticket.

    422: input refused locally, nothing sent. 409: a purchase is already in
    flight. 502: the ticket service refused or failed, form input kept.
    """
    try:
        if body is not None and body.phone_number is not None:
            session.controller.set_phone_number(body.phone_number)
        result = await session.controller.submit()
    except FORM_ERRORS as e:
        return _form_error(session, e)
    if result is None:
        return _respond(session, 502)
    return _respond(session)


@router.post("/buy-ticket/copy/{target}", response_model=PortalStateResponse)
async def copy_to_clipboard(
    target: CopyTarget,
    session: PortalSession = Depends(get_portal_session),
):
    presenter = session.presenter()
    if presenter is None:
        session.notifier.error(NO_CREDENTIALS_MESSAGE)
        return _respond(session, 409)
    clipboard = ResponseClipboard()
    presenter.copy(target, clipboard)
    return _respond(session, clipboard=clipboard.text)


@router.post("/buy-ticket/restart", response_model=PortalStateResponse)
async def restart_purchase(session: PortalSession = Depends(get_portal_session)):
    """Leave the credentials screen and go back to the ticket list."""
    presenter = session.presenter()
    if presenter is None:
        session.notifier.error(NO_CREDENTIALS_MESSAGE)
        return _respond(session, 409)
    presenter.restart()
    return _respond(session)
