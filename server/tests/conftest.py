"""Pytest configuration and fixtures for the ticket portal tests."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.schemas.ticket import (
    Credentials,
    PurchaseRequest,
    PurchaseResult,
    Ticket,
    TicketStatus,
    TicketType,
)
from app.services.portal_session import PortalSessionStore, get_session_store
from app.services.ticket_service import TicketServiceError, get_ticket_service


def make_ticket(
    ticket_id: str,
    status: TicketStatus = TicketStatus.AVAILABLE,
    price: int = 5000,
    profile: str = "weekly",
    time_limit: str | None = "7d",
    data_limit: str | None = None,
) -> Ticket:
    return Ticket(
        id=ticket_id,
        profile=profile,
        price=price,
        time_limit=time_limit,
        data_limit=data_limit,
        status=status,
    )


class FakeTicketService:
    """In-memory stand-in for the external ticket/payment service.

    Set ``failures[method_name]`` to make a call raise. Every call is
    recorded in ``calls``; purchases also in ``purchases``.
    """

    def __init__(self, types: list[TicketType], tickets_by_type: dict[str, list[Ticket]]):
        self.types = list(types)
        self.tickets_by_type = {k: list(v) for k, v in tickets_by_type.items()}
        self.failures: dict[str, TicketServiceError] = {}
        self.calls: list[str] = []
        self.purchases: list[PurchaseRequest] = []

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    async def list_ticket_types(self) -> list[TicketType]:
        self._call("list_ticket_types")
        return list(self.types)

    async def list_tickets_by_type(self, type_id: str) -> list[Ticket]:
        self._call("list_tickets_by_type")
        return list(self.tickets_by_type.get(type_id, []))

    async def list_available_tickets(self) -> list[Ticket]:
        self._call("list_available_tickets")
        return [
            t
            for tickets in self.tickets_by_type.values()
            for t in tickets
            if t.status == TicketStatus.AVAILABLE
        ]

    async def purchase_ticket(self, request: PurchaseRequest) -> PurchaseResult:
        self._call("purchase_ticket")
        self.purchases.append(request)
        for type_id, tickets in self.tickets_by_type.items():
            for index, ticket in enumerate(tickets):
                if ticket.id != request.ticket_id:
                    continue
                if ticket.status != TicketStatus.AVAILABLE:
                    raise TicketServiceError(
                        "Ticket no longer available",
                        409,
                        service_message="Ticket no longer available",
                    )
                tickets[index] = ticket.model_copy(update={"status": TicketStatus.SOLD})
                self.types = [
                    t.model_copy(update={"available_count": t.available_count - 1})
                    if t.id == type_id
                    else t
                    for t in self.types
                ]
                return PurchaseResult(
                    credentials=Credentials(
                        username=f"user-{ticket.id}",
                        password=f"pass-{ticket.id}",
                        profile=ticket.profile,
                        instructions="Connect to the Wi-Fi and log in with these credentials.",
                    )
                )
        raise TicketServiceError("Ticket not found", 404, service_message="Ticket not found")


@pytest.fixture
def weekly_type() -> TicketType:
    return TicketType(
        id="weekly-5000",
        name="Weekly pass",
        description="7 days of access",
        price=5000,
        time_limit="7d",
        available_count=3,
        is_active=True,
    )


@pytest.fixture
def daily_type() -> TicketType:
    return TicketType(
        id="daily-1000",
        name="Day pass",
        description="24 hours of access",
        price=1000,
        time_limit="24h",
        available_count=0,
        is_active=True,
    )


@pytest.fixture
def ticket_service(weekly_type: TicketType, daily_type: TicketType) -> FakeTicketService:
    """Three available weekly tickets plus one already sold."""
    return FakeTicketService(
        types=[weekly_type, daily_type],
        tickets_by_type={
            "weekly-5000": [
                make_ticket("w1"),
                make_ticket("w2"),
                make_ticket("w3"),
                make_ticket("w0", status=TicketStatus.SOLD),
            ],
            "daily-1000": [],
        },
    )


@pytest.fixture
def session_store() -> PortalSessionStore:
    return PortalSessionStore(idle_seconds=30 * 60)


@pytest.fixture(scope="function")
def client(
    ticket_service: FakeTicketService, session_store: PortalSessionStore
) -> Generator[TestClient, None, None]:
    """Test client over HTTPS with the fake ticket service wired in."""
    app.dependency_overrides[get_ticket_service] = lambda: ticket_service
    app.dependency_overrides[get_session_store] = lambda: session_store
    with TestClient(app, base_url="https://testserver") as c:
        yield c
    app.dependency_overrides.clear()
