from app.schemas.portal import NoticeOut, PortalStateResponse, TicketOut, TicketTypeOut
from app.schemas.ticket import (
    Credentials,
    PaymentMethod,
    PurchaseRequest,
    PurchaseResult,
    Ticket,
    TicketStatus,
    TicketType,
)

__all__ = [
    "Credentials",
    "PaymentMethod",
    "PurchaseRequest",
    "PurchaseResult",
    "Ticket",
    "TicketStatus",
    "TicketType",
    "NoticeOut",
    "PortalStateResponse",
    "TicketOut",
    "TicketTypeOut",
]
