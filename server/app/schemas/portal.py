"""Pydantic schemas for the public purchase portal endpoints."""

from typing import Literal

from pydantic import BaseModel, Field


class NoticeOut(BaseModel):
    level: Literal["success", "error"]
    message: str


class TicketTypeOut(BaseModel):
    """A purchasable offer on the general catalog page."""

    id: str
    name: str
    description: str | None
    price: int
    price_display: str
    time_limit: str
    data_limit: str
    available_count: int
    purchase_path: str


class TicketTypeListResponse(BaseModel):
    results: list[TicketTypeOut]
    notices: list[NoticeOut] = []


class TicketOut(BaseModel):
    id: str
    profile: str
    price: int
    price_display: str
    time_limit: str
    data_limit: str


class CredentialFieldOut(BaseModel):
    name: str
    label: str
    value: str
    copyable: bool


class PortalStateResponse(BaseModel):
    """Everything the purchase page needs to render itself."""

    state: Literal["browsing", "selected", "submitting", "succeeded"]
    ticket_type: TicketTypeOut | None = None
    tickets: list[TicketOut] = []
    selected_ticket_id: str | None = None
    phone_number: str = ""
    can_submit: bool = False
    credentials: list[CredentialFieldOut] | None = None
    notices: list[NoticeOut] = []
    redirect_to: str | None = None
    clipboard: str | None = None


class SelectTicketRequest(BaseModel):
    ticket_id: str = Field(..., min_length=1, max_length=100)


class PhoneNumberRequest(BaseModel):
    phone_number: str = Field(..., max_length=32)


class PurchaseTicketRequest(BaseModel):
    phone_number: str | None = Field(default=None, max_length=32)
