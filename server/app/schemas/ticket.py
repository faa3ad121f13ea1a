"""Pydantic models for the external ticket/payment service payloads.

The service speaks camelCase JSON; the models accept both the wire names and
the Python field names so fakes and tests can build them directly.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.validation import normalize_phone_number


class TicketStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"
    EXPIRED = "expired"


class PaymentMethod(str, Enum):
    MOBILE_MONEY = "mobile_money"


class ServiceModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
        frozen=True,
    )


class TicketType(ServiceModel):
    """A purchasable offer category."""

    id: str
    name: str
    description: str | None = None
    price: int = Field(..., ge=0)
    time_limit: str | None = None
    data_limit: str | None = None
    available_count: int = Field(default=0, ge=0)
    is_active: bool = True

    @property
    def is_purchasable(self) -> bool:
        return self.is_active and self.available_count > 0


class Ticket(ServiceModel):
    """One issuable inventory unit of a ticket type."""

    id: str
    profile: str
    price: int = Field(..., ge=0)
    time_limit: str | None = None
    data_limit: str | None = None
    status: TicketStatus


class PurchaseRequest(ServiceModel):
    ticket_id: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1)
    method: PaymentMethod = PaymentMethod.MOBILE_MONEY

    @field_validator("phone_number")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return normalize_phone_number(v)


class Credentials(ServiceModel):
    username: str
    password: str
    profile: str
    instructions: str = ""


class PurchaseResult(ServiceModel):
    """Successful purchase answer: the Wi-Fi credentials for the sold ticket."""

    credentials: Credentials
