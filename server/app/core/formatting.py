"""Display formatting for prices and ticket limits."""

UNLIMITED_LABEL = "Unlimited"


def format_price(price: int, currency: str) -> str:
    """Format a whole-unit price with space-separated thousands, e.g. '5 000 CDF'."""
    return f"{price:,}".replace(",", " ") + f" {currency}"


def format_limit(limit: str | None) -> str:
    if not limit:
        return UNLIMITED_LABEL
    return limit
