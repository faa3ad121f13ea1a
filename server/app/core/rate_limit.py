"""Rate limiting for the public portal endpoints using slowapi."""

import ipaddress
from functools import lru_cache

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.config import get_settings

RETRY_AFTER_SECONDS = 60


@lru_cache(maxsize=1)
def _get_trusted_proxies() -> tuple[
    frozenset[str],
    tuple[ipaddress.IPv4Network | ipaddress.IPv6Network, ...],
]:
    """Return trusted proxy IPs and CIDR networks from settings (cached)."""
    settings = get_settings()
    exact = set()
    networks = []
    for entry in settings.trusted_proxies.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if "/" in entry:
            networks.append(ipaddress.ip_network(entry, strict=False))
        else:
            exact.add(entry)
    return frozenset(exact), tuple(networks)


def _is_trusted_proxy(ip: str) -> bool:
    """Check if an IP is in the trusted proxies list (exact match or CIDR)."""
    exact, networks = _get_trusted_proxies()
    if ip in exact:
        return True
    if networks:
        try:
            addr = ipaddress.ip_address(ip)
            return any(addr in net for net in networks)
        except ValueError:
            return False
    return False


def get_client_ip(request: Request) -> str:
    """Address the visitor connects from, as seen past trusted proxies.

    Forwarding headers (X-Real-IP first, then the first X-Forwarded-For
    entry) count only when the direct peer is a trusted proxy. Behind the
    hotspot NAT this is the router address shared by every visitor, which is
    why session actions are keyed by ``get_visitor_key`` instead.
    """
    direct_ip = get_remote_address(request)
    if not _is_trusted_proxy(direct_ip):
        return direct_ip

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return direct_ip


def get_visitor_key(request: Request) -> str:
    """Rate-limit key for actions on an existing purchase session.

    Visitors behind the hotspot's NAT share one address, so once a visitor
    holds a session its own token is the bucket. Tokens only get this far
    after the session dependency has resolved them, so a forged cookie is
    answered with 404 before the limiter counts it.
    """
    token = request.cookies.get(get_settings().session_cookie_name)
    if token:
        return f"session:{token}"
    return get_client_ip(request)


limiter = Limiter(key_func=get_client_ip, enabled=get_settings().is_rate_limit_enabled)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Answer 429 with a notice the purchase page can show as-is."""
    message = "Too many attempts. Please wait a minute and try again."
    return JSONResponse(
        status_code=429,
        content={
            "detail": message,
            "retry_after": RETRY_AFTER_SECONDS,
            "notices": [{"level": "error", "message": message}],
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
