"""Captive landing → secure purchase entry redirect.

Captive-portal controllers only intercept plain HTTP, so the landing page is
served over HTTP and has to hand the visitor over to the HTTPS purchase flow.
The rewrite is a pure function of the current address.
"""

from urllib.parse import urlsplit, urlunsplit

INSECURE_SCHEME = "http"
SECURE_SCHEME = "https"


def secure_entry_url(current_url: str, entry_path: str) -> str:
    """Return the HTTPS address of the purchase entry point for ``current_url``.

    The scheme becomes https and the path becomes ``entry_path`` in one step.
    Host, port and query string are kept; the fragment is dropped. An address
    that is already secure only gets the path change.

    >>> secure_entry_url("http://host/captive", "/buy-ticket")
    'https://host/buy-ticket'
    """
    parts = urlsplit(current_url)
    scheme = SECURE_SCHEME if parts.scheme in ("", INSECURE_SCHEME) else parts.scheme
    netloc = parts.netloc
    # An explicit :80 belongs to the insecure listener
    if parts.scheme == INSECURE_SCHEME and parts.port == 80:
        netloc = netloc.rsplit(":", 1)[0]
    if not entry_path.startswith("/"):
        entry_path = "/" + entry_path
    return urlunsplit((scheme, netloc, entry_path, parts.query, ""))
