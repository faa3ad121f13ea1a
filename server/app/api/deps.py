from fastapi import Depends, HTTPException, Request, status

from app.core.config import get_settings
from app.services.portal_session import PortalSession, PortalSessionStore, get_session_store

SESSION_EXPIRED_MESSAGE = "Your purchase session has expired. Please reload the page."


def get_portal_session(
    request: Request,
    store: PortalSessionStore = Depends(get_session_store),
) -> PortalSession:
    """Resolve the visitor's purchase session from the session cookie."""
    token = request.cookies.get(get_settings().session_cookie_name)
    session = store.get(token)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=SESSION_EXPIRED_MESSAGE,
        )
    return session
