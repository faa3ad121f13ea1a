"""Per-visitor purchase sessions.

A session is created each time the visitor opens the purchase entry point and
holds the catalog loader, the form controller and the pending notices. It is
only ever kept in memory: issued credentials die with it.

NOTE: the store is process-local. With several workers a visitor has to be
pinned to one worker (sticky sessions) or their session will not be found.
"""

import secrets
import time
from threading import Lock

from app.core.config import get_settings
from app.services.catalog import TicketCatalogLoader
from app.services.credentials import CredentialPresenter
from app.services.notifications import Notifier
from app.services.purchase_flow import PurchaseFormController, Succeeded
from app.services.ticket_service import TicketServiceClient


class PortalSession:
    def __init__(
        self,
        token: str,
        service: TicketServiceClient,
        catalog_entry_path: str = "/home",
    ) -> None:
        self.token = token
        self.notifier = Notifier()
        self.loader = TicketCatalogLoader(
            service=service,
            notifier=self.notifier,
            catalog_entry_path=catalog_entry_path,
        )
        self.controller = PurchaseFormController(
            service=service,
            loader=self.loader,
            notifier=self.notifier,
        )
        self.last_seen = time.time()

    def presenter(self) -> CredentialPresenter | None:
        """Credential view, only while a purchase result is on screen."""
        state = self.controller.state
        if not isinstance(state, Succeeded):
            return None
        return CredentialPresenter(
            result=state.result,
            notifier=self.notifier,
            on_restart=self.controller.restart,
        )

    def touch(self) -> None:
        self.last_seen = time.time()


class PortalSessionStore:
    """In-memory token → session map with idle expiry."""

    CLEANUP_INTERVAL = 60

    def __init__(self, idle_seconds: int = 30 * 60) -> None:
        self.idle_seconds = idle_seconds
        self._sessions: dict[str, PortalSession] = {}
        self._lock = Lock()
        self._last_cleanup = time.time()

    def _cleanup_expired(self) -> None:
        now = time.time()
        if now - self._last_cleanup < self.CLEANUP_INTERVAL:
            return
        self._last_cleanup = now
        expired = [
            token
            for token, session in self._sessions.items()
            if now - session.last_seen > self.idle_seconds
        ]
        for token in expired:
            del self._sessions[token]

    def create(
        self,
        service: TicketServiceClient,
        catalog_entry_path: str = "/home",
        replace_token: str | None = None,
    ) -> PortalSession:
        """Start a fresh session, dropping ``replace_token``'s session if any."""
        with self._lock:
            self._cleanup_expired()
            if replace_token:
                self._sessions.pop(replace_token, None)
            token = secrets.token_urlsafe(32)
            session = PortalSession(token, service, catalog_entry_path)
            self._sessions[token] = session
            return session

    def get(self, token: str | None) -> PortalSession | None:
        if not token:
            return None
        with self._lock:
            self._cleanup_expired()
            session = self._sessions.get(token)
            if session is None:
                return None
            if time.time() - session.last_seen > self.idle_seconds:
                del self._sessions[token]
                return None
            session.touch()
            return session

    def __len__(self) -> int:
        return len(self._sessions)


_store: PortalSessionStore | None = None


def get_session_store() -> PortalSessionStore:
    """Get the process-wide session store (FastAPI dependency)."""
    global _store
    if _store is None:
        _store = PortalSessionStore(idle_seconds=get_settings().session_idle_minutes * 60)
    return _store
