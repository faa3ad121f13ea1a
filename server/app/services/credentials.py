"""One-time display of the credentials issued by a purchase."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from app.schemas.ticket import PurchaseResult
from app.services.notifications import Notifier


class Clipboard(Protocol):
    def write(self, text: str) -> None: ...


class CopyTarget(str, Enum):
    USERNAME = "username"
    PASSWORD = "password"
    CREDENTIALS = "credentials"


COPY_LABELS = {
    CopyTarget.USERNAME: "Username",
    CopyTarget.PASSWORD: "Password",
    CopyTarget.CREDENTIALS: "Credentials",
}


@dataclass(frozen=True)
class CredentialField:
    name: str
    label: str
    value: str
    copyable: bool = False


class CredentialPresenter:
    """Read-only view of a PurchaseResult with clipboard helpers.

    Copies are fire-and-forget: the clipboard write is not checked, the
    visitor is told it happened.
    """

    def __init__(
        self,
        result: PurchaseResult,
        notifier: Notifier,
        on_restart: Callable[[], None],
    ) -> None:
        self.result = result
        self.notifier = notifier
        self._on_restart = on_restart

    def fields(self) -> list[CredentialField]:
        credentials = self.result.credentials
        return [
            CredentialField("username", "Username", credentials.username, copyable=True),
            CredentialField("password", "Password", credentials.password, copyable=True),
            CredentialField("profile", "Profile", credentials.profile),
            CredentialField("instructions", "Instructions", credentials.instructions),
        ]

    def text_for(self, target: CopyTarget) -> str:
        credentials = self.result.credentials
        if target == CopyTarget.USERNAME:
            return credentials.username
        if target == CopyTarget.PASSWORD:
            return credentials.password
        return f"{credentials.username}\n{credentials.password}"

    def copy(self, target: CopyTarget, clipboard: Clipboard) -> str:
        text = self.text_for(target)
        clipboard.write(text)
        self.notifier.success(f"{COPY_LABELS[target]} copied to clipboard!")
        return text

    def copy_credentials(self, clipboard: Clipboard) -> str:
        """Copy username and password, one per line."""
        return self.copy(CopyTarget.CREDENTIALS, clipboard)

    def restart(self) -> None:
        self._on_restart()
