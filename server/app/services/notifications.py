"""User-visible notices for a portal session.

Every state change the visitor should hear about (load failures, validation
problems, successful purchase, clipboard copies) is queued here and handed to
the page with the next response, where it is shown as a toast.
"""

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str


class Notifier:
    """Per-session notice queue, mirrored to the log."""

    def __init__(self) -> None:
        self._pending: list[Notice] = []

    def success(self, message: str) -> None:
        self._push(Notice(NoticeLevel.SUCCESS, message))

    def error(self, message: str) -> None:
        self._push(Notice(NoticeLevel.ERROR, message))

    def _push(self, notice: Notice) -> None:
        if notice.level == NoticeLevel.ERROR:
            logger.warning("Notice: %s", notice.message)
        else:
            logger.debug("Notice (%s): %s", notice.level.value, notice.message)
        self._pending.append(notice)

    def drain(self) -> list[Notice]:
        """Return and forget the queued notices."""
        notices, self._pending = self._pending, []
        return notices
