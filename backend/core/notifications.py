"""User-facing notices (the toast surface of the dashboard).

The core reports outcomes through a ``Notifier``; the HTTP layer collects the
notices raised while serving a request and returns them with the response.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Protocol

import structlog

logger = structlog.get_logger(__name__)


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    title: str
    description: str = ""

    def to_dict(self) -> dict:
        return {"level": self.level.value, "title": self.title, "description": self.description}


class Notifier(Protocol):
    def notify(self, notice: Notice) -> None: ...


class LogNotifier:
    """Writes notices to the application log."""

    def notify(self, notice: Notice) -> None:
        log = logger.bind(title=notice.title, description=notice.description)
        if notice.level is NoticeLevel.ERROR:
            log.error("notice")
        elif notice.level is NoticeLevel.WARNING:
            log.warning("notice")
        else:
            log.info("notice")


class CollectingNotifier(LogNotifier):
    """Logs and keeps every notice, for one request or one test."""

    def __init__(self) -> None:
        self.notices: List[Notice] = []

    def notify(self, notice: Notice) -> None:
        super().notify(notice)
        self.notices.append(notice)

    def levels(self) -> List[NoticeLevel]:
        return [n.level for n in self.notices]


def success(notifier: Notifier, title: str, description: str = "") -> None:
    notifier.notify(Notice(NoticeLevel.SUCCESS, title, description))


def warning(notifier: Notifier, title: str, description: str = "") -> None:
    notifier.notify(Notice(NoticeLevel.WARNING, title, description))


def error(notifier: Notifier, title: str, description: str = "") -> None:
    notifier.notify(Notice(NoticeLevel.ERROR, title, description))


def request_notifier() -> CollectingNotifier:
    """FastAPI dependency: a fresh collector for each request."""
    return CollectingNotifier()
