"""Notification sink protocol.

Defines the interface for anything that can surface a short message to
the user: a toast service, a status bar, a log.

Implementations can include:
- LoggingNotificationSink (default, writes to the log)
- A UI toast service
- A collecting sink used in tests
"""

from typing import Literal, Protocol, runtime_checkable

from loguru import logger

NotificationKind = Literal["success", "error", "warning", "info"]


@runtime_checkable
class NotificationSink(Protocol):
    """Protocol for user-facing notifications.

    Implementations must not raise and must not block: the calling
    request or store operation continues right after ``notify`` returns.
    """

    def notify(self, kind: NotificationKind, title: str, message: str) -> None:
        """Show a notification.

        Args:
            kind: Severity of the notification
            title: Short headline (usually the backend error code)
            message: Human-readable detail
        """
        ...


def notify_safely(sink: NotificationSink, kind: NotificationKind, title: str, message: str) -> None:
    """Deliver a notification without letting a faulty sink break the caller."""
    try:
        sink.notify(kind, title, message)
    except Exception:
        logger.exception("Notification sink {!r} raised for {!r}", sink, title)


class LoggingNotificationSink:
    """NotificationSink that writes notifications to the log.

    This class satisfies the NotificationSink protocol through structural
    typing - no explicit inheritance needed.
    """

    _LEVELS = {
        "success": "SUCCESS",
        "info": "INFO",
        "warning": "WARNING",
        "error": "ERROR",
    }

    def notify(self, kind: NotificationKind, title: str, message: str) -> None:
        logger.log(self._LEVELS.get(kind, "INFO"), "[{}] {}: {}", kind, title, message)
