"""Protocol interfaces for swappable collaborators.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (toast service, log, test double)
- Unit testing with fake clocks and in-memory services
- Clear separation of concerns

Usage:
    ```python
    from api_store.protocols import EntityService, NotificationSink

    # Type hints work with any implementation
    sink: NotificationSink = LoggingNotificationSink()
    service: EntityService = RestEntityRepository(client, "/course")
    ```
"""

from .clock import Clock, Sleeper
from .confirmation_gate import ConfirmationGate
from .entity_service import EntityService
from .notification_sink import LoggingNotificationSink, NotificationKind, NotificationSink, notify_safely

__all__ = [
    "Clock",
    "Sleeper",
    "ConfirmationGate",
    "EntityService",
    "NotificationSink",
    "NotificationKind",
    "LoggingNotificationSink",
    "notify_safely",
]
