"""Confirmation gate protocol.

Higher-level store operations ask this gate before destructive actions.
The entity store itself never calls it.
"""

from collections.abc import Awaitable
from typing import Protocol, runtime_checkable


@runtime_checkable
class ConfirmationGate(Protocol):
    """Protocol for user consent before a destructive operation.

    ``confirm`` may be synchronous or a coroutine function.
    """

    def confirm(self, title: str, message: str) -> bool | Awaitable[bool]:
        """Ask the user to confirm.

        Args:
            title: Dialog title
            message: What is about to happen

        Returns:
            True to proceed, False to cancel (or an awaitable of either)
        """
        ...
