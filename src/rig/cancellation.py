"""Cooperative cancellation for provider calls and the interactive loop.

A CancellationToken is threaded through every provider operation. Providers
check it before each backend call (subprocess or SDK request), so an
interrupt stops the current operation at the next suspension point instead of
leaving work half done.

Usage:
    token = CancellationToken()
    provider.list_resources("instances", cancel_token=token)

    # From a signal handler or another thread
    token.cancel()
"""

import threading

from rig.exceptions import OperationCancelledError


class CancellationToken:
    """Thread-safe cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = ""

    def cancel(self, reason: str = "Operation cancelled") -> None:
        """Request cancellation. Safe to call more than once."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if cancellation was requested."""
        if self._event.is_set():
            raise OperationCancelledError(self._reason or "Operation cancelled")


def check_cancelled(token: CancellationToken | None) -> None:
    """Raise if an optional token has been cancelled."""
    if token is not None:
        token.raise_if_cancelled()


__all__ = ["CancellationToken", "check_cancelled"]
