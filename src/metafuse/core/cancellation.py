"""Explicit cancellation token threaded through every aggregator call."""

import asyncio
from typing import Optional

from metafuse.exceptions import OperationCancelled


class CancellationToken:
    """Cooperative cancellation flag.

    Checked by the fallback orchestrator before each provider attempt and by
    adapters before they issue requests. Cancelling a token never aborts a
    request already in flight; per-request timeouts cover that.
    """

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._event = asyncio.Event()
        self._parent = parent
        self._timer: Optional[asyncio.TimerHandle] = None
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def cancel_after(self, seconds: float) -> None:
        """Schedule cancellation on the running event loop."""
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(seconds, self.cancel, "timeout")

    def dispose(self) -> None:
        """Drop a pending ``cancel_after`` timer without cancelling the token."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def child(self) -> "CancellationToken":
        """Create a token that is cancelled whenever this one is."""
        return CancellationToken(parent=self)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelled(f"Operation cancelled ({self.reason or 'parent'})")

    async def wait(self) -> None:
        """Block until this token (not its parent) is cancelled."""
        await self._event.wait()


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled
