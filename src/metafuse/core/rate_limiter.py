"""Per-provider rate-limiting request queues."""

import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Mapping, Optional, Tuple, TypeVar

from metafuse.config import DEFAULT_RATE_LIMIT, DEFAULT_RATE_LIMITS, RateLimitConfig
from metafuse.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Task = Callable[[], Awaitable[Any]]


class ProviderQueue:
    """FIFO queue and dispatch state for a single provider."""

    def __init__(self, name: str, config: RateLimitConfig):
        """Initialize provider queue.

        Args:
            name: Provider key (e.g. "musicbrainz")
            config: Rate limit for this provider
        """
        self.name = name
        self.config = config
        self.pending: Deque[Tuple[Task, asyncio.Future]] = deque()
        self.is_draining = False
        self.last_request_at: Optional[float] = None
        self.drain_task: Optional[asyncio.Task] = None
        # Popped from pending, waiting out the interval or running
        self.in_flight: Optional[asyncio.Future] = None

    @property
    def min_interval(self) -> float:
        """Minimum spacing between dispatches, in seconds."""
        return self.config.min_interval_ms / 1000.0

    def remaining_wait(self, now: float) -> float:
        if self.last_request_at is None:
            return 0.0
        return max(0.0, self.min_interval - (now - self.last_request_at))


class QueueManager:
    """Serializes requests per provider while keeping providers independent.

    Each provider gets one FIFO queue and at most one drain task. The drain
    task dispatches one request at a time, spacing dispatches at least
    ``min_interval_ms`` apart, and exits once the queue is empty. A later
    ``enqueue`` starts a new drain task.
    """

    def __init__(
        self,
        rate_limits: Optional[Mapping[str, RateLimitConfig]] = None,
        default: RateLimitConfig = DEFAULT_RATE_LIMIT,
    ):
        """Initialize queue manager.

        Args:
            rate_limits: Per-provider limits (defaults to the built-in table)
            default: Limit applied to providers missing from the table
        """
        self.rate_limits: Dict[str, RateLimitConfig] = dict(
            DEFAULT_RATE_LIMITS if rate_limits is None else rate_limits
        )
        self.default = default
        self._queues: Dict[str, ProviderQueue] = {}

    def get_queue(self, provider: str) -> ProviderQueue:
        """Get the queue for a provider, creating it on first use."""
        queue = self._queues.get(provider)
        if queue is None:
            config = self.rate_limits.get(provider, self.default)
            queue = ProviderQueue(provider, config)
            self._queues[provider] = queue
            logger.debug(
                "Created provider queue",
                provider=provider,
                min_interval_ms=config.min_interval_ms,
            )
        return queue

    async def enqueue(self, provider: str, task: Callable[[], Awaitable[T]]) -> T:
        """Run ``task`` once the provider's rate limit allows it.

        Args:
            provider: Provider key
            task: Zero-argument coroutine factory performing the request

        Returns:
            Whatever ``task`` returns

        Raises:
            Whatever ``task`` raises; failures only reach this caller.
        """
        queue = self.get_queue(provider)
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        queue.pending.append((task, future))

        if not queue.is_draining:
            queue.is_draining = True
            queue.drain_task = asyncio.create_task(self._drain(queue))

        return await future

    async def _drain(self, queue: ProviderQueue) -> None:
        """Dispatch queued tasks for one provider until the queue is empty."""
        try:
            while queue.pending:
                task, future = queue.pending.popleft()
                if future.done():
                    # Caller stopped waiting while queued
                    continue

                queue.in_flight = future
                try:
                    wait = queue.remaining_wait(time.monotonic())
                    if wait > 0:
                        logger.debug(
                            "Rate limit wait", provider=queue.name, wait_ms=round(wait * 1000)
                        )
                        await asyncio.sleep(wait)
                        if future.done():
                            continue

                    queue.last_request_at = time.monotonic()
                    result = await task()
                except asyncio.CancelledError:
                    future.cancel()
                    raise
                except Exception as e:
                    if not future.done():
                        future.set_exception(e)
                else:
                    if not future.done():
                        future.set_result(result)
                finally:
                    queue.in_flight = None
        finally:
            queue.is_draining = False
            queue.drain_task = None

    def reset(self, provider: Optional[str] = None) -> None:
        """Drop queue state (used by tests).

        Pending callers are cancelled and running drain tasks stopped.

        Args:
            provider: Provider to reset, or None for all providers
        """
        names = [provider] if provider is not None else list(self._queues)
        for name in names:
            queue = self._queues.pop(name, None)
            if queue is None:
                continue
            for _, future in queue.pending:
                future.cancel()
            queue.pending.clear()
            if queue.in_flight is not None:
                queue.in_flight.cancel()
            if queue.drain_task is not None:
                queue.drain_task.cancel()
        logger.debug("Reset provider queues", providers=names)

    def stats(self) -> dict:
        """Get per-provider queue statistics.

        Returns:
            Mapping of provider key to pending count and drain state
        """
        return {
            name: {
                "pending": len(queue.pending),
                "draining": queue.is_draining,
                "min_interval_ms": queue.config.min_interval_ms,
            }
            for name, queue in self._queues.items()
        }
