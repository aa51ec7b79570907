"""Worker pool for bounded-concurrency batch enrichment."""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from metafuse.core.cancellation import CancellationToken
from metafuse.models.metadata import AlbumQuery, ArtistQuery
from metafuse.models.sources import SourcedResult
from metafuse.utils.logger import get_logger

logger = get_logger(__name__)

Query = Union[ArtistQuery, AlbumQuery]


@dataclass
class EnrichmentOutcome:
    """Result of enriching one library item."""

    query: Query
    info: Optional[SourcedResult] = None
    image: Optional[SourcedResult] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class Worker:
    """Individual worker pulling items from the shared queue."""

    def __init__(
        self,
        worker_id: int,
        aggregator,
        queue: asyncio.Queue,
        outcomes: List[Optional[EnrichmentOutcome]],
        item_timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ):
        """Initialize worker.

        Args:
            worker_id: Worker identifier
            aggregator: Facade used for lookups
            queue: Shared queue of (index, query) pairs
            outcomes: Output slots, one per input item
            item_timeout: Seconds before an item's lookups are cancelled
            token: Batch-wide cancellation token
        """
        self.worker_id = worker_id
        self.aggregator = aggregator
        self.queue = queue
        self.outcomes = outcomes
        self.item_timeout = item_timeout
        self.token = token
        self.current: Optional[Query] = None

    async def start(self):
        """Process items until the queue is drained."""
        while True:
            try:
                index, query = self.queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            try:
                self.outcomes[index] = await self._process(query)
            finally:
                self.queue.task_done()

        logger.debug("Worker finished", worker_id=self.worker_id)

    async def _process(self, query: Query) -> EnrichmentOutcome:
        self.current = query
        token = self.token.child() if self.token else CancellationToken()
        if self.item_timeout:
            token.cancel_after(self.item_timeout)

        try:
            if isinstance(query, AlbumQuery):
                info = await self.aggregator.fetch_album_info(query, token=token)
                image = await self.aggregator.fetch_album_cover(query, token=token)
            else:
                info = await self.aggregator.fetch_artist_info(query, token=token)
                image = await self.aggregator.fetch_artist_image(query, token=token)
        except Exception as e:
            logger.error(
                "Enrichment failed",
                worker_id=self.worker_id,
                query=repr(query),
                error=str(e),
                exc_info=True,
            )
            return EnrichmentOutcome(query=query, error=str(e))
        finally:
            self.current = None
            token.dispose()

        if token.cancelled and info is None and image is None:
            return EnrichmentOutcome(query=query, error=token.reason or "cancelled")

        logger.info(
            "Item enriched",
            worker_id=self.worker_id,
            query=repr(query),
            info_source=info.source.name if info else None,
            image_source=image.source.name if image else None,
        )
        return EnrichmentOutcome(query=query, info=info, image=image)

    @property
    def is_busy(self) -> bool:
        """Check if worker is currently processing an item."""
        return self.current is not None


class EnrichmentWorkerPool:
    """Fixed number of workers enriching a batch of queries concurrently."""

    def __init__(self, aggregator, worker_count: int = 4, item_timeout: Optional[float] = None):
        """Initialize worker pool.

        Args:
            aggregator: Facade used for lookups
            worker_count: Number of concurrent workers
            item_timeout: Seconds before an item's lookups are cancelled
        """
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        self.aggregator = aggregator
        self.worker_count = worker_count
        self.item_timeout = item_timeout
        self.workers: List[Worker] = []

    async def run(
        self, queries: Sequence[Query], token: Optional[CancellationToken] = None
    ) -> List[EnrichmentOutcome]:
        """Enrich every query and return outcomes in input order.

        Per-item failures are recorded on the outcome and never raised.
        """
        queue: asyncio.Queue = asyncio.Queue()
        for index, query in enumerate(queries):
            queue.put_nowait((index, query))

        outcomes: List[Optional[EnrichmentOutcome]] = [None] * len(queries)
        count = min(self.worker_count, len(queries))
        logger.info("Starting enrichment batch", items=len(queries), worker_count=count)

        self.workers = [
            Worker(i, self.aggregator, queue, outcomes, self.item_timeout, token)
            for i in range(count)
        ]
        tasks = [asyncio.create_task(worker.start()) for worker in self.workers]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            self.workers = []

        failed = sum(1 for o in outcomes if o is not None and not o.success)
        logger.info("Enrichment batch finished", items=len(queries), failed=failed)
        return outcomes  # type: ignore[return-value]

    def get_active_workers_count(self) -> int:
        """Get number of workers currently processing an item."""
        return sum(1 for worker in self.workers if worker.is_busy)
