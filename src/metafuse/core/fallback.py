"""Tiered fallback orchestration across provider calls."""

from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from metafuse.core.cancellation import CancellationToken, is_cancelled
from metafuse.models.sources import SourcedResult, has_data
from metafuse.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Fetcher = Callable[[], Awaitable[Optional[SourcedResult[T]]]]


async def try_in_order(
    fetchers: Sequence[Fetcher],
    token: Optional[CancellationToken] = None,
    label: str = "lookup",
) -> Optional[SourcedResult[T]]:
    """Try provider calls in priority order and return the first with data.

    Attempts are strictly sequential: attempt N+1 starts only after attempt N
    resolved. Errors and empty results fall through to the next fetcher.

    Args:
        fetchers: Zero-argument coroutine factories, highest priority first
        token: Cancellation token checked before every attempt
        label: Name of the logical query, for logs

    Returns:
        The first result carrying data, or None when cancelled or exhausted
    """
    for index, fetcher in enumerate(fetchers):
        if is_cancelled(token):
            logger.info("Lookup cancelled", lookup=label, attempted=index)
            return None

        name = getattr(fetcher, "provider_name", None) or f"#{index}"
        try:
            result = await fetcher()
        except Exception as e:
            logger.warning(
                "Provider failed, trying next",
                lookup=label,
                provider=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            continue

        if result is not None and has_data(result.data):
            logger.debug("Provider answered", lookup=label, provider=result.source.name)
            return result

        logger.debug("Provider had no result, trying next", lookup=label, provider=name)

    logger.info("All providers exhausted", lookup=label, attempted=len(fetchers))
    return None


def named(provider_name: str, fetcher: Fetcher) -> Fetcher:
    """Tag a fetcher with a provider name for log output."""
    fetcher.provider_name = provider_name  # type: ignore[attr-defined]
    return fetcher
