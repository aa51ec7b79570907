"""Shared plumbing for provider adapters.

Every network call goes through the provider's rate-limit queue and is
retried on transient failures. Public ``fetch_*`` methods are wrapped with
``provider_call`` so no exception escapes an adapter: a failed lookup is
logged and reported as "no result".
"""

import functools
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from metafuse.config import HTTPConfig, ProviderConfig
from metafuse.core.cancellation import is_cancelled
from metafuse.core.rate_limiter import QueueManager
from metafuse.exceptions import ProviderError
from metafuse.models.sources import SourceInfo
from metafuse.utils.logger import get_logger
from metafuse.utils.text import normalize_for_match

logger = get_logger(__name__)

T = TypeVar("T")


def _is_transient(error: BaseException) -> bool:
    """Retry transport failures, throttling and server errors."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, ProviderError) and error.status_code is not None:
        return error.status_code == 429 or error.status_code >= 500
    return False


def provider_call(func=None, *, default_factory: Callable[[], Any] = lambda: None):
    """Convert every failure of an adapter operation into an empty result.

    Also skips the call entirely when the ``token`` keyword argument is
    already cancelled.
    """

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs):
            if is_cancelled(kwargs.get("token")):
                return default_factory()
            try:
                return await fn(self, *args, **kwargs)
            except Exception as e:
                logger.warning(
                    "Provider call failed",
                    provider=self.source.name,
                    operation=fn.__name__,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return default_factory()

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def as_list(value: Any) -> List[Any]:
    """Providers return a bare object instead of a one-element list at times."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def pick_best_match(
    candidates: Iterable[T], key: Callable[[T], Optional[str]], target: str
) -> Optional[T]:
    """Exact case-insensitive match wins, otherwise the first candidate."""
    candidates = list(candidates)
    if not candidates:
        return None
    wanted = target.strip().lower()
    for candidate in candidates:
        value = key(candidate)
        if value and value.strip().lower() == wanted:
            return candidate
    return candidates[0]


def score_match(value: Optional[str], target: str) -> int:
    """Point score for one field: +10 exact, +5 contains, +3 contained.

    Both sides are normalized (case, punctuation, whitespace) first.
    """
    found = normalize_for_match(value or "")
    wanted = normalize_for_match(target)
    if not found or not wanted:
        return 0
    if found == wanted:
        return 10
    if wanted in found:
        return 5
    if found in wanted:
        return 3
    return 0


class BaseProvider:
    """Base class for provider adapters.

    Subclasses set ``source`` (attribution) and ``key`` (rate-limit and
    configuration key).
    """

    source: SourceInfo
    key: str

    def __init__(
        self,
        config: ProviderConfig,
        queue_manager: QueueManager,
        client: httpx.AsyncClient,
        http: Optional[HTTPConfig] = None,
    ):
        """Initialize provider.

        Args:
            config: Endpoint, API key and timeout for this provider
            queue_manager: Shared per-provider rate limiter
            client: Shared HTTP client
            http: User agent and retry settings
        """
        http = http or HTTPConfig()
        self.base_url = config.base_url.rstrip("/")
        self.api_key = config.api_key
        self.timeout = config.timeout_seconds
        self.queue_manager = queue_manager
        self.client = client
        self.user_agent = http.user_agent
        self.retry_attempts = http.retry_attempts
        self.retry_max_wait = http.retry_max_wait_seconds

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[Any]:
        """Rate-limited GET returning decoded JSON.

        Args:
            url: Absolute request URL
            params: Query parameters
            headers: Extra request headers

        Returns:
            Decoded JSON body, or None when the provider answered 404

        Raises:
            ProviderError: On non-2xx responses or malformed bodies
            httpx.HTTPError: On transport failures (after retries)
        """
        result = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(min=0.5, max=self.retry_max_wait),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                result = await self.queue_manager.enqueue(
                    self.key, lambda: self._send(url, params, headers)
                )
        return result

    async def _send(
        self,
        url: str,
        params: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, str]],
    ) -> Optional[Any]:
        request_headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        request_headers.update(headers or {})

        response = await self.client.get(
            url, params=params, headers=request_headers, timeout=self.timeout
        )

        if response.status_code == 404:
            logger.debug("Provider returned not found", provider=self.source.name, url=url)
            return None
        if response.status_code >= 400:
            raise ProviderError(
                f"HTTP {response.status_code} from {url}",
                provider_name=self.source.name,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"Malformed JSON from {url}", provider_name=self.source.name
            ) from e
