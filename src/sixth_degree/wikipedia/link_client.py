import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from sixth_degree.config import CrawlerConfig
from sixth_degree.exceptions import (
    FetchError,
    ProtocolViolationError,
    RetryExhaustedError,
    TerminalFetchError,
)
from sixth_degree.models import WikiLinksResponse

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay(attempt: int, base_delay: float = 1.0, rate_limited: bool = False) -> float:
    """
    Delay before retrying after failed attempt `attempt` (0-based).

    Exponential: base_delay, 2*base_delay, 4*base_delay, ... A 429 response
    doubles the delay for that attempt.
    """
    delay = base_delay * (2 ** attempt)
    if rate_limited:
        delay *= 2
    return delay


def is_retryable_status(status_code: int) -> bool:
    """429 and 5xx are transient; everything else is definitive."""
    return status_code == 429 or status_code >= 500


class WikiLinkClient:
    """
    Client for the MediaWiki `prop=links` API.

    One instance owns a pooled httpx.AsyncClient and is shared by every crawl
    worker. Use it as an async context manager, or call close() when done.
    """

    def __init__(
        self,
        config: Optional[CrawlerConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Args:
            config: Client settings. Defaults to CrawlerConfig().
            http_client: Borrowed client (e.g. with a mock transport). The
                caller stays responsible for closing it.
            sleep: Awaitable used for backoff and throttling waits.
        """
        self.config = config or CrawlerConfig()
        self._owns_http_client = http_client is None
        self._http = http_client or self._build_http_client()
        self._sleep = sleep

        # Throttle state for the optional request_interval knob
        self._throttle_lock = asyncio.Lock()
        self._next_request_at = 0.0

    def _build_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.request_timeout,
            limits=httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=self.config.max_keepalive_connections,
            ),
            headers={"User-Agent": self.config.user_agent},
        )

    async def __aenter__(self) -> "WikiLinkClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http_client:
            await self._http.aclose()

    async def fetch_all_links(self, page_title: str) -> List[str]:
        """
        Fetch every main-namespace outbound link of a page, following
        `plcontinue` pagination until the API stops returning a token.

        Raises:
            TerminalFetchError: definitive rejection (non-retryable status)
            ProtocolViolationError: response was not the expected JSON document
            RetryExhaustedError: all attempts failed with transient errors
        """
        all_links: List[str] = []
        plcontinue: Optional[str] = None

        while True:
            params = {
                "action": "query", "prop": "links", "format": "json",
                "plnamespace": "0", "pllimit": "max", "titles": page_title,
            }
            if plcontinue:
                params["plcontinue"] = plcontinue

            try:
                data = await self._get_links_page(page_title, params)
            except FetchError as e:
                e.partial_links = list(all_links)
                raise

            for page in data.query.pages.values():
                # plnamespace=0 should already guarantee this
                all_links.extend(link.title for link in page.links if link.ns == 0)

            plcontinue = data.continue_.plcontinue
            if not plcontinue:
                break
            logger.debug(f"Continuing pagination for '{page_title}' ({len(all_links)} links so far)")

        logger.debug(f"Fetched {len(all_links)} links for '{page_title}'")
        return all_links

    async def _get_links_page(self, page_title: str, params: Dict[str, str]) -> WikiLinksResponse:
        """Fetch and decode one page of links."""
        response = await self._request_with_retry(page_title, params)

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise ProtocolViolationError(
                f"Unexpected content type for '{page_title}': {content_type or '<none>'}",
                page_title,
                content_type=content_type,
                status_code=response.status_code,
            )

        try:
            return WikiLinksResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise ProtocolViolationError(
                f"Failed to decode links response for '{page_title}': {e}",
                page_title,
                content_type=content_type,
                status_code=response.status_code,
            ) from e

    async def _request_with_retry(self, page_title: str, params: Dict[str, str]) -> httpx.Response:
        """Issue one GET, retrying transport errors, 429 and 5xx with backoff."""
        max_attempts = self.config.max_attempts
        last_error: Optional[str] = None

        for attempt in range(max_attempts):
            await self._throttle()
            rate_limited = False

            try:
                response = await self._http.get(
                    self.config.api_url,
                    params=params,
                    headers={"User-Agent": self.config.user_agent},
                )
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
            except httpx.RequestError as e:
                # Undecodable bodies, redirect loops: retrying won't help
                raise TerminalFetchError(
                    f"Request for '{page_title}' failed: {type(e).__name__}: {e}",
                    page_title,
                ) from e
            else:
                if response.status_code == httpx.codes.OK:
                    return response
                if not is_retryable_status(response.status_code):
                    raise TerminalFetchError(
                        f"Unexpected status code {response.status_code} for '{page_title}'",
                        page_title,
                        status_code=response.status_code,
                    )
                rate_limited = response.status_code == httpx.codes.TOO_MANY_REQUESTS
                last_error = f"HTTP {response.status_code}"

            if attempt == max_attempts - 1:
                break

            delay = backoff_delay(attempt, self.config.base_delay, rate_limited)
            logger.warning(
                f"Request for '{page_title}' failed ({last_error}), "
                f"retrying in {delay:.1f}s (attempt {attempt + 1}/{max_attempts})"
            )
            await self._sleep(delay)

        raise RetryExhaustedError(
            f"Request for '{page_title}' failed after {max_attempts} attempts: {last_error}",
            page_title,
            attempts=max_attempts,
            last_error=last_error,
        )

    async def _throttle(self):
        """Space request starts at least request_interval seconds apart."""
        interval = self.config.request_interval
        if interval <= 0:
            return
        async with self._throttle_lock:
            wait = self._next_request_at - time.monotonic()
            if wait > 0:
                await self._sleep(wait)
            self._next_request_at = time.monotonic() + interval
