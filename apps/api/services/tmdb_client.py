"""Minimal TMDB search client used to label uploaded titles."""

import logging
from typing import Any

import httpx

from core.config import get_settings

logger = logging.getLogger(__name__)


class TMDBError(Exception):
    """Raised when a TMDB request fails."""

    pass


class TMDBClient:
    """Async wrapper around the TMDB movie search endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.tmdb_api_key
        self.base_url = (base_url or settings.tmdb_base_url).rstrip("/")
        self.timeout = timeout or settings.tmdb_timeout_seconds
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search_movie(self, title: str, result_index: int = 0) -> dict[str, Any] | None:
        """
        Search TMDB for a title and pick one result.

        Args:
            title: Title to search for.
            result_index: Which result to return; out-of-range falls back to
                the first result.

        Returns:
            The chosen result object, or None if nothing matched or no API
            key is configured.

        Raises:
            TMDBError: On network errors, HTTP errors or malformed responses.
        """
        if not self.is_configured:
            logger.debug("TMDB API key not configured, skipping lookup for %s", title)
            return None

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.get(
                    "/search/movie",
                    params={"api_key": self.api_key, "query": title, "page": 1},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            raise TMDBError(f"TMDB search failed for {title!r}: {e}") from e
        except ValueError as e:
            raise TMDBError(f"TMDB returned invalid JSON for {title!r}") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not results:
            logger.info("No TMDB results for %s", title)
            return None

        if 0 <= result_index < len(results):
            return results[result_index]
        logger.info(
            "TMDB result index %d out of range for %s (%d results), using first",
            result_index,
            title,
            len(results),
        )
        return results[0]
