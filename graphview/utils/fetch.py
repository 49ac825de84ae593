"""HTTP collaborator fetching graph datasets for the view."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from graphview.config import DatasetConfig

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_PATH = "/api/graph"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one dataset fetch; ``ok=False`` describes a fetch failure."""

    ok: bool
    url: str
    status_code: Optional[int]
    detail: str
    latency_ms: Optional[float]
    payload: Optional[Any] = None


class DatasetClient:
    """Fetch graph payloads from the data-serving API.

    Args:
        base_url: Base URL of the API (e.g. ``"http://localhost:8000"``).
        path: Path of the graph endpoint relative to ``base_url``.
        timeout: Request timeout in seconds when creating an internal client.
        client: Optional pre-configured ``httpx.Client`` (useful for testing).
        async_client: Optional pre-configured ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        path: str = DEFAULT_GRAPH_PATH,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
        async_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("base_url must be a non-empty string")
        self._url = f"{base_url.strip().rstrip('/')}/{path.lstrip('/')}"
        self._timeout = timeout
        self._client = client
        self._async_client = async_client

    @classmethod
    def from_config(
        cls,
        config: DatasetConfig,
        *,
        client: Optional[httpx.Client] = None,
        async_client: Optional[httpx.AsyncClient] = None,
    ) -> "DatasetClient":
        if config.source_url is None:
            raise ValueError("dataset.source_url is not configured")
        return cls(
            config.source_url,
            timeout=config.timeout_seconds,
            client=client,
            async_client=async_client,
        )

    @property
    def url(self) -> str:
        return self._url

    @staticmethod
    def _params(limit: Optional[int]) -> Dict[str, Any]:
        return {"limit": limit} if limit is not None else {}

    def fetch(self, *, limit: Optional[int] = None) -> FetchResult:
        """Fetch the graph payload, never raising for network or status errors."""

        should_close = self._client is None
        session = self._client or httpx.Client(timeout=self._timeout)
        start_time = time.monotonic()
        try:
            response = session.get(self._url, params=self._params(limit))
            return self._result_from_response(response, start_time)
        except httpx.HTTPError as exc:
            return self._result_from_error(exc, start_time)
        finally:
            if should_close:
                session.close()

    async def fetch_async(self, *, limit: Optional[int] = None) -> FetchResult:
        """Asynchronous variant of :meth:`fetch` for use outside the tick loop."""

        should_close = self._async_client is None
        session = self._async_client or httpx.AsyncClient(timeout=self._timeout)
        start_time = time.monotonic()
        try:
            response = await session.get(self._url, params=self._params(limit))
            return self._result_from_response(response, start_time)
        except httpx.HTTPError as exc:
            return self._result_from_error(exc, start_time)
        finally:
            if should_close:
                await session.aclose()

    def _result_from_response(self, response: httpx.Response, start_time: float) -> FetchResult:
        latency_ms = (time.monotonic() - start_time) * 1000
        if response.status_code != httpx.codes.OK:
            logger.error(
                "Dataset fetch failed with status",
                extra={"url": self._url, "status_code": response.status_code, "latency_ms": latency_ms},
            )
            return FetchResult(
                ok=False,
                url=self._url,
                status_code=response.status_code,
                detail=f"Graph endpoint returned {response.status_code}",
                latency_ms=latency_ms,
                payload=None,
            )
        try:
            payload = response.json()
        except ValueError:
            logger.error(
                "Dataset endpoint returned non-JSON payload",
                extra={"url": self._url, "status_code": response.status_code},
            )
            return FetchResult(
                ok=False,
                url=self._url,
                status_code=response.status_code,
                detail="Graph endpoint returned a non-JSON payload",
                latency_ms=latency_ms,
                payload=None,
            )
        logger.info(
            "Dataset fetch succeeded",
            extra={"url": self._url, "status_code": response.status_code, "latency_ms": latency_ms},
        )
        return FetchResult(
            ok=True,
            url=self._url,
            status_code=response.status_code,
            detail="Dataset fetched",
            latency_ms=latency_ms,
            payload=payload,
        )

    def _result_from_error(self, exc: httpx.HTTPError, start_time: float) -> FetchResult:
        latency_ms = (time.monotonic() - start_time) * 1000
        logger.error(
            "Dataset fetch request raised an error",
            extra={"url": self._url, "latency_ms": latency_ms, "error": str(exc)},
        )
        return FetchResult(
            ok=False,
            url=self._url,
            status_code=None,
            detail=f"Request to {self._url} failed: {exc}",
            latency_ms=latency_ms,
            payload=None,
        )


def fetch_dataset(
    base_url: str,
    *,
    limit: Optional[int] = None,
    timeout: float = 10.0,
    client: Optional[httpx.Client] = None,
) -> FetchResult:
    """Fetch one graph payload from ``base_url``; see :class:`DatasetClient`."""

    return DatasetClient(base_url, timeout=timeout, client=client).fetch(limit=limit)


__all__ = ["DatasetClient", "FetchResult", "fetch_dataset"]
