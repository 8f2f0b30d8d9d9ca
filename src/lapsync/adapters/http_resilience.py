from __future__ import annotations

import json
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, TypedDict

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from lapsync.domain.errors import UpstreamError, UpstreamMalformed, UpstreamUnavailable

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import TimeoutTypes

    from lapsync.config.http_resilience import (
        CacheConfig,
        ResilienceConfig,
        RetryPolicy,
        ShouldCacheHook,
    )

log = getLogger(__name__)


class _ClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: dict[str, str]
    transport: httpx.AsyncBaseTransport


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
        backoff_jitter=policy.backoff_jitter,
    )


class ResilientClient:
    """Rate-limited, retrying (and optionally caching) GET client for JSON documents.

    Retries happen below this class in the transport; whatever is left once they are
    exhausted surfaces as an ``UpstreamFailure``. ``transport`` replaces the network
    transport underneath the retry layer, which is how tests plug in
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )

        options: _ClientOptions = {
            "timeout": config.timeout_seconds,
            "transport": RetryTransport(transport=transport, retry=build_retry(config.retry)),
        }
        if config.base_url is not None:
            options["base_url"] = config.base_url
        if config.default_headers:
            options["headers"] = dict(config.default_headers)

        storage, policy = _build_cache_components(config.cache)
        if storage is not None:
            self._client = AsyncCacheClient(**options, storage=storage, policy=policy)
        else:
            self._client = httpx.AsyncClient(**options)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: str) -> httpx.Response:
        if self._limiter is None:
            return await self._client.get(url)
        async with self._limiter:
            return await self._client.get(url)

    async def get_json_object(self, url: str) -> dict[str, object]:
        """GET ``url`` and return its body, which must be a JSON object."""

        try:
            response = await self.get(url)
        except httpx.TransportError as exc:
            log.warning("%s: GET %s failed: %r", self.config.name, url, exc)
            raise UpstreamUnavailable(
                f"LiveRC request failed: {exc.__class__.__name__}", url=url
            ) from exc

        if not response.is_success:
            raise UpstreamError(
                f"LiveRC responded with HTTP {response.status_code}",
                url=url,
                status=response.status_code,
            )

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise UpstreamMalformed("LiveRC response was not valid JSON", url=url) from exc
        if not isinstance(payload, dict):
            raise UpstreamMalformed("LiveRC response was not a JSON object", url=url)
        return payload


class _ShouldCacheResponseFilter(BaseFilter[HishelCacheResponse]):
    """Only cache bodies the configured predicate accepts."""

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if body is None:
            return True
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False
        return bool(self._predicate(payload))


def _build_cache_components(
    config: CacheConfig | None,
) -> tuple[AsyncSqliteStorage | None, FilterPolicy | None]:
    if config is None or not config.enabled:
        return None, None

    database_path = ":memory:"
    if config.backend == "sqlite" and config.sqlite_path:
        Path(config.sqlite_path).parent.mkdir(parents=True, exist_ok=True)
        database_path = config.sqlite_path
    storage = AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.default_ttl_seconds,
        refresh_ttl_on_access=config.refresh_ttl_on_access,
    )
    if config.should_cache is None:
        return storage, None
    return storage, FilterPolicy(response_filters=[_ShouldCacheResponseFilter(config.should_cache)])
