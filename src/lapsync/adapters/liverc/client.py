"""LiveRC results client."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlsplit

from pydantic import BaseModel, ValidationError

from lapsync.adapters.http_resilience import ResilientClient
from lapsync.domain.errors import InvalidPayload, UpstreamMalformed
from lapsync.domain.references import ParsedReference

from .schema import LiveRcEntryList, LiveRcEventOverview, LiveRcRaceResult
from .translator import translate_entry_list, translate_event_overview, translate_race_result

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from lapsync.config.http_resilience import ResilienceConfig
    from lapsync.config.liverc import LiveRcConfig
    from lapsync.domain.ports.upstream import EntryList, EventOverview, RaceResult, SessionSummary
    from lapsync.domain.references import EventReference

log = getLogger(__name__)

ENTRY_LIST_DOCUMENT = "entry-list.json"
EVENT_OVERVIEW_DOCUMENT = "sessions.json"


def build_results_url(base_url: str, segments: list[str]) -> str:
    encoded = "/".join(quote(segment, safe="") for segment in segments)
    return f"{base_url.rstrip('/')}/{encoded}"


class LiveRcClient:
    """Fetches LiveRC JSON documents and normalises them into port records."""

    def __init__(
        self,
        *,
        config: LiveRcConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    async def fetch_entry_list(self, reference: ParsedReference) -> EntryList:
        url = build_results_url(
            reference.results_base_url,
            [reference.event_slug, reference.class_slug, ENTRY_LIST_DOCUMENT],
        )
        model = await self._fetch_document(url, LiveRcEntryList)
        return translate_entry_list(model)

    async def fetch_race_result(self, reference: ParsedReference) -> RaceResult:
        url = build_results_url(
            reference.results_base_url,
            [
                reference.event_slug,
                reference.class_slug,
                reference.round_slug,
                f"{reference.race_slug}.json",
            ],
        )
        model = await self._fetch_document(url, LiveRcRaceResult)
        return translate_race_result(model)

    async def fetch_event_overview(self, reference: EventReference) -> EventOverview:
        url = build_results_url(
            self._base_url(reference),
            [reference.event_slug, EVENT_OVERVIEW_DOCUMENT],
        )
        model = await self._fetch_document(url, LiveRcEventOverview)
        return translate_event_overview(
            model,
            event_slug=reference.event_slug,
            source_url=self.event_source_url(reference),
        )

    def event_source_url(self, event: EventReference) -> str:
        return build_results_url(self._base_url(event), [event.event_slug])

    def race_reference(self, event: EventReference, session: SessionSummary) -> ParsedReference:
        base_url = self._base_url(event)
        parts = urlsplit(base_url)
        race_url = build_results_url(
            base_url,
            [event.event_slug, session.class_slug, session.round_slug, f"{session.race_slug}.json"],
        )
        return ParsedReference(
            event_slug=event.event_slug,
            class_slug=session.class_slug,
            round_slug=session.round_slug,
            race_slug=session.race_slug,
            canonical_path=urlsplit(race_url).path,
            origin=f"{parts.scheme}://{parts.netloc}",
            results_base_url=base_url,
        )

    def parse_race_result(self, payload: Mapping[str, Any]) -> RaceResult:
        try:
            model = LiveRcRaceResult.model_validate(dict(payload))
        except ValidationError as exc:
            raise InvalidPayload(
                "LiveRC race result payload could not be parsed",
                details={"errors": exc.error_count()},
            ) from exc
        return translate_race_result(model)

    def _base_url(self, event: EventReference) -> str:
        return (event.results_base_url or self._config.results_base_url).rstrip("/")

    async def _fetch_document[TModel: BaseModel](self, url: str, model: type[TModel]) -> TModel:
        async with self._client_factory(self._resilience) as client:
            payload = await client.get_json_object(url)

        try:
            document = model.model_validate(payload)
        except ValidationError as exc:
            raise UpstreamMalformed(
                f"LiveRC {model.__name__} document failed validation",
                url=url,
                details={"errors": exc.error_count()},
            ) from exc
        log.debug("Fetched %s from %s", model.__name__, url)
        return document
