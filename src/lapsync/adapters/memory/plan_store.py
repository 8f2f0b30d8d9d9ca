"""Process-local plan store with a bounded TTL."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lapsync.domain.ports.plan_store import StoredPlan

if TYPE_CHECKING:
    from collections.abc import Callable

    from lapsync.domain.model import ImportPlan, PlanRequest


@dataclass(slots=True)
class _Entry:
    request: PlanRequest
    plan: ImportPlan
    saved_at: float


class InMemoryPlanStore:
    """Keeps plan bodies for ``ttl_seconds`` and their requests for ``retention_seconds``.

    Between the two deadlines ``get`` returns the request without a plan, so the
    caller can rebuild it.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float,
        retention_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._retention = max(ttl_seconds, retention_seconds or ttl_seconds)
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def save(self, plan: ImportPlan, request: PlanRequest) -> None:
        plan_id = plan.plan_id.strip()
        if not plan_id:
            return
        with self._lock:
            self._entries[plan_id] = _Entry(request=request, plan=plan, saved_at=self._clock())

    def get(self, plan_id: str) -> StoredPlan | None:
        key = plan_id.strip()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            age = self._clock() - entry.saved_at
            if age > self._retention:
                del self._entries[key]
                return None
        plan = entry.plan if age <= self._ttl else None
        return StoredPlan(plan_id=key, request=entry.request, plan=plan)
