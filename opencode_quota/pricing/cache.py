"""
Pricing snapshot cache backed by the models.dev API.

Reads are synchronous and served from memory. A stale snapshot schedules a
background refresh on the running event loop; callers always get the current
snapshot back immediately, even while that refresh is in flight.
"""
import asyncio
import json
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import httpx

from opencode_quota.config import settings
from opencode_quota.observability.logger import get_logger
from opencode_quota.pricing.models import (
    UNITS,
    CostBuckets,
    PricingSnapshot,
    SnapshotMeta,
    empty_snapshot,
    validate_snapshot,
)
from opencode_quota.pricing.source import (
    BUNDLED_SNAPSHOT_PATH,
    PricingSourceConfig,
    resolve_pricing_source,
    snapshot_cache_path,
)

log = get_logger("pricing.cache")

PROVIDER_ALLOWLIST = frozenset({"anthropic", "google", "moonshotai", "openai", "zai"})

Fetcher = Callable[[str, float], Awaitable[Any]]


async def fetch_pricing_document(url: str, timeout: float) -> Any:
    async with httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(timeout),
    ) as client:
        response = await client.get(url, headers={"Accept": "application/json"})
        response.raise_for_status()
        return response.json()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def build_snapshot_from_api(payload: Any, source_url: str, generated_at_ms: int) -> Optional[PricingSnapshot]:
    """Normalize a models.dev document into a snapshot, or None if nothing usable is left."""
    if not isinstance(payload, dict):
        return None

    providers: dict[str, dict[str, CostBuckets]] = {}
    for provider_id, provider_value in payload.items():
        if provider_id not in PROVIDER_ALLOWLIST or not isinstance(provider_value, dict):
            continue
        models = provider_value.get("models")
        if not isinstance(models, dict):
            continue

        model_costs: dict[str, CostBuckets] = {}
        for model_id, model_value in models.items():
            if not isinstance(model_value, dict):
                continue
            cost = model_value.get("cost")
            if not isinstance(cost, dict):
                continue
            input_cost = cost.get("input") if _is_number(cost.get("input")) else None
            output_cost = cost.get("output") if _is_number(cost.get("output")) else None
            if input_cost is None and output_cost is None:
                continue
            model_costs[model_id] = CostBuckets(input=input_cost, output=output_cost)

        if model_costs:
            providers[provider_id] = model_costs

    if not providers:
        return None

    return PricingSnapshot(
        meta=SnapshotMeta(
            source=source_url,
            generated_at=generated_at_ms,
            providers=list(providers),
            units=UNITS,
        ),
        providers=providers,
    )


def read_snapshot_file(path: Path) -> Optional[PricingSnapshot]:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        log.warning("pricing_snapshot_unreadable", path=str(path), error=str(e))
        return None

    check = validate_snapshot(raw)
    if not check.valid:
        log.warning("pricing_snapshot_rejected", path=str(path), reason=check.reason)
        return None
    return check.snapshot


class PricingCache:
    """Owns the current pricing snapshot for the process.

    Construct once and pass it to every call site. The clock, fetcher and
    file locations are injectable for tests.
    """

    def __init__(
        self,
        source: Optional[PricingSourceConfig] = None,
        cache_path: Optional[Path] = None,
        bundled_path: Optional[Path] = None,
        fetcher: Optional[Fetcher] = None,
        clock: Callable[[], float] = time.time,
        ttl_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ):
        resolved = resolve_pricing_source(source)
        self.source = resolved.source
        self.url = resolved.url
        self.cache_path = Path(cache_path) if cache_path else snapshot_cache_path()
        self.bundled_path = Path(bundled_path) if bundled_path else BUNDLED_SNAPSHOT_PATH
        self._fetch = fetcher or fetch_pricing_document
        self._clock = clock
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.pricing_ttl_seconds
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.pricing_timeout_seconds

        self._snapshot: Optional[PricingSnapshot] = None
        self._refresh_task: Optional[asyncio.Task] = None

    # ── Loading ──

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _load(self) -> PricingSnapshot:
        if self.source == "network":
            cached = read_snapshot_file(self.cache_path)
            if cached is not None:
                log.debug("pricing_snapshot_loaded", origin="cache", path=str(self.cache_path))
                return cached

        bundled = read_snapshot_file(self.bundled_path)
        if bundled is not None:
            log.debug("pricing_snapshot_loaded", origin="bundled", path=str(self.bundled_path))
            return bundled

        log.warning("pricing_snapshot_empty", source=self.source)
        return empty_snapshot()

    def is_stale(self, snapshot: Optional[PricingSnapshot]) -> bool:
        if snapshot is None:
            return True
        generated_at = snapshot.meta.generated_at
        if not _is_number(generated_at):
            return True
        if snapshot.meta.source != self.url:
            return True
        return self._now_ms() - generated_at > self.ttl_seconds * 1000

    def ensure_loaded(self) -> PricingSnapshot:
        """Return the current snapshot, scheduling a refresh if it is stale. Never awaits."""
        if self._snapshot is None:
            self._snapshot = self._load()

        if self.source == "network" and self.is_stale(self._snapshot):
            self._schedule_refresh()

        return self._snapshot

    def _schedule_refresh(self):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop to run on; the next access from async code will pick it up
            return
        self.refresh()

    # ── Refresh ──

    @property
    def refresh_in_flight(self) -> Optional[asyncio.Task]:
        return self._refresh_task

    def refresh(self) -> asyncio.Task:
        """Start a refresh, or return the one already running.

        Must be called with an event loop running.
        """
        if self._refresh_task is not None and not self._refresh_task.done():
            return self._refresh_task

        task = asyncio.get_running_loop().create_task(self._refresh(), name="pricing_refresh")
        task.add_done_callback(self._refresh_done)
        self._refresh_task = task
        return task

    def _refresh_done(self, task: asyncio.Task):
        if self._refresh_task is task:
            self._refresh_task = None

    async def _refresh(self) -> bool:
        url = self.url
        try:
            payload = await asyncio.wait_for(self._fetch(url, self.timeout_seconds), timeout=self.timeout_seconds)
            snapshot = build_snapshot_from_api(payload, url, self._now_ms())
            if snapshot is None:
                log.warning("pricing_refresh_empty", url=url)
                return False
            await asyncio.to_thread(self._persist, snapshot)
        except asyncio.TimeoutError:
            log.warning("pricing_refresh_timeout", url=url, timeout=self.timeout_seconds)
            return False
        except Exception as e:
            log.warning("pricing_refresh_failed", url=url, error=str(e))
            return False

        self._snapshot = snapshot
        log.info("pricing_refreshed", url=url, providers=snapshot.meta.providers)
        return True

    def _persist(self, snapshot: PricingSnapshot):
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        self.cache_path.write_text(snapshot.to_json(), encoding="utf-8")

    # ── Queries ──

    def snapshot(self) -> PricingSnapshot:
        return self.ensure_loaded()

    def get_meta(self) -> SnapshotMeta:
        return self.ensure_loaded().meta

    def has_provider(self, provider_id: str) -> bool:
        return provider_id in self.ensure_loaded().providers

    def list_providers(self) -> list[str]:
        return list(self.ensure_loaded().providers)

    def get_provider_model_count(self, provider_id: str) -> int:
        return len(self.ensure_loaded().providers.get(provider_id) or {})

    def lookup_cost(self, provider_id: str, model_id: str) -> Optional[CostBuckets]:
        models = self.ensure_loaded().providers.get(provider_id)
        if not models:
            return None
        return models.get(model_id)
