"""
Host-facing entry point: loads config, owns the pricing cache and provider
registry, and turns provider results into toast text.
"""
import time
from pathlib import Path
from typing import Any, Callable, Optional

from opencode_quota.config import settings
from opencode_quota.keys.firmware import get_firmware_key_diagnostics
from opencode_quota.observability.logger import get_logger, setup_logging
from opencode_quota.pricing.cache import PricingCache
from opencode_quota.providers.base import QuotaProvider, QuotaProviderContext
from opencode_quota.providers.registry import ProviderRegistry
from opencode_quota.quota_config import DEFAULT_CONFIG, LoadConfigMeta, QuotaToastConfig, load_quota_config
from opencode_quota.toast.entries import SessionTokensData
from opencode_quota.toast.format import render

log = get_logger("plugin")

# host event -> config flag that allows a toast for it
TRIGGER_FLAGS = {
    "idle": "show_on_idle",
    "question": "show_on_question",
    "compact": "show_on_compact",
}


class QuotaPlugin:
    def __init__(
        self,
        client,
        providers: Optional[list[QuotaProvider]] = None,
        pricing: Optional[PricingCache] = None,
        cwd: Optional[Path] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.registry = ProviderRegistry(providers)
        self.pricing = pricing
        self.cwd = cwd
        self.config: QuotaToastConfig = DEFAULT_CONFIG
        self.config_meta = LoadConfigMeta()
        self._clock = clock
        self._last_toast_at: Optional[float] = None

    async def start(self):
        self.config = await load_quota_config(self.client, self.config_meta, self.cwd)
        setup_logging("DEBUG" if self.config.debug else settings.log_level)
        if self.pricing is None:
            self.pricing = PricingCache(source=self.config.pricing_source_config())
        # Warm the snapshot; a stale one starts refreshing in the background
        meta = self.pricing.get_meta()
        log.info("quota_plugin_started",
                 config_source=self.config_meta.source,
                 providers=self.registry.get_provider_ids(),
                 pricing_source=meta.source)

    def context(self) -> QuotaProviderContext:
        return QuotaProviderContext(client=self.client, config=self.config)

    def _throttled(self) -> bool:
        if self._last_toast_at is None:
            return False
        return (self._clock() - self._last_toast_at) * 1000 < self.config.min_interval_ms

    async def build_toast(
        self,
        session_tokens: Optional[SessionTokensData] = None,
        current_model: Optional[str] = None,
        trigger: Optional[str] = None,
        force: bool = False,
    ) -> Optional[str]:
        """Collect quota from enabled providers and render it. None means nothing to show.

        ``trigger`` names the host event ("idle", "question", "compact") and is
        checked against its ``showOn*`` flag. Toasts closer together than
        ``minIntervalMs`` are suppressed unless ``force`` is set.
        """
        if not self.config.enabled or not self.config.enable_toast:
            return None

        flag = TRIGGER_FLAGS.get(trigger)
        if flag is not None and not getattr(self.config, flag):
            log.debug("quota_toast_skipped", trigger=trigger)
            return None

        if not force and self._throttled():
            log.debug("quota_toast_throttled", min_interval_ms=self.config.min_interval_ms)
            return None

        result = await self.registry.collect(self.context(), current_model)
        if not result.entries and not result.errors:
            return None
        if not result.entries and not self.config.show_on_both_fail:
            log.debug("quota_toast_all_failed", errors=len(result.errors))
            return None

        tokens = session_tokens if self.config.show_session_tokens else None
        text = render(
            result.entries,
            result.errors,
            tokens,
            layout=self.config.layout,
            style=self.config.toast_style,
        )
        self._last_toast_at = self._clock()
        return text

    def estimate_cost(self, provider_id: str, model_id: str, input_tokens: int, output_tokens: int) -> Optional[float]:
        """USD cost for a token count, or None when the model has no pricing."""
        if self.pricing is None:
            return None
        buckets = self.pricing.lookup_cost(provider_id, model_id)
        if buckets is None:
            return None
        input_cost = (input_tokens / 1_000_000) * (buckets.input or 0)
        output_cost = (output_tokens / 1_000_000) * (buckets.output or 0)
        return input_cost + output_cost

    def status(self) -> dict[str, Any]:
        """Where config, pricing and provider keys came from, for a status command."""
        firmware = get_firmware_key_diagnostics(self.cwd)
        status: dict[str, Any] = {
            "config": self.config_meta.model_dump(),
            "enabled_providers": list(self.config.enabled_providers),
            "registered_providers": self.registry.get_provider_ids(),
            "firmware_key": firmware.model_dump(),
            "toast_duration_ms": self.config.toast_duration_ms,
        }
        if self.pricing is not None:
            meta = self.pricing.get_meta()
            status["pricing"] = {
                "source": meta.source,
                "generated_at": meta.generated_at,
                "providers": self.pricing.list_providers(),
            }
        return status
