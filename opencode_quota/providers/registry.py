import asyncio
import time
from typing import Optional

from opencode_quota.exceptions import ProviderError
from opencode_quota.observability.logger import get_logger
from opencode_quota.providers.base import QuotaProvider, QuotaProviderContext
from opencode_quota.toast.entries import QuotaProviderResult, QuotaToastError

log = get_logger("providers")


class ProviderRegistry:
    """Registers quota providers and collects their results for a toast."""

    def __init__(self, providers: Optional[list[QuotaProvider]] = None):
        self.providers: dict[str, QuotaProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: QuotaProvider):
        self.providers[provider.id] = provider
        log.info("provider_registered", provider=provider.id)

    def get_provider_ids(self) -> list[str]:
        return list(self.providers.keys())

    def select(self, ctx: QuotaProviderContext, current_model: Optional[str] = None) -> list[QuotaProvider]:
        enabled = set(ctx.config.enabled_providers)
        selected = [p for p in self.providers.values() if p.id in enabled]
        if ctx.config.only_current_model and current_model:
            selected = [p for p in selected if p.matches_current_model(current_model)]
        return selected

    async def _run(self, provider: QuotaProvider, ctx: QuotaProviderContext) -> QuotaProviderResult:
        start = time.time()
        try:
            if not await provider.is_available(ctx):
                log.info("provider_unavailable", provider=provider.id)
                return QuotaProviderResult(attempted=False)

            result = await asyncio.wait_for(provider.fetch(ctx), timeout=provider.timeout_seconds)
            log.info("provider_fetched",
                     provider=provider.id, entries=len(result.entries),
                     errors=len(result.errors),
                     duration_ms=int((time.time() - start) * 1000))
            return result

        except asyncio.TimeoutError:
            log.error("provider_timeout", provider=provider.id, timeout=provider.timeout_seconds)
            message = f"Timed out after {provider.timeout_seconds}s"
            return QuotaProviderResult(attempted=True, errors=[QuotaToastError(label=provider.id, message=message)])
        except ProviderError as e:
            log.warning("provider_error", provider=provider.id, error=str(e))
            return QuotaProviderResult(attempted=True, errors=[QuotaToastError(label=e.provider_id, message=str(e))])
        except Exception as e:
            log.error("provider_error", provider=provider.id, error=str(e))
            message = str(e) or type(e).__name__
            return QuotaProviderResult(attempted=True, errors=[QuotaToastError(label=provider.id, message=message)])

    async def collect(self, ctx: QuotaProviderContext, current_model: Optional[str] = None) -> QuotaProviderResult:
        selected = self.select(ctx, current_model)
        results = await asyncio.gather(*(self._run(p, ctx) for p in selected))

        merged = QuotaProviderResult()
        for result in results:
            merged.attempted = merged.attempted or result.attempted
            merged.entries.extend(result.entries)
            merged.errors.extend(result.errors)
        return merged
