from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict

from opencode_quota.quota_config import QuotaToastConfig
from opencode_quota.toast.entries import QuotaProviderResult


class QuotaProviderContext(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Host SDK client; exposes async config.get() and config.providers()
    client: Any = None
    config: QuotaToastConfig = QuotaToastConfig()


class QuotaProvider(ABC):
    """Base class for quota providers."""

    # Stable id used by config.enabled_providers
    id: str = "base_provider"
    timeout_seconds: float = 15

    @abstractmethod
    async def is_available(self, ctx: QuotaProviderContext) -> bool:
        """Best-effort availability check, without network access where possible."""

    @abstractmethod
    async def fetch(self, ctx: QuotaProviderContext) -> QuotaProviderResult:
        pass

    def matches_current_model(self, model: str) -> bool:
        return True
