import os
import sys
from pathlib import Path
from typing import Literal, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel

from opencode_quota.config import settings

MODELSDEV_API_URL = "https://models.dev/api.json"
CACHE_DIR_NAME = "opencode-quota"
CACHE_FILE_NAME = "modelsdev-pricing.json"
BUNDLED_SNAPSHOT_PATH = Path(__file__).parent / "data" / "modelsdev-pricing.min.json"

PricingSourceName = Literal["bundled", "network"]


class PricingSourceConfig(BaseModel):
    pricing_source: Optional[str] = None
    pricing_url: Optional[str] = None


class ResolvedPricingSource(BaseModel):
    source: PricingSourceName
    url: str


def _normalize_url(raw: str) -> Optional[str]:
    try:
        parts = urlsplit(raw)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return parts.geturl()


def resolve_pricing_source(config: Optional[PricingSourceConfig] = None) -> ResolvedPricingSource:
    """Pick bundled vs network pricing and the URL to refresh from.

    Unknown sources mean "network"; a blank or invalid URL means the models.dev default.
    """
    source = "network"
    if config and config.pricing_source in ("bundled", "network"):
        source = config.pricing_source

    raw_url = (config.pricing_url or "").strip() if config and isinstance(config.pricing_url, str) else ""
    url = _normalize_url(raw_url) if raw_url else None
    return ResolvedPricingSource(source=source, url=url or MODELSDEV_API_URL)


def cache_base_dir() -> Path:
    if settings.cache_dir:
        return Path(settings.cache_dir).expanduser()
    home = Path.home()
    if sys.platform == "win32":
        return Path(os.environ.get("LOCALAPPDATA") or home / "AppData" / "Local")
    return Path(os.environ.get("XDG_CACHE_HOME") or home / ".cache")


def snapshot_cache_path() -> Path:
    return cache_base_dir() / CACHE_DIR_NAME / CACHE_FILE_NAME
