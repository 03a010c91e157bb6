"""
Plugin configuration.

The host's merged config is the primary source (``experimental.quotaToast``);
local opencode.json/.jsonc files are the fallback. Every field is normalized on
its own: a bad value falls back to that field's default without discarding the
rest of the config.
"""
import os
from pathlib import Path
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from opencode_quota.jsonc import read_json_file
from opencode_quota.observability.logger import get_logger
from opencode_quota.pricing.source import PricingSourceConfig
from opencode_quota.toast.entries import LayoutConfig

log = get_logger("quota_config")

GOOGLE_MODEL_IDS = ("G3PRO", "G3FLASH", "CLAUDE", "G3IMAGE")


class QuotaToastConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enabled: bool = True
    enable_toast: bool = True
    toast_style: Literal["classic", "grouped"] = "classic"
    min_interval_ms: float = 300_000
    debug: bool = False
    # Providers are off until enabled explicitly
    enabled_providers: list[str] = []
    google_models: list[str] = ["CLAUDE"]
    show_on_idle: bool = True
    show_on_question: bool = True
    show_on_compact: bool = True
    show_on_both_fail: bool = True
    toast_duration_ms: float = 9_000
    only_current_model: bool = False
    show_session_tokens: bool = True
    pricing_source: Literal["bundled", "network"] = "network"
    pricing_url: Optional[str] = None
    layout: LayoutConfig = LayoutConfig()

    def pricing_source_config(self) -> PricingSourceConfig:
        return PricingSourceConfig(pricing_source=self.pricing_source, pricing_url=self.pricing_url)


DEFAULT_CONFIG = QuotaToastConfig()


class LoadConfigMeta(BaseModel):
    source: Literal["sdk", "files", "defaults"] = "defaults"
    paths: list[str] = []


def _is_bool(v: Any) -> bool:
    return isinstance(v, bool)


def _is_positive(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and v > 0


def _one_of(*choices: str) -> Callable[[Any], bool]:
    return lambda v: v in choices


def _non_blank(v: Any) -> bool:
    return isinstance(v, str) and bool(v.strip())


def _strings(v: Any) -> Optional[list[str]]:
    if not isinstance(v, list):
        return None
    return [p for p in v if isinstance(p, str)]


def _google_models(v: Any) -> Optional[list[str]]:
    if not isinstance(v, list):
        return None
    return [m for m in v if isinstance(m, str) and m in GOOGLE_MODEL_IDS]


# wire key -> (attribute, accept predicate)
FIELD_RULES: dict[str, tuple[str, Callable[[Any], bool]]] = {
    "enabled": ("enabled", _is_bool),
    "enableToast": ("enable_toast", _is_bool),
    "toastStyle": ("toast_style", _one_of("classic", "grouped")),
    "minIntervalMs": ("min_interval_ms", _is_positive),
    "debug": ("debug", _is_bool),
    "showOnIdle": ("show_on_idle", _is_bool),
    "showOnQuestion": ("show_on_question", _is_bool),
    "showOnCompact": ("show_on_compact", _is_bool),
    "showOnBothFail": ("show_on_both_fail", _is_bool),
    "toastDurationMs": ("toast_duration_ms", _is_positive),
    "onlyCurrentModel": ("only_current_model", _is_bool),
    "showSessionTokens": ("show_session_tokens", _is_bool),
    "pricingSource": ("pricing_source", _one_of("bundled", "network")),
    "pricingUrl": ("pricing_url", _non_blank),
}

# wire key -> (attribute, filter returning the kept items or None)
LIST_RULES: dict[str, tuple[str, Callable[[Any], Optional[list[str]]]]] = {
    "enabledProviders": ("enabled_providers", _strings),
    "googleModels": ("google_models", _google_models),
}

LAYOUT_RULES = {"maxWidth": "max_width", "narrowAt": "narrow_at", "tinyAt": "tiny_at"}


def normalize_quota_config(raw: Optional[dict]) -> QuotaToastConfig:
    if not raw or not isinstance(raw, dict):
        return DEFAULT_CONFIG.model_copy(deep=True)

    values: dict[str, Any] = {}
    for key, (attr, accept) in FIELD_RULES.items():
        if key in raw and accept(raw[key]):
            values[attr] = raw[key]

    for key, (attr, keep) in LIST_RULES.items():
        kept = keep(raw.get(key))
        if kept is not None:
            values[attr] = kept

    # At least one Google model must stay configured
    if not values.get("google_models"):
        values["google_models"] = list(DEFAULT_CONFIG.google_models)

    raw_layout = raw.get("layout") if isinstance(raw.get("layout"), dict) else {}
    layout = {}
    for key, attr in LAYOUT_RULES.items():
        value = raw_layout.get(key)
        layout[attr] = max(1, int(value)) if _is_positive(value) else getattr(DEFAULT_CONFIG.layout, attr)
    values["layout"] = LayoutConfig(**layout)

    return QuotaToastConfig(**values)


def config_base_dir() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")


def config_file_candidates(cwd: Optional[Path] = None) -> list[Path]:
    """Global config first, then project-local overrides; .jsonc before .json in each."""
    cwd = Path(cwd) if cwd else Path.cwd()
    base = config_base_dir() / "opencode"
    return [
        base / "opencode.jsonc",
        base / "opencode.json",
        cwd / "opencode.jsonc",
        cwd / "opencode.json",
    ]


def _pick_quota_toast(root: Any) -> Optional[dict]:
    if not isinstance(root, dict):
        return None
    experimental = root.get("experimental")
    if not isinstance(experimental, dict):
        return None
    value = experimental.get("quotaToast")
    return value if isinstance(value, dict) else None


def load_from_files(meta: Optional[LoadConfigMeta] = None, cwd: Optional[Path] = None) -> QuotaToastConfig:
    merged: dict[str, Any] = {}
    used_paths: list[str] = []

    for path in config_file_candidates(cwd):
        if not path.exists():
            continue
        picked = _pick_quota_toast(read_json_file(path))
        if picked is None:
            continue
        merged.update(picked)
        used_paths.append(f"{path} (experimental.quotaToast)")

    if meta is not None:
        meta.source = "files" if used_paths else "defaults"
        meta.paths = used_paths

    log.debug("quota_config_files", paths=used_paths)
    return normalize_quota_config(merged or None)


def _response_data(response: Any) -> Any:
    if isinstance(response, dict):
        return response.get("data")
    return getattr(response, "data", None)


async def load_quota_config(client, meta: Optional[LoadConfigMeta] = None, cwd: Optional[Path] = None) -> QuotaToastConfig:
    """Load plugin config from the host client, falling back to local config files.

    The host's config schema is strict, so plugin settings live under
    ``experimental.quotaToast``.
    """
    try:
        response = await client.config.get()
        picked = _pick_quota_toast(_response_data(response))
    except Exception as e:
        log.warning("quota_config_sdk_failed", error=str(e))
        return load_from_files(meta, cwd)

    if picked is None:
        return load_from_files(meta, cwd)

    if meta is not None:
        meta.source = "sdk"
        meta.paths = ["client.config.get"]
    return normalize_quota_config(picked)
