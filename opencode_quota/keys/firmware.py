"""
Firmware API key resolution.

Priority (first wins):
1. Environment: FIRMWARE_AI_API_KEY, then FIRMWARE_API_KEY
2. opencode.json/opencode.jsonc: provider.firmware.options.apiKey
   ({env:VAR_NAME} references are expanded)
3. auth.json: firmware.key (legacy)
"""
import os
import re
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel

from opencode_quota.jsonc import read_json_file
from opencode_quota.observability.logger import get_logger
from opencode_quota.quota_config import config_base_dir

log = get_logger("keys.firmware")

ENV_VARS = ("FIRMWARE_AI_API_KEY", "FIRMWARE_API_KEY")
_ENV_TEMPLATE = re.compile(r"^\{env:([^}]+)\}$")

FirmwareKeySource = Literal[
    "env:FIRMWARE_AI_API_KEY",
    "env:FIRMWARE_API_KEY",
    "opencode.json",
    "opencode.jsonc",
    "auth.json",
]


class FirmwareApiKey(BaseModel):
    key: str
    source: FirmwareKeySource


class FirmwareKeyDiagnostics(BaseModel):
    configured: bool
    source: Optional[FirmwareKeySource] = None
    checked_paths: list[str] = []


def resolve_env_template(value: str) -> Optional[str]:
    match = _ENV_TEMPLATE.match(value)
    if not match:
        return value
    env_value = os.environ.get(match.group(1), "").strip()
    return env_value or None


def extract_firmware_key(config: Any) -> Optional[str]:
    """Pull provider.firmware.options.apiKey out of an opencode config object."""
    node = config
    for key in ("provider", "firmware", "options"):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    if not isinstance(node, dict):
        return None

    api_key = node.get("apiKey")
    if not isinstance(api_key, str) or not api_key.strip():
        return None
    return resolve_env_template(api_key.strip())


def opencode_config_candidates(cwd: Optional[Path] = None) -> list[Path]:
    # Local overrides first, then the global config
    cwd = Path(cwd) if cwd else Path.cwd()
    base = config_base_dir() / "opencode"
    return [
        cwd / "opencode.jsonc",
        cwd / "opencode.json",
        base / "opencode.jsonc",
        base / "opencode.json",
    ]


def auth_file_path() -> Path:
    data_home = os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share"
    return Path(data_home) / "opencode" / "auth.json"


def read_auth_file() -> Optional[dict]:
    data = read_json_file(auth_file_path())
    return data if isinstance(data, dict) else None


def resolve_firmware_api_key(cwd: Optional[Path] = None) -> Optional[FirmwareApiKey]:
    for var in ENV_VARS:
        value = os.environ.get(var, "").strip()
        if value:
            return FirmwareApiKey(key=value, source=f"env:{var}")

    for path in opencode_config_candidates(cwd):
        if not path.exists():
            continue
        key = extract_firmware_key(read_json_file(path))
        if key:
            return FirmwareApiKey(key=key, source="opencode.jsonc" if path.suffix == ".jsonc" else "opencode.json")

    auth = read_auth_file() or {}
    fw = auth.get("firmware")
    if isinstance(fw, dict) and fw.get("type") == "api":
        key = fw.get("key")
        if isinstance(key, str) and key.strip():
            return FirmwareApiKey(key=key.strip(), source="auth.json")

    return None


def has_firmware_api_key(cwd: Optional[Path] = None) -> bool:
    return resolve_firmware_api_key(cwd) is not None


def get_firmware_key_diagnostics(cwd: Optional[Path] = None) -> FirmwareKeyDiagnostics:
    checked_paths = [f"env:{var}" for var in ENV_VARS if var in os.environ]
    checked_paths += [str(p) for p in opencode_config_candidates(cwd) if p.exists()]

    result = resolve_firmware_api_key(cwd)
    log.debug("firmware_key_diagnostics", configured=result is not None, checked=len(checked_paths))
    return FirmwareKeyDiagnostics(
        configured=result is not None,
        source=result.source if result else None,
        checked_paths=checked_paths,
    )
