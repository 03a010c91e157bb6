import os
import tempfile

# Must be set before any opencode_quota imports that read settings.cache_dir
os.environ["OPENCODE_QUOTA_CACHE_DIR"] = tempfile.mkdtemp()

import time

import pytest

from opencode_quota.pricing.source import MODELSDEV_API_URL


@pytest.fixture
def isolated_dirs(monkeypatch, tmp_path):
    """Point XDG config/data dirs at a temp tree and clear key env vars."""
    config_home = tmp_path / "config"
    data_home = tmp_path / "data"
    project = tmp_path / "project"
    for d in (config_home / "opencode", data_home / "opencode", project):
        d.mkdir(parents=True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("XDG_DATA_HOME", str(data_home))
    monkeypatch.delenv("FIRMWARE_AI_API_KEY", raising=False)
    monkeypatch.delenv("FIRMWARE_API_KEY", raising=False)
    return {
        "global": config_home / "opencode",
        "data": data_home / "opencode",
        "project": project,
    }


@pytest.fixture
def now_s():
    return time.time()


@pytest.fixture
def snapshot_dict(now_s):
    """Build a raw snapshot dict; ``age_hours`` ages generatedAt relative to now."""

    def _make(age_hours: float = 0, source: str = MODELSDEV_API_URL, providers=None):
        providers = providers if providers is not None else {
            "anthropic": {"claude-sonnet-4-5": {"input": 3, "output": 15}},
            "openai": {
                "gpt-4o": {"input": 2.5, "output": 10},
                "gpt-4o-mini": {"input": 0.15, "output": 0.6},
            },
        }
        return {
            "_meta": {
                "source": source,
                "generatedAt": int((now_s - age_hours * 3600) * 1000),
                "providers": list(providers),
                "units": "USD per 1M tokens",
            },
            "providers": providers,
        }

    return _make
