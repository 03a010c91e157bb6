import sys

import pytest

from opencode_quota.config import settings
from opencode_quota.pricing.models import PricingSnapshot, empty_snapshot, validate_snapshot
from opencode_quota.pricing.source import (
    MODELSDEV_API_URL,
    PricingSourceConfig,
    resolve_pricing_source,
    snapshot_cache_path,
)


class TestValidateSnapshot:
    def test_valid(self, snapshot_dict):
        check = validate_snapshot(snapshot_dict())
        assert check.valid
        assert check.reason is None
        assert check.snapshot.providers["openai"]["gpt-4o"].output == 10

    def test_unknown_fields_ignored(self, snapshot_dict):
        raw = snapshot_dict()
        raw["_meta"]["comment"] = "hand edited"
        raw["extra"] = [1, 2, 3]
        assert validate_snapshot(raw).valid

    def test_missing_source_rejected(self, snapshot_dict):
        raw = snapshot_dict()
        del raw["_meta"]["source"]
        check = validate_snapshot(raw)
        assert not check.valid
        assert "source" in check.reason

    def test_non_string_source_rejected(self, snapshot_dict):
        raw = snapshot_dict()
        raw["_meta"]["source"] = 42
        assert not validate_snapshot(raw).valid

    @pytest.mark.parametrize("generated_at", ["1767225600000", None, True])
    def test_non_numeric_generated_at_rejected(self, snapshot_dict, generated_at):
        raw = snapshot_dict()
        raw["_meta"]["generatedAt"] = generated_at
        assert not validate_snapshot(raw).valid

    def test_providers_must_be_object(self, snapshot_dict):
        raw = snapshot_dict()
        raw["providers"] = ["openai"]
        assert not validate_snapshot(raw).valid

    def test_unparseable_models_skipped(self, snapshot_dict):
        raw = snapshot_dict(providers={"openai": {"gpt-4o": {"input": 2.5}, "gpt-x": {"input": "n/a"}, "old": None}})
        check = validate_snapshot(raw)
        assert check.valid
        assert list(check.snapshot.providers["openai"]) == ["gpt-4o"]

    def test_meta_providers_must_be_list(self, snapshot_dict):
        raw = snapshot_dict()
        raw["_meta"]["providers"] = "openai"
        assert not validate_snapshot(raw).valid

    def test_not_an_object(self):
        check = validate_snapshot([])
        assert not check.valid
        assert "list" in check.reason

    def test_round_trip_uses_wire_keys(self, snapshot_dict):
        snapshot = validate_snapshot(snapshot_dict()).snapshot
        again = PricingSnapshot.model_validate_json(snapshot.to_json())
        assert again == snapshot
        assert '"_meta"' in snapshot.to_json()
        assert '"generatedAt"' in snapshot.to_json()

    def test_empty_snapshot(self):
        snapshot = empty_snapshot()
        assert snapshot.meta.source == "(unknown)"
        assert snapshot.meta.generated_at == 0
        assert snapshot.providers == {}


class TestResolvePricingSource:
    def test_defaults(self):
        resolved = resolve_pricing_source()
        assert resolved.source == "network"
        assert resolved.url == MODELSDEV_API_URL

    def test_bundled(self):
        assert resolve_pricing_source(PricingSourceConfig(pricing_source="bundled")).source == "bundled"

    def test_unknown_source_is_network(self):
        assert resolve_pricing_source(PricingSourceConfig(pricing_source="carrier-pigeon")).source == "network"

    def test_override_url(self):
        url = "https://pricing.example.com/api.json"
        assert resolve_pricing_source(PricingSourceConfig(pricing_url=f"  {url} ")).url == url

    @pytest.mark.parametrize("bad", ["", "   ", "not a url", "ftp://example.com/api.json", "https://"])
    def test_invalid_url_falls_back(self, bad):
        assert resolve_pricing_source(PricingSourceConfig(pricing_url=bad)).url == MODELSDEV_API_URL


class TestCachePath:
    def test_settings_override(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "cache_dir", str(tmp_path))
        assert snapshot_cache_path() == tmp_path / "opencode-quota" / "modelsdev-pricing.json"

    @pytest.mark.skipif(sys.platform == "win32", reason="XDG layout")
    def test_xdg_cache_home(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "cache_dir", None)
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg"))
        assert snapshot_cache_path() == tmp_path / "xdg" / "opencode-quota" / "modelsdev-pricing.json"
