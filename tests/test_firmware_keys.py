import json

from opencode_quota.keys.firmware import (
    extract_firmware_key,
    get_firmware_key_diagnostics,
    has_firmware_api_key,
    resolve_env_template,
    resolve_firmware_api_key,
)


def firmware_config(api_key):
    return {"provider": {"firmware": {"options": {"apiKey": api_key}}}}


class TestExtract:
    def test_nested_key(self):
        assert extract_firmware_key(firmware_config("  fw-123  ")) == "fw-123"

    def test_missing_levels(self):
        assert extract_firmware_key({"provider": {"firmware": {}}}) is None
        assert extract_firmware_key({"provider": "firmware"}) is None
        assert extract_firmware_key(None) is None

    def test_blank_key(self):
        assert extract_firmware_key(firmware_config("   ")) is None

    def test_env_template(self, monkeypatch):
        monkeypatch.setenv("MY_FW_KEY", " from-env ")
        assert resolve_env_template("{env:MY_FW_KEY}") == "from-env"
        assert extract_firmware_key(firmware_config("{env:MY_FW_KEY}")) == "from-env"

    def test_env_template_unset(self, monkeypatch):
        monkeypatch.delenv("MY_FW_KEY", raising=False)
        assert resolve_env_template("{env:MY_FW_KEY}") is None

    def test_plain_value_untouched(self):
        assert resolve_env_template("literal") == "literal"


class TestResolve:
    def test_nothing_configured(self, isolated_dirs):
        assert resolve_firmware_api_key(cwd=isolated_dirs["project"]) is None
        assert has_firmware_api_key(cwd=isolated_dirs["project"]) is False

    def test_env_first(self, isolated_dirs, monkeypatch):
        monkeypatch.setenv("FIRMWARE_API_KEY", "second")
        monkeypatch.setenv("FIRMWARE_AI_API_KEY", "first")
        (isolated_dirs["project"] / "opencode.json").write_text(json.dumps(firmware_config("cfg")), encoding="utf-8")
        result = resolve_firmware_api_key(cwd=isolated_dirs["project"])
        assert result.key == "first"
        assert result.source == "env:FIRMWARE_AI_API_KEY"

    def test_blank_env_skipped(self, isolated_dirs, monkeypatch):
        monkeypatch.setenv("FIRMWARE_AI_API_KEY", "  ")
        monkeypatch.setenv("FIRMWARE_API_KEY", "second")
        assert resolve_firmware_api_key(cwd=isolated_dirs["project"]).source == "env:FIRMWARE_API_KEY"

    def test_local_config_before_global(self, isolated_dirs):
        (isolated_dirs["global"] / "opencode.json").write_text(json.dumps(firmware_config("global")), encoding="utf-8")
        (isolated_dirs["project"] / "opencode.jsonc").write_text(
            '{\n  // firmware\n  "provider": {"firmware": {"options": {"apiKey": "local"}}}\n}', encoding="utf-8"
        )
        result = resolve_firmware_api_key(cwd=isolated_dirs["project"])
        assert result.key == "local"
        assert result.source == "opencode.jsonc"

    def test_global_config(self, isolated_dirs):
        (isolated_dirs["global"] / "opencode.json").write_text(json.dumps(firmware_config("global")), encoding="utf-8")
        result = resolve_firmware_api_key(cwd=isolated_dirs["project"])
        assert result.key == "global"
        assert result.source == "opencode.json"

    def test_auth_json_fallback(self, isolated_dirs):
        (isolated_dirs["data"] / "auth.json").write_text(
            json.dumps({"firmware": {"type": "api", "key": " auth-key "}}), encoding="utf-8"
        )
        result = resolve_firmware_api_key(cwd=isolated_dirs["project"])
        assert result.key == "auth-key"
        assert result.source == "auth.json"

    def test_auth_json_wrong_type(self, isolated_dirs):
        (isolated_dirs["data"] / "auth.json").write_text(
            json.dumps({"firmware": {"type": "oauth", "key": "x"}}), encoding="utf-8"
        )
        assert resolve_firmware_api_key(cwd=isolated_dirs["project"]) is None


class TestDiagnostics:
    def test_reports_checked_paths(self, isolated_dirs, monkeypatch):
        monkeypatch.setenv("FIRMWARE_API_KEY", "")
        config_path = isolated_dirs["project"] / "opencode.json"
        config_path.write_text(json.dumps(firmware_config("cfg")), encoding="utf-8")

        diag = get_firmware_key_diagnostics(cwd=isolated_dirs["project"])
        assert diag.configured is True
        assert diag.source == "opencode.json"
        assert diag.checked_paths == ["env:FIRMWARE_API_KEY", str(config_path)]

    def test_not_configured(self, isolated_dirs):
        diag = get_firmware_key_diagnostics(cwd=isolated_dirs["project"])
        assert diag.configured is False
        assert diag.source is None
        assert diag.checked_paths == []
