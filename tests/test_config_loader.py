import json

import pytest

from cgplugin.config.loader import camel_to_snake, convert_keys, load_config, resolve_host_keys
from cgplugin.config.schema import Config, HostConfig
from cgplugin.utils.exceptions import ConfigurationError


def test_defaults_when_file_missing(tmp_path):
    config = load_config(tmp_path / "missing.json")
    assert config.client.timeout_ms == 2000
    assert config.client.max_attempts == 3
    assert config.client.max_requests_per_minute == 100
    assert config.host.listen_port == 8787


def test_camel_case_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"client": {"iframeUid": "f1", "signUrl": "https://x/sign", "timeoutMs": 500}}),
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.client.iframe_uid == "f1"
    assert config.client.sign_url == "https://x/sign"
    assert config.client.timeout_ms == 500


def test_env_overrides_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("CGPLUGIN_CLIENT__MAX_ATTEMPTS", "5")
    monkeypatch.setenv("CGPLUGIN_HOST__LISTEN_PORT", "9000")
    config = load_config(tmp_path / "missing.json")
    assert config.client.max_attempts == 5
    assert config.host.listen_port == 9000


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"client": {"timeoutMs": 0}}'])
def test_invalid_file_raises(tmp_path, content):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_resolve_host_keys_prefers_inline(tmp_path):
    key_file = tmp_path / "pub.pem"
    key_file.write_text("FROM FILE", encoding="utf-8")
    host = HostConfig(private_key="INLINE PRIVATE", public_key_path=str(key_file))
    assert resolve_host_keys(host) == ("INLINE PRIVATE", "FROM FILE")


def test_resolve_host_keys_missing(tmp_path):
    with pytest.raises(ConfigurationError) as exc_info:
        resolve_host_keys(HostConfig(public_key="x"))
    assert exc_info.value.details["field"] == "private_key_path"

    with pytest.raises(ConfigurationError):
        resolve_host_keys(HostConfig(private_key="x", public_key_path=str(tmp_path / "nope.pem")))


def test_key_conversion():
    assert camel_to_snake("assignableRoleIds") == "assignable_role_ids"
    assert convert_keys({"allowedPluginIds": ["p1"], "nested": [{"listenPort": 1}]}) == {
        "allowed_plugin_ids": ["p1"],
        "nested": [{"listen_port": 1}],
    }


def test_config_is_settings_model():
    assert Config.model_config["env_prefix"] == "CGPLUGIN_"
