"""Tests for configuration loading, validation and settings lookup."""

import json

import pytest

import diffgate.config.manager as mgr_module
from diffgate.config import (
    ConfigManager,
    ConfigValidationError,
    LocalFileConfigProvider,
    Settings,
    get_default_config,
)
from diffgate.config.schema import deep_merge, validate_config
from diffgate.config.validation import validate_repo_path


def test_deep_merge_nested_and_none_preserves():
    base = {"providers": {"openai": {"api_key": "secret", "base_url": "u"}}, "a": 1}
    updates = {"providers": {"openai": {"api_key": None, "base_url": "v"}}, "b": 2}

    result = deep_merge(base, updates)

    assert result["providers"]["openai"] == {"api_key": "secret", "base_url": "v"}
    assert result["a"] == 1
    assert result["b"] == 2
    assert base["providers"]["openai"]["base_url"] == "u"


def test_defaults_validate():
    validated = validate_config(get_default_config())
    assert validated["debounce_ms"] == 150
    assert validated["server_port"] == 3001


@pytest.mark.parametrize(
    "overrides,needle",
    [
        ({"debounce_ms": -1}, "debounce_ms"),
        ({"poll_interval_s": 0}, "poll_interval_s"),
        ({"server_port": "abc"}, "server_port"),
        ({"watch_ignore_dirs": "node_modules"}, "watch_ignore_dirs"),
    ],
)
def test_invalid_values_are_reported(overrides, needle):
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config({**get_default_config(), **overrides})
    assert any(needle in err for err in exc_info.value.errors)


@pytest.mark.asyncio
async def test_missing_file_is_created_with_empty_user_config(tmp_path):
    path = tmp_path / "config.json"
    provider = LocalFileConfigProvider(path, defaults=get_default_config())

    config = await provider.load()

    assert json.loads(path.read_text()) == {}
    assert config["debounce_ms"] == 150


@pytest.mark.asyncio
async def test_user_values_override_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"debounce_ms": 300, "repo_path": "/work/app"}))
    manager = ConfigManager(LocalFileConfigProvider(path, defaults=get_default_config()))

    await manager.initialize()

    assert manager.get("debounce_ms") == 300
    assert manager.get("repo_path") == "/work/app"
    assert manager.get("server_port") == 3001


@pytest.mark.asyncio
async def test_broken_json_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{ broken")
    provider = LocalFileConfigProvider(path, defaults={"debounce_ms": 150})

    assert await provider.load() == {"debounce_ms": 150}


@pytest.mark.asyncio
async def test_invalid_structure_is_refused(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"debounce_ms": -5}))
    provider = LocalFileConfigProvider(path, defaults=get_default_config())

    with pytest.raises(ValueError):
        await provider.load()


@pytest.mark.asyncio
async def test_update_persists_only_user_values(tmp_path):
    path = tmp_path / "config.json"
    manager = ConfigManager(LocalFileConfigProvider(path, defaults=get_default_config()))
    await manager.initialize()
    seen = []
    manager.register_change_callback(seen.append)

    await manager.update({"debounce_ms": 250})

    assert json.loads(path.read_text()) == {"debounce_ms": 250}
    assert manager.get("debounce_ms") == 250
    assert seen and seen[-1]["debounce_ms"] == 250


def test_change_callback_errors_are_contained(tmp_path):
    manager = ConfigManager(LocalFileConfigProvider(tmp_path / "config.json"))
    calls = []

    def broken(_config):
        raise RuntimeError("boom")

    manager.register_change_callback(broken)
    manager.register_change_callback(calls.append)
    manager._on_config_changed({"debounce_ms": 10})

    assert calls == [{"debounce_ms": 10}]


def test_create_config_manager_uses_env_dir(isolated_environment):
    manager = mgr_module.create_config_manager()
    try:
        assert manager.provider.config_path == isolated_environment / "config.json"
        assert mgr_module.get_config_manager() is manager
    finally:
        mgr_module._config_manager = None


def test_settings_fall_back_to_env(monkeypatch):
    monkeypatch.setenv("DIFF_REPO_PATH", "/env/repo")
    monkeypatch.setenv("SERVER_PORT", "4000")
    monkeypatch.setenv("CORS_ORIGIN", "http://a.test, http://b.test")
    monkeypatch.setenv("DISCARD_STALE_REFRESHES", "yes")
    monkeypatch.setenv("GIT_TIMEOUT_S", "2.5")

    settings = Settings()

    assert settings.repo_path == "/env/repo"
    assert settings.server_port == 4000
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.discard_stale_refreshes is True
    assert settings.git_timeout_s == 2.5
    assert settings.debounce_ms == 150
    assert settings.openai_api_key is None


@pytest.mark.asyncio
async def test_settings_prefer_config_over_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DIFF_REPO_PATH", "/env/repo")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "repo_path": "/config/repo",
                "providers": {"openai": {"api_key": "sk-config"}},
                "models": {"quiz": "small-model"},
            }
        )
    )
    manager = ConfigManager(LocalFileConfigProvider(path, defaults=get_default_config()))
    await manager.initialize()

    settings = Settings(manager)

    assert settings.repo_path == "/config/repo"
    assert settings.openai_api_key == "sk-config"
    assert settings.quiz_model == "small-model"
    assert settings.commit_message_model == "gpt-5-mini"


def test_validate_repo_path(tmp_path):
    assert validate_repo_path(None) == []
    assert "does not exist" in validate_repo_path(str(tmp_path / "missing"))[0]
    assert "not a git working copy" in validate_repo_path(str(tmp_path))[0]
    (tmp_path / ".git").mkdir()
    assert validate_repo_path(str(tmp_path)) == []
