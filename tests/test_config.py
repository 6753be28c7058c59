"""Tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from workflow_manager.config import Config, load_settings


@pytest.fixture()
def home(tmp_path, monkeypatch) -> Path:
    """Point the global config lookup at an empty temporary home."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: fake_home))
    return fake_home


def test_set_get_unset(tmp_path, home) -> None:
    """Test config round trip through the YAML file."""
    config = Config(config_dir=tmp_path / "cfg")
    config.set("scheduler.interval", "2")
    assert config.get("scheduler.interval") == "2"
    assert yaml.safe_load((tmp_path / "cfg" / "config.yaml").read_text()) == {"scheduler.interval": "2"}

    reloaded = Config(config_dir=tmp_path / "cfg")
    assert reloaded.get("scheduler.interval") == "2"
    reloaded.unset("scheduler.interval")
    assert reloaded.get("scheduler.interval") is None
    assert reloaded.get("missing", "fallback") == "fallback"


def test_local_overrides_global(tmp_path, home) -> None:
    """Test local values win and global values fill gaps."""
    Config(use_global=True).set("store.path", "/global/state.yaml")
    Config(use_global=True).set("scheduler.interval", "9")

    local = Config(config_dir=tmp_path / "local")
    local.set("scheduler.interval", "3")
    assert local.get("store.path") == "/global/state.yaml"
    assert local.get("scheduler.interval") == "3"
    assert local.list() == {"store.path": "/global/state.yaml", "scheduler.interval": "3"}


def test_broken_local_config_raises(tmp_path, home) -> None:
    cfg = tmp_path / "cfg"
    cfg.mkdir()
    (cfg / "config.yaml").write_text("a: [unclosed")
    with pytest.raises(ValueError):
        Config(config_dir=cfg)


def test_default_settings(tmp_path, home) -> None:
    """Test defaults when nothing is configured."""
    settings = load_settings(Config(config_dir=tmp_path / "cfg"))
    assert settings.store_path == tmp_path / "cfg" / "state.yaml"
    assert settings.sweep_interval == 5.0
    assert settings.rules.invite_during_transfer
    assert settings.rules.transfer_during_invite


def test_settings_from_values(tmp_path, home) -> None:
    config = Config(config_dir=tmp_path / "cfg")
    config.set("store.path", str(tmp_path / "data.yaml"))
    config.set("scheduler.interval", "0.5")
    config.set("rules.invite_during_transfer", "no")
    settings = load_settings(config)
    assert settings.store_path == tmp_path / "data.yaml"
    assert settings.sweep_interval == 0.5
    assert not settings.rules.invite_during_transfer
    assert settings.rules.transfer_during_invite


@pytest.mark.parametrize(
    ("key", "value"),
    [("scheduler.interval", "soon"), ("scheduler.interval", "0"), ("rules.transfer_during_invite", "maybe")],
)
def test_invalid_settings(tmp_path, home, key, value) -> None:
    config = Config(config_dir=tmp_path / "cfg")
    config.set(key, value)
    with pytest.raises(ValueError):
        load_settings(config)
