"""Tests for the central configuration loader (weaklru/config.py)."""

import logging
import os

import pytest
import yaml

from weaklru.config import (
    CacheSettings,
    LoggingSettings,
    Settings,
    _apply_dict,
    _load_yaml,
    configure_logging,
    get_settings,
    reset_settings,
)


@pytest.fixture(autouse=True)
def _clean_settings():
    """Reset the singleton before and after each test."""
    reset_settings()
    yield
    reset_settings()


# ── YAML loading ────────────────────────────────────────


class TestLoadYaml:
    def test_loads_valid_yaml(self, tmp_path):
        f = tmp_path / "cfg.yaml"
        f.write_text("cache:\n  capacity: 1024\n")
        data = _load_yaml(f)
        assert data["cache"]["capacity"] == 1024

    def test_returns_empty_dict_for_missing_file(self, tmp_path):
        data = _load_yaml(tmp_path / "nonexistent.yaml")
        assert data == {}

    def test_returns_empty_dict_for_non_dict_yaml(self, tmp_path):
        f = tmp_path / "cfg.yaml"
        f.write_text("- item1\n- item2\n")
        data = _load_yaml(f)
        assert data == {}


# ── Settings defaults ───────────────────────────────────


class TestSettingsDefaults:
    def test_default_settings_have_expected_values(self):
        s = Settings()
        assert s.cache.capacity == 8192
        assert s.cache.eviction_policy == "tiered"
        assert s.cache.defer_weak_registration is False
        assert s.sweep.sweep_threshold == 2000
        assert s.sweep.force_threshold == 3000
        assert s.sweep.retain_threshold == 20000
        assert s.logging.level == "INFO"

    def test_to_dict(self):
        data = Settings().to_dict()
        assert data["cache"]["capacity"] == 8192
        assert set(data) == {"cache", "sweep", "logging"}


# ── get_settings() from YAML ────────────────────────────


class TestGetSettings:
    def _write_config(self, tmp_path, data):
        f = tmp_path / "config.yaml"
        f.write_text(yaml.dump(data))
        return f

    def test_loads_yaml_values(self, tmp_path):
        cfg = self._write_config(tmp_path, {
            "cache": {"capacity": 512, "eviction_policy": "sweep"},
            "sweep": {"retain_threshold": 100},
        })
        s = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        assert s.cache.capacity == 512
        assert s.cache.eviction_policy == "sweep"
        assert s.sweep.retain_threshold == 100

    def test_missing_yaml_uses_defaults(self, tmp_path):
        missing = tmp_path / "nope.yaml"
        s = get_settings(yaml_path=missing, env_path=tmp_path / ".env", _force_reload=True)
        assert s.cache.capacity == 8192

    def test_singleton_returns_same_object(self, tmp_path):
        cfg = self._write_config(tmp_path, {"cache": {"capacity": 64}})
        s1 = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        s2 = get_settings()
        assert s1 is s2

    def test_force_reload_reloads(self, tmp_path):
        cfg = self._write_config(tmp_path, {"cache": {"capacity": 64}})
        s1 = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        assert s1.cache.capacity == 64

        cfg.write_text(yaml.dump({"cache": {"capacity": 128}}))
        s2 = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        assert s2.cache.capacity == 128

    def test_unknown_sections_ignored(self, tmp_path):
        cfg = self._write_config(tmp_path, {"server": {"port": 1}})
        s = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        assert not hasattr(s, "server")


# ── Environment variable overrides ──────────────────────


class TestEnvOverrides:
    def _write_config(self, tmp_path, data):
        f = tmp_path / "config.yaml"
        f.write_text(yaml.dump(data))
        return f

    def test_env_override_int(self, tmp_path, monkeypatch):
        cfg = self._write_config(tmp_path, {"cache": {"capacity": 8192}})
        monkeypatch.setenv("WEAKLRU_CACHE_CAPACITY", "2048")
        s = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        assert s.cache.capacity == 2048

    def test_env_override_bool(self, tmp_path, monkeypatch):
        cfg = self._write_config(tmp_path, {})
        monkeypatch.setenv("WEAKLRU_CACHE_DEFER_WEAK_REGISTRATION", "true")
        s = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        assert s.cache.defer_weak_registration is True

    def test_env_override_string(self, tmp_path, monkeypatch):
        cfg = self._write_config(tmp_path, {})
        monkeypatch.setenv("WEAKLRU_CACHE_EVICTION_POLICY", "null")
        s = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        assert s.cache.eviction_policy == "null"

    def test_invalid_env_override_ignored(self, tmp_path, monkeypatch):
        cfg = self._write_config(tmp_path, {})
        monkeypatch.setenv("WEAKLRU_SWEEP_SWEEP_THRESHOLD", "lots")
        s = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        assert s.sweep.sweep_threshold == 2000

    def test_dotenv_file_is_loaded(self, tmp_path, monkeypatch):
        monkeypatch.delenv("WEAKLRU_CACHE_CAPACITY", raising=False)
        cfg = self._write_config(tmp_path, {})
        env = tmp_path / ".env"
        env.write_text("WEAKLRU_CACHE_CAPACITY=333\n")
        try:
            s = get_settings(yaml_path=cfg, env_path=env, _force_reload=True)
            assert s.cache.capacity == 333
        finally:
            os.environ.pop("WEAKLRU_CACHE_CAPACITY", None)

    def test_env_overrides_trump_yaml(self, tmp_path, monkeypatch):
        cfg = self._write_config(tmp_path, {"cache": {"capacity": 100}})
        monkeypatch.setenv("WEAKLRU_CACHE_CAPACITY", "200")
        s = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        assert s.cache.capacity == 200


# ── _apply_dict helper ──────────────────────────────────


class TestApplyDict:
    def test_applies_known_keys(self):
        target = CacheSettings()
        _apply_dict(target, {"capacity": 1234, "eviction_policy": "null"})
        assert target.capacity == 1234
        assert target.eviction_policy == "null"

    def test_ignores_unknown_keys(self):
        target = CacheSettings()
        _apply_dict(target, {"unknown_field": "value"})
        assert target.capacity == 8192  # unchanged


# ── Logging setup ───────────────────────────────────────


class TestConfigureLogging:
    def test_sets_level_and_single_handler(self):
        logger = configure_logging(LoggingSettings(level="debug", format="text"))
        configure_logging(LoggingSettings(level="debug", format="text"))
        assert logger.level == logging.DEBUG
        streams = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
        assert len(streams) == 1
        for handler in streams:
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


# ── Integration: real config/config.yaml ─────────────────


class TestRealConfig:
    def test_loads_project_config_yaml(self, monkeypatch):
        """Verify that the actual config/config.yaml is loaded correctly."""
        for var in ("WEAKLRU_CACHE_CAPACITY", "WEAKLRU_CACHE_EVICTION_POLICY"):
            monkeypatch.delenv(var, raising=False)
        s = get_settings(_force_reload=True)
        # These values match config/config.yaml
        assert s.cache.capacity == 8192
        assert s.cache.eviction_policy == "tiered"
        assert s.sweep.force_threshold == 3000
