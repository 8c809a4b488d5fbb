"""Tests for the configuration loader."""

import pytest
from uiloom.core.config import (
    get_config_path,
    get_config_value,
    get_settings,
    reload_configs,
    resolve_config_file,
)


CUSTOM_CONFIG = """\
converter:
  indent: "    "
engine:
  max_workers: 2
state:
  defaults:
    widgetTree:
      local: setState
      reducer: bloc
      externalStore: riverpod
      contextDerived: inheritedLookup
"""


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point the loader at a temporary config directory."""
    monkeypatch.setenv("UILOOM_CONFIG_DIR", str(tmp_path))
    reload_configs()
    yield tmp_path
    monkeypatch.delenv("UILOOM_CONFIG_DIR")
    reload_configs()


class TestBundledConfig:
    def test_bundled_defaults(self):
        settings = get_settings()
        assert settings.converter.indent == "  "
        assert settings.engine.max_workers == 4
        assert settings.state.defaults["widgetTree"]["reducer"] == "bloc"

    def test_dotted_lookup(self):
        assert get_config_value("engine.max_workers") == 4
        assert get_config_value("engine.missing", "fallback") == "fallback"

    def test_bundled_mapping_file_resolves(self):
        path = resolve_config_file(get_settings().mappings.default_file)
        assert path.name == "widget_mappings.yaml"
        assert path.exists()


class TestOverride:
    def test_env_override(self, config_dir):
        (config_dir / "uiloom.yaml").write_text(CUSTOM_CONFIG, encoding="utf-8")
        reload_configs()
        assert get_config_path() == config_dir
        settings = get_settings()
        assert settings.converter.indent == "    "
        assert settings.engine.max_workers == 2
        # Sections left out keep their defaults.
        assert settings.converter.component_module == "react-native"

    def test_missing_file_uses_defaults(self, config_dir):
        settings = get_settings()
        assert settings.engine.max_workers == 4
        assert get_config_value("engine.max_workers") is None

    def test_absolute_paths_are_kept(self, config_dir, tmp_path):
        target = tmp_path / "extra.yaml"
        assert resolve_config_file(str(target)) == target
