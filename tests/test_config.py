"""
Tests for tuning configuration, presets and the config manager.
"""
import pytest

from kanonar.config import (
    ConfigManager,
    CostConfig,
    EngineConfig,
    EngineSettings,
    get_preset,
    list_presets,
    read_config_file,
)
from kanonar.errors import ConfigurationError


class TestEngineConfig:
    """Test config construction and serialization."""

    def test_defaults(self):
        """Defaults match the documented coefficients."""
        config = EngineConfig()
        assert config.goals.top_k == 5
        assert config.possibilities.prior_weight == 0.4
        assert config.tom.decay_rate == 0.05
        assert config.scoring.multiplier_min == 0.35

    def test_from_dict_ignores_unknown(self):
        """Unknown sections and keys are ignored."""
        config = EngineConfig.from_dict({
            "cost": {"w_time": 0.5, "not_a_field": 3},
            "mystery": {"x": 1},
        })
        assert config.cost.w_time == 0.5
        assert EngineConfig.from_dict(None) == EngineConfig()

    def test_values_clamped(self):
        """Out-of-range values are clamped on construction."""
        assert CostConfig(w_time=4.0, threat_discount=-1.0).w_time == 1.0
        assert CostConfig(threat_discount=-1.0).threat_discount == 0.0
        settings = EngineSettings(event_log_max=100, event_log_keep=500, report_every=0)
        assert settings.event_log_keep == 100
        assert settings.report_every == 1

    def test_merged(self):
        """Merging returns a new config and leaves the original alone."""
        base = EngineConfig()
        merged = base.merged({"tom": {"decay_rate": 0.2}})
        assert merged.tom.decay_rate == 0.2
        assert base.tom.decay_rate == 0.05

    @pytest.mark.parametrize("name", ["tuning.yaml", "tuning.json"])
    def test_save_and_load(self, tmp_path, name):
        """Configs survive a file round trip in either format."""
        path = str(tmp_path / "sub" / name)
        config = EngineConfig().merged({"goals": {"top_k": 3}})
        config.save(path)
        assert EngineConfig.load(path) == config

    def test_load_missing_returns_none(self, tmp_path):
        """A missing file is not an error."""
        assert EngineConfig.load(str(tmp_path / "absent.yaml")) is None

    def test_load_unparseable_raises(self, tmp_path):
        """A broken file is a setup error."""
        path = tmp_path / "bad.yaml"
        path.write_text("cost: [unclosed\n")
        with pytest.raises(ConfigurationError):
            EngineConfig.load(str(path))

    def test_load_non_mapping_raises(self, tmp_path):
        """The document root must be a mapping."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            EngineConfig.load(str(path))

    def test_raw_file_keeps_only_set_keys(self, tmp_path):
        """Reading a file gives back only what it sets."""
        path = tmp_path / "tuning.yaml"
        path.write_text("tom: {decay_rate: 0.07}\n")
        assert read_config_file(str(path)) == {"tom": {"decay_rate": 0.07}}
        empty = tmp_path / "empty.yaml"
        empty.write_text("")
        assert read_config_file(str(empty)) == {}
        assert read_config_file(str(tmp_path / "absent.yaml")) is None


class TestPresets:
    """Test built-in presets."""

    def test_list(self):
        """All presets are listed."""
        assert list_presets() == ["default", "cautious", "volatile"]

    def test_get(self):
        """Presets apply on top of the defaults."""
        cautious = get_preset("Cautious")
        assert cautious.cost.threat_discount == 0.5
        assert cautious.tom.decay_rate == 0.05
        assert get_preset("default") == EngineConfig()
        assert get_preset("reckless") is None


class TestConfigManager:
    """Test file-then-preset lookup."""

    def test_file_shadows_preset(self, tmp_path):
        """A custom file with a preset's name wins over the preset."""
        manager = ConfigManager(str(tmp_path))
        custom = EngineConfig().merged({"drift": {"drift_scale": 0.5}})
        manager.save("cautious", custom)

        fresh = ConfigManager(str(tmp_path))
        assert fresh.get("cautious").drift.drift_scale == 0.5

    def test_falls_back_to_preset(self, tmp_path):
        """Without a file the preset is used; unknown names give None."""
        manager = ConfigManager(str(tmp_path))
        assert manager.get("volatile").drift.drift_scale == 0.2
        assert manager.get("nothing") is None

    def test_list_available(self, tmp_path):
        """Custom files are listed next to presets."""
        (tmp_path / "night_shift.json").write_text("{}")
        (tmp_path / "notes.txt").write_text("ignored")
        names = ConfigManager(str(tmp_path)).list_available()
        assert "night_shift" in names
        assert "default" in names
        assert "notes" not in names
