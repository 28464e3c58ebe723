"""
Tests for the command-line runner.
"""
import json

import pytest

from kanonar.cli import build_parser, build_run, main, resolve_config


class TestCli:
    """Test argument handling and output."""

    def test_text_output(self, capsys):
        """Each tick prints one line with every agent's choice."""
        assert main(["--scenario", "breach", "--ticks", "2", "--seed", "1"]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[0].startswith("[tick 0] mara: ")
        assert lines[1].startswith("[tick 1] ")
        assert "oskar: " in lines[0] and "vel: " in lines[0]

    def test_json_output(self, capsys):
        """--json prints one parseable object per tick."""
        assert main(["--scenario", "standoff", "--ticks", "3", "--seed", "2", "--json"]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 3
        first = json.loads(lines[0])
        assert set(first) == {"tick", "chosen", "events", "diagnostics"}
        assert set(first["chosen"]) == {"rook", "nell"}

    def test_preset_and_metrics(self, capsys):
        """Presets load and metrics go to stderr."""
        assert main(["--ticks", "1", "--preset", "cautious", "--metrics"]) == 0
        assert "Ticks: 1" in capsys.readouterr().err

    def test_config_file(self, tmp_path, capsys):
        """A tuning file is merged on top of the defaults."""
        path = tmp_path / "tuning.yaml"
        path.write_text("goals: {top_k: 2}\n")
        assert main(["--ticks", "1", "--config", str(path)]) == 0

    @pytest.mark.parametrize("argv", [
        ["--preset", "reckless"],
        ["--config", "/nonexistent/tuning.yaml"],
        ["--world", "/nonexistent/world.yaml"],
    ])
    def test_setup_errors(self, argv, capsys):
        """Setup problems exit with status 2 and a message."""
        assert main(argv) == 2
        assert capsys.readouterr().err.startswith("error: ")

    def test_world_file(self, tmp_path, capsys):
        """A world file replaces the scenario."""
        path = tmp_path / "world.yaml"
        path.write_text("agents:\n  - id: solo\n")
        assert main(["--world", str(path), "--ticks", "1"]) == 0
        assert capsys.readouterr().out.startswith("[tick 0] solo: ")

    def test_unknown_scenario_rejected(self):
        """Scenario names are validated by the parser."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--scenario", "invasion"])

    def test_config_file_layers_over_preset(self, tmp_path):
        """Only the keys a tuning file sets replace preset values."""
        path = tmp_path / "tuning.yaml"
        path.write_text("tom: {decay_rate: 0.07}\n")
        config = resolve_config(build_parser().parse_args(["--preset", "cautious", "--config", str(path)]))
        assert config.tom.decay_rate == 0.07
        assert config.cost.threat_discount == 0.5
        assert config.goals.veto_boost == 2.0

    def test_world_file_gets_shadow_archetypes(self, tmp_path):
        """World files loaded from the command line get catalog shadows."""
        path = tmp_path / "world.yaml"
        path.write_text("agents:\n  - id: mara\n    archetype: {actual_id: hermit}\n")
        run = build_run(build_parser().parse_args(["--world", str(path)]))
        assert run.world.get_agent("mara").archetype.shadow_id == "rebel"
