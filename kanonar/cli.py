from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from .archetypes.catalog import default_archetypes
from .config import EngineConfig, get_preset, list_presets, read_config_file
from .engine.orchestrator import SimulationRun, TickResult
from .errors import ConfigurationError
from .logging_config import configure_logging
from .loader import load_world_file
from .scenarios import list_scenarios, load_scenario

logger = logging.getLogger(__name__)


def resolve_config(args: argparse.Namespace) -> EngineConfig:
    """Preset (or defaults) with the keys set in the config file layered on top."""
    config = EngineConfig()
    if args.preset:
        preset = get_preset(args.preset)
        if preset is None:
            raise ConfigurationError(f"Unknown preset {args.preset!r}; available: {', '.join(list_presets())}")
        config = preset
    if args.config:
        overrides = read_config_file(args.config)
        if overrides is None:
            raise ConfigurationError(f"Config file not found: {args.config}")
        config = config.merged(overrides)
    return config


def build_run(args: argparse.Namespace) -> SimulationRun:
    """
    Set up the run the arguments describe.

    Raises:
        ConfigurationError: For an unknown preset or a missing or broken file
    """
    config = resolve_config(args)
    archetypes = default_archetypes()
    if args.world:
        world = load_world_file(args.world, archetypes)
    else:
        world = load_scenario(args.scenario, archetypes)
    return SimulationRun(world, config=config, archetype_catalog=archetypes, seed=args.seed)


def _format_tick(result: TickResult) -> str:
    chosen = " | ".join(f"{agent}: {action}" for agent, action in result.chosen().items())
    line = f"[tick {result.tick}] {chosen or '(no active agents)'}"
    diag = result.diagnostics
    if diag is not None and diag.skipped:
        line += f"  (skipped: {', '.join(diag.skipped)})"
    return line


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Kanonar - run a character decision simulation tick by tick"
    )

    # World
    ap.add_argument("--scenario", default="breach", choices=list_scenarios(),
                    help="Built-in demo scenario")
    ap.add_argument("--world", help="Load the world from a YAML/JSON file instead of a scenario")
    ap.add_argument("--ticks", type=int, default=10, help="Number of ticks to run")
    ap.add_argument("--seed", type=int, default=None, help="RNG seed (drift rolls)")

    # Tuning
    ap.add_argument("--config", help="Tuning config file (YAML or JSON)")
    ap.add_argument("--preset", help=f"Tuning preset ({', '.join(list_presets())})")

    # Output
    ap.add_argument("--log-level", default="WARNING", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    ap.add_argument("--log-dir", help="Also write rotating human and JSON logs here")
    ap.add_argument("--json", action="store_true", help="Print one JSON object per tick")
    ap.add_argument("--metrics", action="store_true", help="Print stage latency summary at the end")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    run_id = f"{os.path.basename(args.world) if args.world else args.scenario}-{args.seed}"
    configure_logging(level=args.log_level, log_dir=args.log_dir, run_id=run_id)

    try:
        run = build_run(args)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    logger.info(f"Running {args.ticks} ticks of {args.world or args.scenario}")
    for result in run.run(args.ticks):
        if args.json:
            print(json.dumps({
                "tick": result.tick,
                "chosen": result.chosen(),
                "events": len(result.events),
                "diagnostics": result.diagnostics.to_dict() if result.diagnostics else None,
            }, sort_keys=True))
        else:
            print(_format_tick(result))

    scene = run.world.scene
    if scene is not None and scene.outcome is not None and not args.json:
        status = "success" if scene.outcome.success else "failure"
        print(f"[scene {scene.id}] {status}: {scene.outcome.reason}")
    if args.metrics:
        print(run.metrics.summary(), file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
