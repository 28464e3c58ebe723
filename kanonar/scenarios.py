"""
Built-in demo scenarios, as plain world documents.

Each scenario is the same shape ``kanonar.loader.build_world`` accepts, so
they double as examples for authoring tools.
"""
from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from .archetypes.catalog import ArchetypeCatalog, default_archetypes
from .loader import build_world
from .world import WorldState

SCENARIOS: Dict[str, Dict[str, Any]] = {
    "breach": {
        "locations": [
            {
                "id": "yard", "name": "Breached yard",
                "hazard": 0.55, "visibility": 0.5, "exits": 0.4, "cover": 0.6,
                "surveillance": 0.2, "crowding": 0.3, "privacy": 0.4,
                "affordances": ["cover", "medkit"],
                "cells": [[1, 1, 0.2], [5, 5, 0.8]],
                "size": [8, 8],
            },
        ],
        "agents": [
            {
                "id": "mara", "name": "Mara", "location_id": "yard", "position": [1, 1],
                "traits": {"paranoia": 0.6, "safety_need": 0.8, "care": 0.4, "curiosity": 0.3},
                "emotions": {"fear": 0.7},
                "body": {"stress": 0.5},
                "biography": {"violence": 0.4},
                "archetype": {"actual_id": "hermit"},
                "relationships": {"oskar": {"trust": 0.7, "closeness": 0.5}, "vel": {"trust": 0.2, "hostility": 0.4}},
            },
            {
                "id": "oskar", "name": "Oskar", "location_id": "yard", "position": [2, 1],
                "traits": {"care": 0.8, "empathy": 0.6, "discipline": 0.7, "power_drive": 0.4},
                "archetype": {"actual_id": "guardian"},
                "relationships": {"mara": {"trust": 0.7, "obligation": 0.6}, "vel": {"trust": 0.4}},
            },
            {
                "id": "vel", "name": "Vel", "location_id": "yard", "position": [5, 5],
                "traits": {"power_drive": 0.8, "ambition": 0.7, "paranoia": 0.4, "ambiguity_tolerance": 0.6},
                "emotions": {"anger": 0.5},
                "biography": {"betrayal": 0.6},
                "archetype": {"actual_id": "rebel"},
                "relationships": {"mara": {"trust": 0.2, "hostility": 0.5}, "oskar": {"respect": 0.6}},
            },
        ],
        "scene": {"id": "breach", "metrics": {"threat": 0.6, "cohesion": 0.5}, "max_ticks": 40},
    },
    "council": {
        "locations": [
            {
                "id": "hall", "name": "Council hall",
                "hazard": 0.05, "visibility": 0.9, "exits": 0.8, "surveillance": 0.7,
                "publicness": 0.8, "privacy": 0.2, "crowding": 0.6, "norm_pressure": 0.7,
                "norms": ["noViolence"],
                "goal_bias": {"gain_status": 0.2},
            },
        ],
        "agents": [
            {
                "id": "ilse", "name": "Ilse", "location_id": "hall",
                "traits": {"ambition": 0.8, "power_drive": 0.7, "norm_sensitivity": 0.6, "sociability": 0.6},
                "biography": {"hierarchy": 0.6},
                "archetype": {"actual_id": "leader"},
            },
            {
                "id": "brann", "name": "Brann", "location_id": "hall",
                "traits": {"discipline": 0.8, "norm_sensitivity": 0.8, "care": 0.5},
                "biography": {"hierarchy": 0.8},
                "archetype": {"actual_id": "soldier"},
                "relationships": {"ilse": {"respect": 0.8, "obligation": 0.6}},
            },
            {
                "id": "tam", "name": "Tam", "location_id": "hall",
                "traits": {"curiosity": 0.8, "sociability": 0.7, "ambiguity_tolerance": 0.7},
                "info_need": 0.7,
                "archetype": {"actual_id": "trickster"},
            },
        ],
        "leader_id": "ilse",
        "scene": {"id": "council", "metrics": {"threat": 0.2, "cohesion": 0.6}, "max_ticks": 30},
    },
    "standoff": {
        "locations": [
            {"id": "alley", "name": "Dead-end alley", "hazard": 0.3, "exits": 0.1,
             "visibility": 0.4, "privacy": 0.8, "affordances": ["locked"]},
        ],
        "agents": [
            {
                "id": "rook", "name": "Rook", "location_id": "alley",
                "traits": {"power_drive": 0.7, "paranoia": 0.5},
                "emotions": {"anger": 0.6},
                "archetype": {"actual_id": "soldier"},
                "relationships": {"nell": {"trust": 0.3, "hostility": 0.5}},
            },
            {
                "id": "nell", "name": "Nell", "location_id": "alley",
                "traits": {"safety_need": 0.7, "care": 0.5, "ambiguity_tolerance": 0.2},
                "emotions": {"fear": 0.5},
                "trauma": {"self": 0.4, "world": 0.5},
                "archetype": {"actual_id": "martyr"},
                "relationships": {"rook": {"trust": 0.3, "taboos": ["attack"]}},
            },
        ],
        "scene": {"id": "standoff", "metrics": {"threat": 0.5, "cohesion": 0.3}, "max_ticks": 20},
    },
}


def list_scenarios() -> List[str]:
    return list(SCENARIOS.keys())


def scenario_document(name: str) -> Dict[str, Any]:
    """Deep copy of a scenario document, safe to edit."""
    if name not in SCENARIOS:
        raise KeyError(f"Unknown scenario {name!r}; available: {', '.join(SCENARIOS)}")
    return copy.deepcopy(SCENARIOS[name])


def load_scenario(name: str, archetypes: Optional[ArchetypeCatalog] = None) -> WorldState:
    """Build a fresh world for a built-in scenario; shadows come from ``archetypes`` (built-in by default)."""
    return build_world(scenario_document(name), archetypes if archetypes is not None else default_archetypes())
