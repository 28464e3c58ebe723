"""
Exception types for the kanonar engine.

Only setup problems are fatal. Everything that can go wrong inside a tick
is recovered locally and surfaced through ``TickDiagnostics`` instead.
"""
from __future__ import annotations


class KanonarError(Exception):
    """Base class for engine errors."""


class ConfigurationError(KanonarError):
    """Broken setup detected at startup (bad catalog, bad config file)."""


class GoalCatalogError(ConfigurationError):
    """The goal-axis catalog is missing or empty."""


class UnknownAgentError(KanonarError, KeyError):
    """A referenced agent id does not exist in the world."""

    def __init__(self, agent_id: str):
        super().__init__(agent_id)
        self.agent_id = agent_id

    def __str__(self) -> str:
        return f"Unknown agent: {self.agent_id}"
