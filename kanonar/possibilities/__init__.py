# Candidate action generation
from .model import Possibility
from .helpers import AtomView, BuilderHelpers
from .builders import DirectedBuilder, PossibilityBuilder, SelfBuilder, default_builders
from .registry import DEFAULT_REGISTRY, BuilderRegistry, generate_possibilities

__all__ = [
    "Possibility",
    "AtomView",
    "BuilderHelpers",
    "DirectedBuilder",
    "PossibilityBuilder",
    "SelfBuilder",
    "default_builders",
    "DEFAULT_REGISTRY",
    "BuilderRegistry",
    "generate_possibilities",
]
