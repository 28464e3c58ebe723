"""
Immutable builder registry and the generator entry point.
"""
from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Tuple

from ..atoms.atomset import AtomSet
from ..config import PossibilityConfig
from .builders import PossibilityBuilder, default_builders
from .helpers import BuilderHelpers
from .model import Possibility

logger = logging.getLogger(__name__)


class BuilderRegistry:
    """
    Ordered, immutable collection of possibility builders.

    ``with_builder`` and ``without`` return new registries, so a registry
    can be shared between runs and tests without leaking changes.

    Example:
        >>> registry = DEFAULT_REGISTRY.without("attack")
        >>> "attack" in registry
        False
    """

    def __init__(self, builders: Iterable[PossibilityBuilder] = ()):
        self._builders: Tuple[PossibilityBuilder, ...] = tuple(builders)

    @property
    def builders(self) -> Tuple[PossibilityBuilder, ...]:
        return self._builders

    def kinds(self) -> List[str]:
        return [b.kind for b in self._builders]

    def get(self, kind: str) -> Optional[PossibilityBuilder]:
        for builder in self._builders:
            if builder.kind == kind:
                return builder
        return None

    def with_builder(self, builder: PossibilityBuilder) -> "BuilderRegistry":
        """New registry with ``builder`` added, replacing any builder of the same kind."""
        kept = [b for b in self._builders if b.kind != builder.kind]
        return BuilderRegistry(kept + [builder])

    def without(self, kind: str) -> "BuilderRegistry":
        return BuilderRegistry(b for b in self._builders if b.kind != kind)

    def __iter__(self) -> Iterator[PossibilityBuilder]:
        return iter(self._builders)

    def __len__(self) -> int:
        return len(self._builders)

    def __contains__(self, kind: object) -> bool:
        return any(b.kind == kind for b in self._builders)

    def __repr__(self) -> str:
        return f"BuilderRegistry({', '.join(self.kinds())})"


DEFAULT_REGISTRY = BuilderRegistry(default_builders())


def generate_possibilities(
    self_id: str,
    atoms: AtomSet,
    registry: Optional[BuilderRegistry] = None,
    config: Optional[PossibilityConfig] = None,
) -> List[Possibility]:
    """
    Run every builder in the registry against one snapshot.

    Args:
        self_id: Acting agent
        atoms: The agent's snapshot atoms
        registry: Builders to run (defaults to ``DEFAULT_REGISTRY``)
        config: Prior/context blend settings

    Returns:
        Possibilities in registry order
    """
    registry = registry if registry is not None else DEFAULT_REGISTRY
    helpers = BuilderHelpers(atoms, config)
    out: List[Possibility] = []
    for builder in registry:
        out.extend(builder.build(self_id, atoms, helpers))
    logger.debug(f"Generated {len(out)} possibilities for {self_id}")
    return out
