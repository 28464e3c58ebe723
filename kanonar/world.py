"""
In-memory world model consumed and mutated by the tick orchestrator.

Static content (characters, locations, archetypes, goal catalogs) is
loaded by external tooling; this module only defines the runtime shapes.
"""
from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field, asdict
from typing import Any, Deque, Dict, List, Optional, Tuple

from .errors import UnknownAgentError
from .tom.table import ToMTable
from .util import clamp01

logger = logging.getLogger(__name__)

RELATION_HISTORY_MAX = 50


@dataclass
class RelationEvent:
    """Something an agent did that touched this relationship."""
    tick: int
    kind: str            # "harm", "help", "support", "threat", ...
    actor_id: str
    intensity: float = 0.5


@dataclass
class Relationship:
    """
    One agent's stance toward another.

    Attributes:
        trust: How much the holder trusts the other (0 to 1)
        closeness: Intimacy / familiarity (0 to 1)
        hostility: Open antagonism (0 to 1)
        obligation: Felt duty toward the other (0 to 1)
        respect: Regard for the other's standing (0 to 1)
        taboos: Action kinds the holder will never direct at the other
        history: Recent interaction log, newest last
    """
    trust: float = 0.5
    closeness: float = 0.3
    hostility: float = 0.0
    obligation: float = 0.2
    respect: float = 0.5
    taboos: List[str] = field(default_factory=list)
    history: List[RelationEvent] = field(default_factory=list)

    METRICS = ("trust", "closeness", "hostility", "obligation", "respect")

    def adjust(self, metric: str, delta: float) -> float:
        value = clamp01(getattr(self, metric) + delta)
        setattr(self, metric, value)
        return value

    def remember(self, event: RelationEvent) -> None:
        self.history.append(event)
        if len(self.history) > RELATION_HISTORY_MAX:
            self.history = self.history[-RELATION_HISTORY_MAX:]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BodyState:
    """Bodily state, all in [0, 1]."""
    fatigue: float = 0.2
    pain: float = 0.0
    stress: float = 0.25
    hp: float = 1.0


@dataclass
class PsychState:
    """
    Affective and moral state.

    ``trauma`` holds accumulated load per domain: self, others, world,
    system.
    """
    emotions: Dict[str, float] = field(default_factory=lambda: {
        "fear": 0.1, "anger": 0.1, "shame": 0.0, "guilt": 0.0, "sadness": 0.1, "hope": 0.5,
    })
    trauma: Dict[str, float] = field(default_factory=lambda: {
        "self": 0.0, "others": 0.0, "world": 0.0, "system": 0.0,
    })
    info_need: float = 0.3

    def emotion(self, name: str) -> float:
        return self.emotions.get(name, 0.0)

    @property
    def avg_trauma(self) -> float:
        values = [self.trauma.get(k, 0.0) for k in ("self", "others", "world", "system")]
        return sum(values) / 4.0


@dataclass
class CognitionProfile:
    """Inputs to the observer's theory-of-mind core."""
    metacog: float = 0.5
    evidence_quality: float = 0.5
    obs_noise: float = 0.3
    report_noise: float = 0.3
    dark_exposure: float = 0.0
    model_calibration: float = 0.5
    memory_fidelity: float = 0.5
    network_closeness: float = 0.5
    info_hygiene: float = 0.5


@dataclass
class ArchetypeState:
    """
    Identity-archetype assignment of an agent.

    Mutated by the drift engine only.
    """
    actual_id: str
    self_id: str
    shadow_id: Optional[str] = None
    shadow_activation: float = 0.0
    tension: float = 0.0


@dataclass
class IdentityProfile:
    """Observed vs self-perceived archetype and the gap between them."""
    observed_id: str
    self_id: str
    tension_self_observed: float = 0.0


@dataclass
class Episode:
    """Structured narrative memory of one executed action."""
    tick: int
    action: str
    target_id: Optional[str]
    success: float
    salience: float
    tags: List[str] = field(default_factory=list)


class NarrativeMemory:
    """Bounded episode log; text rendering is left to external tooling."""

    def __init__(self, max_episodes: int = 20):
        self.episodes: Deque[Episode] = deque(maxlen=max(1, max_episodes))

    @property
    def max_episodes(self) -> int:
        return self.episodes.maxlen or 0

    def resize(self, max_episodes: int) -> None:
        """Change the bound, keeping the newest episodes."""
        max_episodes = max(1, max_episodes)
        if max_episodes != self.episodes.maxlen:
            self.episodes = deque(self.episodes, maxlen=max_episodes)

    def add(self, episode: Episode) -> None:
        self.episodes.append(episode)

    def recent(self, n: int = 5) -> List[Episode]:
        return list(self.episodes)[-n:]

    def __len__(self) -> int:
        return len(self.episodes)


@dataclass
class AgentState:
    """
    A simulated character.

    Created at world init from static definitions, mutated every tick and
    never destroyed. ``collapsed`` agents stay in the world but act no more.
    """
    id: str
    name: str = ""
    location_id: Optional[str] = None
    position: Optional[Tuple[int, int]] = None
    traits: Dict[str, float] = field(default_factory=dict)
    body: BodyState = field(default_factory=BodyState)
    psych: PsychState = field(default_factory=PsychState)
    cognition: CognitionProfile = field(default_factory=CognitionProfile)
    biography: Dict[str, float] = field(default_factory=dict)
    relationships: Dict[str, Relationship] = field(default_factory=dict)
    archetype: Optional[ArchetypeState] = None
    identity: Optional[IdentityProfile] = None
    goal_ecology: Any = None
    narrative: NarrativeMemory = field(default_factory=NarrativeMemory)
    manual_atoms: List[Any] = field(default_factory=list)
    collapsed: bool = False
    last_action: Optional[str] = None
    repeat_count: int = 0

    def relationship(self, other_id: str) -> Relationship:
        """Get or create the relationship toward ``other_id``."""
        rel = self.relationships.get(other_id)
        if rel is None:
            rel = Relationship()
            self.relationships[other_id] = rel
        return rel


@dataclass
class Location:
    """
    A place agents can be in.

    ``cells`` maps grid coordinates to local hazard; ``size`` bounds the
    grid for distance normalization. ``goal_bias`` lets authors nudge goal
    priorities (goal definition id -> signed delta) while agents are here.
    """
    id: str
    name: str = ""
    hazard: float = 0.0
    privacy: float = 0.5
    publicness: float = 0.5
    surveillance: float = 0.2
    crowding: float = 0.3
    cover: float = 0.0
    visibility: float = 0.7
    exits: float = 0.5
    scarcity: float = 0.0
    norm_pressure: float = 0.3
    norms: List[str] = field(default_factory=list)
    affordances: List[str] = field(default_factory=list)
    cells: Dict[Tuple[int, int], float] = field(default_factory=dict)
    size: Tuple[int, int] = (10, 10)
    goal_bias: Dict[str, float] = field(default_factory=dict)

    @property
    def risk(self) -> float:
        """Location risk index in [0, 1]."""
        return clamp01(0.6 * self.hazard + 0.2 * (1.0 - self.exits) + 0.2 * (1.0 - self.visibility))

    def cell_hazard(self, position: Optional[Tuple[int, int]], default: float = 0.5) -> float:
        if position is None or not self.cells:
            return default
        return clamp01(self.cells.get(tuple(position), self.hazard))

    def max_distance(self) -> float:
        w, h = self.size
        return max(1.0, math.hypot(max(w - 1, 1), max(h - 1, 1)))


@dataclass
class SceneResult:
    success: bool
    reason: str


@dataclass
class Scene:
    """
    Scenario-level bookkeeping.

    ``threat`` falling to zero ends the scene in success; ``cohesion``
    falling to zero ends it in failure; running past ``max_ticks`` times out.
    """
    id: str
    metrics: Dict[str, float] = field(default_factory=lambda: {"threat": 0.5, "cohesion": 0.5})
    max_ticks: int = 50
    done: bool = False
    outcome: Optional[SceneResult] = None


@dataclass
class WorldState:
    """Everything the orchestrator reads and mutates in place each tick."""
    tick: int = 0
    agents: Dict[str, AgentState] = field(default_factory=dict)
    locations: Dict[str, Location] = field(default_factory=dict)
    tom: ToMTable = field(default_factory=ToMTable)
    leader_id: Optional[str] = None
    legitimacy: float = 0.5
    scene: Optional[Scene] = None

    def add_agent(self, agent: AgentState) -> AgentState:
        self.agents[agent.id] = agent
        return agent

    def add_location(self, location: Location) -> Location:
        self.locations[location.id] = location
        return location

    def get_agent(self, agent_id: str) -> AgentState:
        agent = self.agents.get(agent_id)
        if agent is None:
            raise UnknownAgentError(agent_id)
        return agent

    def find_agent(self, agent_id: Optional[str]) -> Optional[AgentState]:
        if agent_id is None:
            return None
        return self.agents.get(agent_id)

    def location_of(self, agent: AgentState) -> Optional[Location]:
        if agent.location_id is None:
            return None
        return self.locations.get(agent.location_id)

    def present_with(self, agent: AgentState) -> List[AgentState]:
        """
        Other agents the given agent can interact with.

        Agents without a location see everyone; otherwise only agents at
        the same location count.
        """
        out = []
        for other in self.agents.values():
            if other.id == agent.id:
                continue
            if agent.location_id is None or other.location_id == agent.location_id:
                out.append(other)
        return out
