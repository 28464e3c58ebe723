"""
Possibility builders, one per action kind.

A builder is any object with a ``kind`` attribute and a pure
``build(self_id, atoms, helpers) -> list[Possibility]`` method. The two base
classes below cover the common shapes:

- ``SelfBuilder``: one possibility for the agent itself, magnitude from
  situational context (blended with ``act:prior:<self>:<act>`` when such a
  prior exists);
- ``DirectedBuilder``: one possibility per other agent found in the
  snapshot, magnitude blended from ``act:prior:<self>:<other>:<act>`` and
  dyad context.

Subclasses return ``None`` from ``context`` to skip a candidate.
"""
from __future__ import annotations

from typing import List, Optional, Protocol, Tuple, runtime_checkable

from ..actions import get_action
from ..atoms.atomset import AtomSet
from ..atoms.model import AtomTrace, Namespace, atom_id
from .helpers import AtomView, BuilderHelpers
from .model import Possibility

NO_VIOLENCE = atom_id(Namespace.CON, "protocol", metric="noViolence")
SILENCE = atom_id(Namespace.CON, "protocol", metric="silence")


@runtime_checkable
class PossibilityBuilder(Protocol):
    kind: str

    def build(self, self_id: str, atoms: AtomSet, helpers: BuilderHelpers) -> List[Possibility]:
        ...


def _make(
    kind: str,
    self_id: str,
    magnitude: float,
    view: AtomView,
    target_id: Optional[str] = None,
    confidence: float = 1.0,
    blocked_by: Tuple[str, ...] = (),
    requires: Tuple[str, ...] = (),
    notes: Tuple[str, ...] = (),
) -> Possibility:
    spec = get_action(kind)
    pid = f"{kind}:{self_id}:{target_id}" if target_id else f"{kind}:{self_id}"
    return Possibility(
        id=pid,
        kind=kind,
        label=spec.label,
        family=spec.family,
        magnitude=BuilderHelpers.clamp01(magnitude),
        confidence=BuilderHelpers.clamp01(confidence),
        subject_id=self_id,
        target_id=target_id,
        blocked_by=tuple(blocked_by),
        requires=tuple(requires),
        trace=AtomTrace(tuple(view.used), tuple(notes)),
    )


class SelfBuilder:
    """Base for self-only actions."""

    kind = ""

    def context(self, self_id: str, view: AtomView, helpers: BuilderHelpers) -> Optional[float]:
        raise NotImplementedError

    def blockers(self, self_id: str) -> Tuple[str, ...]:
        return ()

    def requirements(self, self_id: str) -> Tuple[str, ...]:
        return ()

    def build(self, self_id: str, atoms: AtomSet, helpers: BuilderHelpers) -> List[Possibility]:
        view = helpers.view()
        ctx = self.context(self_id, view, helpers)
        if ctx is None:
            return []
        notes = [f"context={ctx:.3f}"]
        magnitude = ctx
        if helpers.has_prior(self_id, self.kind):
            prior = helpers.prior(view, self_id, self.kind)
            magnitude = helpers.blend(prior, ctx)
            notes.append(f"prior={prior:.3f}")
        return [_make(self.kind, self_id, magnitude, view,
                      blocked_by=self.blockers(self_id),
                      requires=self.requirements(self_id),
                      notes=tuple(notes))]


class DirectedBuilder:
    """Base for actions aimed at another agent."""

    kind = ""

    def context(self, self_id: str, other_id: str, view: AtomView, helpers: BuilderHelpers) -> Optional[float]:
        raise NotImplementedError

    def blockers(self, self_id: str, other_id: str) -> Tuple[str, ...]:
        return ()

    def build(self, self_id: str, atoms: AtomSet, helpers: BuilderHelpers) -> List[Possibility]:
        out = []
        for other_id in helpers.others(self_id):
            view = helpers.view()
            ctx = self.context(self_id, other_id, view, helpers)
            if ctx is None:
                continue
            prior = helpers.prior(view, self_id, self.kind, other_id)
            confidence = 1.0 - 0.5 * view.tom(self_id, other_id, "uncertainty", 0.0)
            out.append(_make(
                self.kind, self_id, helpers.blend(prior, ctx), view,
                target_id=other_id,
                confidence=confidence,
                blocked_by=self.blockers(self_id, other_id),
                notes=(f"prior={prior:.3f}", f"context={ctx:.3f}"),
            ))
        return out


# -- self-only -------------------------------------------------------------

class HideBuilder(SelfBuilder):
    kind = "hide"

    def context(self, self_id, view, helpers):
        cover = view.world(self_id, "cover")
        if cover < helpers.config.min_magnitude:
            return None
        vis = view.world(self_id, "visibility", 0.5)
        return 0.7 * cover + 0.3 * (1.0 - vis)

    def requirements(self, self_id):
        return (atom_id(Namespace.WORLD, "cover", self_id),)


class EscapeBuilder(SelfBuilder):
    kind = "escape"

    def context(self, self_id, view, helpers):
        exits = view.world(self_id, "exits")
        escape = view.world(self_id, "escape")
        floor = helpers.config.min_magnitude
        if exits < floor and escape < floor:
            return None
        return 0.5 * exits + 0.5 * escape

    def blockers(self, self_id):
        return (atom_id(Namespace.CON, "exitBlocked", self_id),)

    def requirements(self, self_id):
        return (atom_id(Namespace.WORLD, "exits", self_id),)


class WaitBuilder(SelfBuilder):
    kind = "wait"

    def context(self, self_id, view, helpers):
        unc = view.ctx(self_id, "uncertainty")
        danger = view.ctx(self_id, "danger")
        return max(0.1, 0.25 + 0.25 * unc - 0.2 * danger)


class RestBuilder(SelfBuilder):
    kind = "rest"

    def context(self, self_id, view, helpers):
        fatigue = view.get(atom_id(Namespace.BODY, "fatigue", self_id), 0.0)
        pain = view.get(atom_id(Namespace.BODY, "pain", self_id), 0.0)
        danger = view.ctx(self_id, "danger")
        value = 0.5 * fatigue + 0.3 * pain + 0.2 * (1.0 - danger)
        if danger > 0.8:
            value *= 0.3
        return value


class ObserveBuilder(SelfBuilder):
    kind = "observe"

    def context(self, self_id, view, helpers):
        unc = view.ctx(self_id, "uncertainty")
        need = view.get(atom_id(Namespace.NEED, "info", self_id), 0.0)
        vis = view.world(self_id, "visibility", 0.5)
        return 0.5 * unc + 0.3 * need + 0.2 * vis


# -- other-directed --------------------------------------------------------

class TalkBuilder(DirectedBuilder):
    kind = "talk"

    def context(self, self_id, other_id, view, helpers):
        clos = view.rel(self_id, other_id, "closeness", 0.3)
        trust = view.rel(self_id, other_id, "trust", 0.5)
        privacy = view.ctx(self_id, "privacy", 0.5)
        danger = view.ctx(self_id, "danger")
        return 0.35 * clos + 0.25 * trust + 0.25 * privacy + 0.15 * (1.0 - danger)

    def blockers(self, self_id, other_id):
        return (SILENCE,)


class AskInfoBuilder(DirectedBuilder):
    kind = "ask_info"

    def context(self, self_id, other_id, view, helpers):
        need = view.get(atom_id(Namespace.NEED, "info", self_id), 0.0)
        unc = view.ctx(self_id, "uncertainty")
        trust = view.rel(self_id, other_id, "trust", 0.5)
        return 0.5 * need + 0.3 * unc + 0.2 * trust


class NegotiateBuilder(DirectedBuilder):
    kind = "negotiate"

    def context(self, self_id, other_id, view, helpers):
        host = view.rel(self_id, other_id, "hostility", 0.0)
        respect = view.rel(self_id, other_id, "respect", 0.5)
        privacy = view.ctx(self_id, "privacy", 0.5)
        scarcity = view.ctx(self_id, "scarcity")
        return 0.3 * host + 0.3 * respect + 0.2 * privacy + 0.2 * scarcity

    def blockers(self, self_id, other_id):
        return (SILENCE,)


class TradeBuilder(DirectedBuilder):
    kind = "trade"

    def context(self, self_id, other_id, view, helpers):
        scarcity = view.ctx(self_id, "scarcity")
        trust = view.rel(self_id, other_id, "trust", 0.5)
        market = view.affordance(self_id, "trade")
        return 0.4 * scarcity + 0.3 * trust + 0.3 * market


class HelpBuilder(DirectedBuilder):
    kind = "help"

    def context(self, self_id, other_id, view, helpers):
        trust = view.rel(self_id, other_id, "trust", 0.5)
        clos = view.rel(self_id, other_id, "closeness", 0.3)
        oblig = view.rel(self_id, other_id, "obligation", 0.2)
        vuln = view.tom(self_id, other_id, "vulnerability", 0.5)
        return 0.35 * trust + 0.25 * clos + 0.2 * oblig + 0.2 * vuln


class TreatBuilder(DirectedBuilder):
    kind = "treat"

    def context(self, self_id, other_id, view, helpers):
        injury = view.world(self_id, "injury", 0.0, target=other_id)
        if injury < helpers.config.min_magnitude:
            return None
        clos = view.rel(self_id, other_id, "closeness", 0.3)
        kit = view.affordance(self_id, "medkit")
        return 0.5 * injury + 0.3 * clos + 0.2 * kit


class GuardBuilder(DirectedBuilder):
    kind = "guard"

    def context(self, self_id, other_id, view, helpers):
        clos = view.rel(self_id, other_id, "closeness", 0.3)
        vuln = view.tom(self_id, other_id, "vulnerability", 0.5)
        danger = view.ctx(self_id, "danger")
        return 0.4 * clos + 0.3 * vuln + 0.3 * danger


class EscortBuilder(DirectedBuilder):
    kind = "escort"

    def context(self, self_id, other_id, view, helpers):
        clos = view.rel(self_id, other_id, "closeness", 0.3)
        danger = view.ctx(self_id, "danger")
        exits = view.world(self_id, "exits", 0.0)
        return 0.35 * clos + 0.35 * danger + 0.3 * exits

    def blockers(self, self_id, other_id):
        return (atom_id(Namespace.CON, "exitBlocked", self_id),)


class InvestigateBuilder(DirectedBuilder):
    kind = "investigate"

    def context(self, self_id, other_id, view, helpers):
        unc = view.ctx(self_id, "uncertainty")
        tom_unc = view.tom(self_id, other_id, "uncertainty", 0.5)
        threat = view.tom(self_id, other_id, "threat", 0.1)
        return 0.4 * unc + 0.35 * tom_unc + 0.25 * threat


class AccuseBuilder(DirectedBuilder):
    kind = "accuse"

    def context(self, self_id, other_id, view, helpers):
        host = view.rel(self_id, other_id, "hostility", 0.0)
        harmed = view.event(self_id, "harmedBy", other_id)
        trust = view.rel(self_id, other_id, "trust", 0.5)
        return 0.45 * host + 0.35 * harmed + 0.2 * (1.0 - trust)


class ThreatenBuilder(DirectedBuilder):
    kind = "threaten"

    def context(self, self_id, other_id, view, helpers):
        host = view.rel(self_id, other_id, "hostility", 0.0)
        harmed = view.event(self_id, "harmedBy", other_id)
        threat = view.tom(self_id, other_id, "threat", 0.1)
        anger = view.get(atom_id(Namespace.FEEL, "anger", self_id), 0.0)
        return 0.35 * host + 0.30 * harmed + 0.20 * threat + 0.15 * anger


class CommandBuilder(DirectedBuilder):
    kind = "command"

    def context(self, self_id, other_id, view, helpers):
        leader = view.ctx(self_id, "leader")
        dominance = view.tom(self_id, other_id, "dominance", 0.5)
        respect = view.rel(self_id, other_id, "respect", 0.5)
        return 0.5 * leader + 0.3 * (1.0 - dominance) + 0.2 * respect


class AttackBuilder(DirectedBuilder):
    kind = "attack"

    def context(self, self_id, other_id, view, helpers):
        host = view.rel(self_id, other_id, "hostility", 0.0)
        harmed = view.event(self_id, "harmedBy", other_id)
        anger = view.get(atom_id(Namespace.FEEL, "anger", self_id), 0.0)
        return 0.5 * host + 0.3 * harmed + 0.2 * anger

    def blockers(self, self_id, other_id):
        return (NO_VIOLENCE, atom_id(Namespace.CON, "taboo", self_id, other_id, "attack"))


def default_builders() -> Tuple[PossibilityBuilder, ...]:
    return (
        HideBuilder(),
        EscapeBuilder(),
        WaitBuilder(),
        RestBuilder(),
        ObserveBuilder(),
        TalkBuilder(),
        AskInfoBuilder(),
        NegotiateBuilder(),
        TradeBuilder(),
        HelpBuilder(),
        TreatBuilder(),
        GuardBuilder(),
        EscortBuilder(),
        InvestigateBuilder(),
        AccuseBuilder(),
        ThreatenBuilder(),
        CommandBuilder(),
        AttackBuilder(),
    )
