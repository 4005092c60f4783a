"""
Table-driven finite-state machine.

A machine is described entirely by data: an initial state, a factory for its
initial context, and a table mapping (state, event) to a Transition. The
`transition` function is pure. It never mutates the snapshot it receives and
never executes side effects; effects are returned as data for the caller to
interpret.

Events that have no entry for the current state are ignored: the snapshot is
returned unchanged with no effects. A driver that sends an out-of-order event
can therefore never corrupt a machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, Mapping, Optional, Tuple, TypeVar

C = TypeVar("C")

# Context updaters are pure: they receive the current context and return a new one.
Action = Callable[[Any], Any]


@dataclass(frozen=True)
class Effect:
    """A side effect requested by a transition, described as data."""
    name: str
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Transition:
    target: Enum
    actions: Tuple[Action, ...] = ()
    # Effect builders get the *updated* context so payloads see final values.
    effects: Tuple[Callable[[Any], Effect], ...] = ()


@dataclass(frozen=True)
class Snapshot(Generic[C]):
    state: Enum
    context: C


@dataclass(frozen=True)
class TransitionResult(Generic[C]):
    snapshot: Snapshot[C]
    effects: Tuple[Effect, ...]
    changed: bool


@dataclass(frozen=True)
class MachineDefinition(Generic[C]):
    name: str
    initial: Enum
    context_factory: Callable[[], C]
    transitions: Mapping[Tuple[Enum, Enum], Transition]

    def initial_snapshot(self) -> Snapshot[C]:
        return Snapshot(state=self.initial, context=self.context_factory())

    def accepts(self, state: Enum, event: Enum) -> bool:
        return (state, event) in self.transitions

    def events_for(self, state: Enum) -> Tuple[Enum, ...]:
        """Events that have an effect in `state`, in table order."""
        return tuple(ev for (st, ev) in self.transitions if st == state)


def transition(definition: MachineDefinition[C], snapshot: Snapshot[C], event: Enum) -> TransitionResult[C]:
    """Apply `event` to `snapshot` and return the resulting snapshot and effects."""
    rule: Optional[Transition] = definition.transitions.get((snapshot.state, event))
    if rule is None:
        return TransitionResult(snapshot=snapshot, effects=(), changed=False)

    context = snapshot.context
    for action in rule.actions:
        context = action(context)

    effects = tuple(build(context) for build in rule.effects)
    return TransitionResult(
        snapshot=Snapshot(state=rule.target, context=context),
        effects=effects,
        changed=True,
    )


def build_table(rows) -> Dict[Tuple[Enum, Enum], Transition]:
    """
    Build a transition table from (state, event, transition) rows.

    Duplicate (state, event) pairs are rejected so a machine stays deterministic.
    """
    table: Dict[Tuple[Enum, Enum], Transition] = {}
    for state, event, rule in rows:
        key = (state, event)
        if key in table:
            raise ValueError(f"Duplicate transition for {state.value} + {event.value}")
        table[key] = rule
    return table
