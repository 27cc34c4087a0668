"""
Canonical workflow types (``supply_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document state machines.  Every aggregate with a
lifecycle (SRN, DispatchOrder, GRN, Return, Commission) declares one
``Workflow``; services call ``Workflow.require`` before changing status so
that illegal source states are rejected from a single transition table.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass

from supply_kernel.exceptions import InvalidStateError


@dataclass(frozen=True)
class Transition:
    """One edge of a workflow, named by the action that takes it."""
    from_state: str
    to_state: str
    action: str


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``; no transition
    leaves a terminal state.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"{self.name}: initial state {self.initial_state} not in states")
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"{self.name}: transition {t.action} references unknown state")
            if t.from_state in self.terminal_states:
                raise ValueError(f"{self.name}: terminal state {t.from_state} has outgoing transition")

    def allowed_targets(self, from_state: str) -> frozenset[str]:
        return frozenset(t.to_state for t in self.transitions if t.from_state == from_state)

    def find(self, from_state: str, to_state: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states

    def require(
        self,
        entity_id: object,
        from_state: str,
        to_state: str,
        action: str,
    ) -> Transition:
        """
        Return the transition from ``from_state`` to ``to_state``.

        Raises:
            InvalidStateError: If the table has no such edge.
        """
        transition = self.find(from_state, to_state)
        if transition is None:
            raise InvalidStateError(
                entity_type=self.name,
                entity_id=str(entity_id),
                current_state=from_state,
                action=action,
            )
        return transition
