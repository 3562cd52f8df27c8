# =============================================================================
# FILE: backresp/modules/transition_system.py
"""
Transition System & Counterexample - Input structures for responsibility analysis

TS = (S, →, s0, Bad):
- S: finite set of hashable state identifiers
- →: successor relation (absent key means no outgoing edges)
- s0: single designated initial state (may be unset)
- Bad: states whose reachability violates the safety property

A counterexample ρ = s0 … sk is a loop-free path ending in a bad state.

Reference: Baier et al. (2024) "Backward Responsibility in Transition Systems
Using General Power Indices", arXiv:2402.01539
"""
# =============================================================================

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Hashable, Iterator, List, Optional, Set
import logging

logger = logging.getLogger(__name__)

State = Hashable


@dataclass
class TransitionSystem:
    """
    Lightweight explicit-state transition system

    Attributes:
    -----------
    states : Set[State]
        All states S
    transitions : Dict[State, Set[State]]
        Adjacency map s → {t | s → t}
    initial : Optional[State]
        Initial state s0
    bad_states : Set[State]
        Target states Bad ⊆ S
    """
    states: Set[State] = field(default_factory=set)
    transitions: Dict[State, Set[State]] = field(default_factory=dict)
    initial: Optional[State] = None
    bad_states: Set[State] = field(default_factory=set)

    def add_state(self, state: State) -> None:
        self.states.add(state)

    def add_transition(self, source: State, target: State) -> None:
        self.transitions.setdefault(source, set()).add(target)

    def add_bad_state(self, state: State) -> None:
        self.bad_states.add(state)

    def set_initial(self, state: State) -> None:
        self.initial = state

    def successors(self, state: State) -> FrozenSet[State]:
        """Successors of `state` (empty for dead ends and unknown states)"""
        return frozenset(self.transitions.get(state, ()))

    def branching_degree(self, state: State) -> int:
        return len(self.transitions.get(state, ()))

    @property
    def transition_count(self) -> int:
        """Total number of directed edges"""
        return sum(len(succs) for succs in self.transitions.values())

    def validate(self) -> List[str]:
        """
        Check structural invariants

        Returns:
        --------
        problems : List[str]
            Human-readable description of each violation (empty if valid)
        """
        problems = []

        if self.initial is None:
            problems.append("initial state is not set")
        elif self.initial not in self.states:
            problems.append(f"initial state {self.initial!r} is not a known state")

        for bad in sorted(self.bad_states - self.states, key=repr):
            problems.append(f"bad state {bad!r} is not a known state")

        for source, targets in self.transitions.items():
            if source not in self.states:
                problems.append(f"transition source {source!r} is not a known state")
            for target in targets:
                if target not in self.states:
                    problems.append(
                        f"transition {source!r} -> {target!r} targets an unknown state"
                    )

        return problems

    def summary(self) -> str:
        return (
            f"TransitionSystem(states={len(self.states)}, "
            f"transitions={self.transition_count}, initial={self.initial!r}, "
            f"bad={len(self.bad_states)})"
        )


class Counterexample:
    """
    Ordered trace ρ = s0 … sk demonstrating the violation

    Loop-freeness is assumed by the theory but not enforced here.
    """

    def __init__(self, states: Optional[List[State]] = None):
        self._states: List[State] = list(states) if states is not None else []

    def add(self, state: State) -> None:
        self._states.append(state)

    @property
    def states(self) -> List[State]:
        return list(self._states)

    def last(self) -> Optional[State]:
        return self._states[-1] if self._states else None

    def next_on_trace(self, state: State) -> Optional[State]:
        """Successor of the first occurrence of `state` on ρ (None for the last element)"""
        try:
            idx = self._states.index(state)
        except ValueError:
            return None
        if idx < len(self._states) - 1:
            return self._states[idx + 1]
        return None

    def is_loop_free(self) -> bool:
        return len(set(self._states)) == len(self._states)

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[State]:
        return iter(self._states)

    def __contains__(self, state: State) -> bool:
        return state in self._states

    def __eq__(self, other) -> bool:
        if not isinstance(other, Counterexample):
            return NotImplemented
        return self._states == other._states

    def __repr__(self) -> str:
        return "Counterexample(" + " -> ".join(str(s) for s in self._states) + ")"
