# =============================================================================
# FILE: backresp/modules/safety_game.py
"""
Safety Game Engine - Game construction G_ρ^TS(C) and attractor solving

A safety game partitions the states between two players:
- Safe controls the coalition C and wins by avoiding Bad forever
- Reach controls S \\ C and wins by forcing a visit to Bad

Construction (Definition 3.1):
- States on ρ outside C may only follow ρ (single successor next-on-trace)
- All other states keep their original transitions
- The last trace state keeps all of its transitions

Solving: Safe's winning region is S \\ Attr_Reach(Bad), where the attractor is
the least fixed point computed by a backward worklist. Complexity O(|S| + |→|).

Reference: Grädel, Thomas & Wilke (2002) "Automata, Logics, and Infinite Games"
"""
# =============================================================================

from collections import deque
from types import MappingProxyType
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Set
import logging

from ..exceptions import MalformedInputError
from .transition_system import Counterexample, State, TransitionSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class SafetyGame:
    """
    Immutable safety game arena

    Attributes:
    -----------
    safe_states : FrozenSet[State]
        S_Safe (the coalition)
    reach_states : FrozenSet[State]
        S_Reach = S \\ S_Safe
    transitions : Mapping[State, FrozenSet[State]]
        Read-only restricted successor relation, one entry per state
    initial : State
        Initial state s0
    bad_states : FrozenSet[State]
        Target set Bad
    """
    safe_states: FrozenSet[State]
    reach_states: FrozenSet[State]
    transitions: Mapping[State, FrozenSet[State]]
    initial: State
    bad_states: FrozenSet[State]

    @property
    def states(self) -> FrozenSet[State]:
        return self.safe_states | self.reach_states

    @classmethod
    def build(
        cls,
        ts: TransitionSystem,
        rho: Counterexample,
        coalition: Iterable[State]
    ) -> 'SafetyGame':
        """
        Build G_ρ^TS(C)

        Parameters:
        -----------
        ts : TransitionSystem
            Underlying system (not mutated)
        rho : Counterexample
            Counterexample trace
        coalition : Iterable[State]
            Coalition C, controlled by Safe

        Returns:
        --------
        game : SafetyGame

        Raises:
        -------
        MalformedInputError : If the initial state is unset
        """
        if ts.initial is None:
            raise MalformedInputError("Cannot build a safety game: initial state is not set")

        coalition = frozenset(coalition)
        states = frozenset(ts.states)
        safe_states = coalition & states
        reach_states = states - coalition

        trace = rho.states
        next_on_trace: Dict[State, State] = {}
        for idx in range(len(trace) - 1):
            # first occurrence wins on looping traces
            next_on_trace.setdefault(trace[idx], trace[idx + 1])

        transitions: Dict[State, FrozenSet[State]] = {}
        for state in states:
            # edges into unknown states are dropped
            successors = ts.successors(state) & states
            if not successors:
                transitions[state] = frozenset()
            elif state not in coalition and state in next_on_trace:
                transitions[state] = frozenset([next_on_trace[state]])
            else:
                transitions[state] = successors

        return cls(
            safe_states=safe_states,
            reach_states=reach_states,
            transitions=MappingProxyType(transitions),
            initial=ts.initial,
            bad_states=frozenset(ts.bad_states)
        )

    def reach_attractor(self, target: Optional[Iterable[State]] = None) -> FrozenSet[State]:
        """
        Attr_Reach(target): states from which Reach can force a visit to target

        Worklist algorithm: a Reach state joins as soon as one successor is in
        the attractor; a Safe state joins once all its successors are. Each
        state is only examined when one of its successors joins, so states
        without successors never join unless they are targets.

        Parameters:
        -----------
        target : Iterable[State], optional
            Target set (default: bad_states)

        Returns:
        --------
        attractor : FrozenSet[State]
        """
        target = self.bad_states if target is None else frozenset(target)

        predecessors: Dict[State, Set[State]] = {}
        for state, successors in self.transitions.items():
            for succ in successors:
                predecessors.setdefault(succ, set()).add(state)

        # Safe states: number of successors still outside the attractor
        remaining = {
            state: len(self.transitions.get(state, ()))
            for state in self.safe_states
        }

        attractor = set(target)
        queue = deque(attractor)

        while queue:
            current = queue.popleft()
            for pred in predecessors.get(current, ()):
                if pred in attractor:
                    continue
                if pred in self.safe_states:
                    remaining[pred] -= 1
                    if remaining[pred] > 0:
                        continue
                attractor.add(pred)
                queue.append(pred)

        return frozenset(attractor)

    def solve(self) -> FrozenSet[State]:
        """
        Compute Safe's winning region W = S \\ Attr_Reach(Bad)

        Returns:
        --------
        winning_region : FrozenSet[State]
        """
        return self.states - self.reach_attractor()

    def does_safe_win(self) -> bool:
        """Safe wins iff s0 ∈ W"""
        return self.initial in self.solve()

    def summary(self) -> str:
        edges = sum(len(succs) for succs in self.transitions.values())
        return (
            f"SafetyGame(safe={len(self.safe_states)}, reach={len(self.reach_states)}, "
            f"edges={edges}, initial={self.initial!r})"
        )
