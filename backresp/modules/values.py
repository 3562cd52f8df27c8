# =============================================================================
# FILE: backresp/modules/values.py
"""
Cooperative Game Value Functions - v: 2^S → {0, 1}

Definition 3.1 (Baier et al. 2024):
    v_pes(C) = 1  iff  Safe wins G_ρ^TS(C)
    v_opt(C) = 1  iff  Safe wins G_ρ^TS(C ∪ (S \\ ρ))

The pessimistic game lets every state outside C behave adversarially along ρ,
the optimistic game additionally hands every off-trace state to Safe.
"""
# =============================================================================

from typing import Callable, Dict, FrozenSet, Iterable
import logging

from .safety_game import SafetyGame
from .transition_system import Counterexample, State, TransitionSystem

logger = logging.getLogger(__name__)


def pessimistic_value(
    ts: TransitionSystem,
    rho: Counterexample,
    coalition: Iterable[State]
) -> int:
    """v_pes(C): 1 if coalition C alone keeps Safe winning, else 0"""
    game = SafetyGame.build(ts, rho, coalition)
    return 1 if game.does_safe_win() else 0


def optimistic_value(
    ts: TransitionSystem,
    rho: Counterexample,
    coalition: Iterable[State]
) -> int:
    """v_opt(C): 1 if C together with every off-trace state keeps Safe winning, else 0"""
    off_trace = set(ts.states) - set(rho)
    game = SafetyGame.build(ts, rho, set(coalition) | off_trace)
    return 1 if game.does_safe_win() else 0


class CoalitionValue:
    """
    Memoized characteristic function bound to one (ts, ρ) pair

    Parameters:
    -----------
    ts : TransitionSystem
        Underlying system
    rho : Counterexample
        Counterexample trace
    value_fn : Callable
        `pessimistic_value` or `optimistic_value`
    """

    def __init__(
        self,
        ts: TransitionSystem,
        rho: Counterexample,
        value_fn: Callable[[TransitionSystem, Counterexample, Iterable[State]], int]
    ):
        self.ts = ts
        self.rho = rho
        self.value_fn = value_fn
        self._cache: Dict[FrozenSet[State], int] = {}

    def __call__(self, coalition: Iterable[State]) -> int:
        key = frozenset(coalition)
        if key not in self._cache:
            self._cache[key] = self.value_fn(self.ts, self.rho, key)
        return self._cache[key]

    @property
    def n_evaluations(self) -> int:
        """Number of distinct coalitions solved so far"""
        return len(self._cache)
