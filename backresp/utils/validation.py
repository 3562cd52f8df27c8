"""
Validation utilities for safety games and responsibility results
"""
import numpy as np
from typing import Callable, FrozenSet, Dict, Any, Optional, Sequence
from dataclasses import dataclass
from itertools import combinations
from scipy.special import comb
import logging

from ..modules.responsibility import (
    PowerIndex,
    ResponsibilityMode,
    ResponsibilityResult,
    general_power_index,
    power_index_weights,
)
from ..modules.safety_game import SafetyGame
from ..modules.transition_system import Counterexample, State, TransitionSystem
from ..modules.values import CoalitionValue, optimistic_value

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a validation check"""
    is_valid: bool
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class GameValidator:
    """
    Validates safety-game solutions and cooperative game properties
    """

    def __init__(self, tolerance: float = 1e-9):
        self.tolerance = tolerance

    def validate_winning_region(
        self,
        game: SafetyGame,
        winning: Optional[FrozenSet[State]] = None
    ) -> ValidationResult:
        """
        Validate that W is closed under the players' moves

        - Safe states in W have at least one successor in W
        - Reach states in W have no successor outside W
        - Dead ends outside Bad may be in W
        - No bad state is in W

        Args:
            game: Solved safety game
            winning: Winning region (computed if omitted)

        Returns:
            ValidationResult with validation status
        """
        winning = game.solve() if winning is None else winning

        leaked_bad = winning & game.bad_states
        if leaked_bad:
            return ValidationResult(
                is_valid=False,
                error=f"Bad states in winning region: {sorted(leaked_bad, key=repr)}"
            )

        for state in winning:
            successors = game.transitions.get(state, frozenset())
            if not successors:
                continue
            if state in game.safe_states and not successors & winning:
                return ValidationResult(
                    is_valid=False,
                    error=f"Safe state {state!r} in W has no successor in W"
                )
            if state in game.reach_states and not successors <= winning:
                return ValidationResult(
                    is_valid=False,
                    error=f"Reach state {state!r} in W can leave W via "
                          f"{sorted(successors - winning, key=repr)}"
                )

        return ValidationResult(is_valid=True, details={'winning_size': len(winning)})

    def validate_monotonicity(
        self,
        value_fn: Callable[[FrozenSet[State]], float],
        players: Sequence[State],
        n_samples: int = 1000,
        seed: Optional[int] = None
    ) -> ValidationResult:
        """
        Validate monotonicity: v(S) ≤ v(T) for S ⊆ T

        Exhaustive over single-player extensions for small n, sampled otherwise.

        Args:
            value_fn: Coalition value function
            players: Player set
            n_samples: Number of random samples for large n
            seed: Seed for sampling

        Returns:
            ValidationResult with validation status
        """
        players = list(players)
        n = len(players)

        def check(coalition: FrozenSet[State], extra: State) -> Optional[ValidationResult]:
            v_s = value_fn(coalition)
            v_t = value_fn(coalition | {extra})
            if v_s > v_t + self.tolerance:
                return ValidationResult(
                    is_valid=False,
                    error=f"Monotonicity violation: v({set(coalition)})={v_s} > "
                          f"v({set(coalition | {extra})})={v_t}"
                )
            return None

        if n <= 8:
            for size in range(n):
                for members in combinations(players, size):
                    coalition = frozenset(members)
                    for extra in players:
                        if extra in coalition:
                            continue
                        failure = check(coalition, extra)
                        if failure is not None:
                            return failure
        else:
            rng = np.random.default_rng(seed)
            for _ in range(n_samples):
                mask = rng.random(n) < 0.5
                coalition = frozenset(p for p, keep in zip(players, mask) if keep)
                outside = [p for p in players if p not in coalition]
                if not outside:
                    continue
                extra = outside[rng.integers(0, len(outside))]
                failure = check(coalition, extra)
                if failure is not None:
                    return failure

        return ValidationResult(is_valid=True)


class ResponsibilityValidator:
    """
    Validates power-index weights and responsibility results
    """

    def __init__(self, tolerance: float = 1e-9):
        self.tolerance = tolerance

    def validate_weight_identity(self, power_index: PowerIndex, n_players: int) -> ValidationResult:
        """
        Validate Σ_{c=0}^{n-1} C(n−1, c) · p_c = 1

        Holds for both Shapley and Banzhaf weights.
        """
        weights = power_index_weights(power_index, n_players)
        total = sum(
            comb(n_players - 1, c, exact=True) * weights[c] for c in range(n_players)
        )

        if abs(total - 1.0) > self.tolerance:
            return ValidationResult(
                is_valid=False,
                error=f"Weight identity violation for {PowerIndex.parse(power_index).value}, "
                      f"n={n_players}: Σ C(n-1,c)·p_c = {total:.12f}",
                details={'total': total}
            )
        return ValidationResult(is_valid=True, details={'total': total})

    def validate_range(self, result: ResponsibilityResult) -> ValidationResult:
        """Validate every responsibility lies in [0, 1]"""
        for state, value in result.state_responsibility.items():
            if value < -self.tolerance or value > 1.0 + self.tolerance:
                return ValidationResult(
                    is_valid=False,
                    error=f"Responsibility of {state!r} out of range: {value}"
                )
        return ValidationResult(is_valid=True)

    def validate_optimistic_closed_form(
        self,
        ts: TransitionSystem,
        rho: Counterexample,
        result: ResponsibilityResult
    ) -> ValidationResult:
        """
        Validate the optimistic characterization against the exhaustive general formula

        Exponential in the number of players; intended for short traces.
        """
        if result.mode is not ResponsibilityMode.OPTIMISTIC:
            return ValidationResult(
                is_valid=False,
                error=f"Expected an optimistic result, got {result.mode.value}"
            )

        players = result.players
        exact = general_power_index(
            CoalitionValue(ts, rho, optimistic_value), players, result.power_index
        )
        closed = np.array([result.state_responsibility[s] for s in players], dtype=float)

        if not np.allclose(exact, closed, atol=self.tolerance):
            return ValidationResult(
                is_valid=False,
                error="Closed form differs from general formula",
                details={'general': exact.tolist(), 'closed_form': closed.tolist()}
            )
        return ValidationResult(is_valid=True, details={'general': exact.tolist()})


# Global instances for easy use
game_validator = GameValidator()
responsibility_validator = ResponsibilityValidator()
