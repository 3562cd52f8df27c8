# =============================================================================
# FILE: backresp/modules/responsibility.py
"""
Responsibility Engine - Power-index responsibility of counterexample states

Implements backward responsibility (Baier et al. 2024) for both semantics:

Pessimistic (general power-index formula, exact enumeration):
    R(v, i) = Σ_{C ⊆ N\\{i}} p_{|C|} · [v(C ∪ {i}) − v(C)]
    Shapley:  p_c = c!(n−c−1)!/n! = 1 / (n · C(n−1, c))
    Banzhaf:  p_c = 1 / 2^(n−1)

Optimistic (Theorem 4 / Proposition 4.1 characterization):
    WS_opt = {s ∈ N | v_opt({s}) = 1}
    R(v_opt, s) = K for s ∈ WS_opt, 0 otherwise
    Shapley:  K = 1 / |WS_opt|
    Banzhaf:  K = 1 / 2^(|WS_opt| − 1)

Players N are the trace states that are not bad states.

References:
- Baier et al. (2024) arXiv:2402.01539 - Backward responsibility
- Shapley (1953) "A Value for n-Person Games"
- Banzhaf (1965) "Weighted voting doesn't work"
"""
# =============================================================================

import numpy as np
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from scipy.special import comb
import logging
import time

from ..exceptions import (
    ComputationLimitError,
    MalformedInputError,
    UnsupportedConfigurationError,
)
from .aggregation import aggregate_components
from .transition_system import Counterexample, State, TransitionSystem
from .values import CoalitionValue, optimistic_value, pessimistic_value

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

class ResponsibilityMode(Enum):
    OPTIMISTIC = "optimistic"
    PESSIMISTIC = "pessimistic"

    @classmethod
    def parse(cls, value: Union[str, 'ResponsibilityMode']) -> 'ResponsibilityMode':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedConfigurationError(
                f"Unknown responsibility mode: '{value}'\n"
                f"Valid modes: optimistic, pessimistic"
            ) from None


class PowerIndex(Enum):
    SHAPLEY = "shapley"
    BANZHAF = "banzhaf"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: Union[str, 'PowerIndex']) -> 'PowerIndex':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedConfigurationError(
                f"Unknown power index: '{value}'\n"
                f"Valid indices: shapley, banzhaf"
            ) from None


def _require_supported(power_index: PowerIndex) -> None:
    if power_index not in (PowerIndex.SHAPLEY, PowerIndex.BANZHAF):
        raise UnsupportedConfigurationError(
            f"Unsupported power index: '{power_index.value}' "
            f"(only shapley and banzhaf are implemented)"
        )


@dataclass
class ResponsibilityConfig:
    """
    Engine configuration

    Attributes:
    -----------
    mode : ResponsibilityMode
        Responsibility semantics (default: optimistic)
    power_index : PowerIndex
        Power index (default: shapley)
    max_players : int
        Ceiling on n for the exact pessimistic enumeration (2^(n-1) terms per player)
    n_workers : int
        Worker processes for the pessimistic enumeration (1 = serial)
    aggregate_components : bool
        Attach component-level aggregation to each result
    """
    mode: ResponsibilityMode = ResponsibilityMode.OPTIMISTIC
    power_index: PowerIndex = PowerIndex.SHAPLEY
    max_players: int = 20
    n_workers: int = 1
    aggregate_components: bool = True

    def __post_init__(self):
        self.mode = ResponsibilityMode.parse(self.mode)
        self.power_index = PowerIndex.parse(self.power_index)
        if self.max_players < 0:
            raise ValueError(f"max_players must be non-negative, got {self.max_players}")
        if self.n_workers < 1:
            raise ValueError(f"n_workers must be positive, got {self.n_workers}")

    @classmethod
    def from_dict(cls, config: Dict) -> 'ResponsibilityConfig':
        known = {'mode', 'power_index', 'max_players', 'n_workers', 'aggregate_components'}
        unknown = set(config) - known
        if unknown:
            raise UnsupportedConfigurationError(
                f"Unknown configuration keys: {sorted(unknown)}"
            )
        return cls(**config)


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass
class StateInfo:
    """Per-player enrichment emitted next to the responsibility value"""
    on_trace: bool
    branching_degree: int
    can_win_alone: bool


@dataclass
class ResponsibilityResult:
    """
    Result of a responsibility computation

    Attributes:
    -----------
    state_responsibility : Dict[State, float]
        Responsibility in [0, 1] for each player state
    mode : ResponsibilityMode
        Semantics used
    power_index : PowerIndex
        Power index used
    counterexample : List[State]
        The trace ρ
    winning_states : Optional[List[State]]
        WS_opt in trace order (optimistic only)
    normalization_k : Optional[float]
        Constant K (optimistic only)
    weights : Optional[np.ndarray]
        Weight vector p_0 … p_{n-1} (pessimistic only)
    state_metadata : Dict[State, StateInfo]
        Per-player enrichment
    component_responsibility : Dict[str, float]
        Averaged responsibility per component
    n_games_solved : int
        Number of distinct safety games solved
    computation_time : Optional[float]
        Wall-clock time in seconds
    """
    state_responsibility: Dict[State, float]
    mode: ResponsibilityMode
    power_index: PowerIndex
    counterexample: List[State] = field(default_factory=list)
    winning_states: Optional[List[State]] = None
    normalization_k: Optional[float] = None
    weights: Optional[np.ndarray] = None
    state_metadata: Dict[State, StateInfo] = field(default_factory=dict)
    component_responsibility: Dict[str, float] = field(default_factory=dict)
    n_games_solved: int = 0
    computation_time: Optional[float] = None

    def __post_init__(self):
        """Check that every value is a valid responsibility"""
        for state, value in self.state_responsibility.items():
            if not (-1e-9 <= value <= 1.0 + 1e-9):
                logger.warning(
                    f"⚠️ Responsibility out of range: R({state!r})={value:.6f}"
                )

    @property
    def players(self) -> List[State]:
        return list(self.state_responsibility.keys())

    def ranking(self) -> List[tuple]:
        """(state, value) pairs, highest responsibility first, trace order on ties"""
        order = {s: i for i, s in enumerate(self.state_responsibility)}
        return sorted(
            self.state_responsibility.items(),
            key=lambda x: (-x[1], order[x[0]])
        )

    def to_dict(self) -> Dict:
        """JSON-friendly representation"""
        out = {
            'responsibility_type': self.mode.value,
            'power_index': self.power_index.value,
            'counterexample': list(self.counterexample),
            'state_responsibility': dict(self.state_responsibility),
            'component_responsibility': dict(self.component_responsibility),
            'state_metadata': {
                state: {
                    'on_trace': info.on_trace,
                    'branching_degree': info.branching_degree,
                    'can_win_alone': info.can_win_alone,
                }
                for state, info in self.state_metadata.items()
            },
            'n_games_solved': self.n_games_solved,
        }
        if self.winning_states is not None:
            out['winning_states'] = list(self.winning_states)
        if self.normalization_k is not None:
            out['normalization_k'] = self.normalization_k
        if self.weights is not None:
            out['weights'] = self.weights.tolist()
        if self.computation_time is not None:
            out['computation_time'] = self.computation_time
        return out

    def summary(self) -> str:
        """Human-readable summary"""
        lines = [
            f"═══ ResponsibilityResult: {self.mode.value} / {self.power_index.value} ═══",
            f"Counterexample: {' -> '.join(str(s) for s in self.counterexample)}",
        ]
        for state, value in self.state_responsibility.items():
            lines.append(f"  {state}: {value:.6f}")

        if self.winning_states is not None:
            lines.append(f"Winning set: {self.winning_states}")

        if self.normalization_k is not None:
            lines.append(f"K: {self.normalization_k:.6f}")

        if self.computation_time is not None:
            lines.append(f"Time: {self.computation_time:.3f}s")

        return "\n".join(lines)


# =============================================================================
# POWER-INDEX WEIGHTS
# =============================================================================

def shapley_weight(coalition_size: int, n_players: int) -> float:
    """p_c = c!(n−c−1)!/n! = 1 / (n · C(n−1, c))"""
    if n_players <= 0 or not 0 <= coalition_size < n_players:
        return 0.0
    return 1.0 / (n_players * comb(n_players - 1, coalition_size, exact=True))


def banzhaf_weight(coalition_size: int, n_players: int) -> float:
    """p_c = 1 / 2^(n−1), independent of c"""
    if n_players <= 0 or not 0 <= coalition_size < n_players:
        return 0.0
    return 1.0 / 2 ** (n_players - 1)


def power_index_weights(power_index: Union[str, PowerIndex], n_players: int) -> np.ndarray:
    """
    Weight vector p_0 … p_{n-1}

    Raises:
    -------
    UnsupportedConfigurationError : For indices other than Shapley and Banzhaf
    """
    power_index = PowerIndex.parse(power_index)
    _require_supported(power_index)
    weight_fn = shapley_weight if power_index is PowerIndex.SHAPLEY else banzhaf_weight
    return np.array([weight_fn(c, n_players) for c in range(n_players)], dtype=float)


def optimistic_constant(power_index: Union[str, PowerIndex], winning_set_size: int) -> float:
    """K from Proposition 4.1 (0 for an empty winning set)"""
    power_index = PowerIndex.parse(power_index)
    _require_supported(power_index)
    if winning_set_size <= 0:
        return 0.0
    if power_index is PowerIndex.SHAPLEY:
        return 1.0 / winning_set_size
    return 1.0 / 2 ** (winning_set_size - 1)


# =============================================================================
# GENERAL FORMULA
# =============================================================================

def _coalition_from_mask(others: Sequence[State], mask: int) -> FrozenSet[State]:
    return frozenset(s for bit, s in enumerate(others) if mask >> bit & 1)


def player_power_index(
    value_fn: Callable[[FrozenSet[State]], int],
    players: Sequence[State],
    player_idx: int,
    weights: np.ndarray
) -> float:
    """
    R(v, i) for a single player by enumerating all 2^(n−1) coalitions of N \\ {i}

    Only positive marginal contributions are accumulated.
    """
    player = players[player_idx]
    others = [s for j, s in enumerate(players) if j != player_idx]
    total = 0.0

    for mask in range(1 << len(others)):
        coalition = _coalition_from_mask(others, mask)
        marginal = value_fn(coalition | {player}) - value_fn(coalition)
        if marginal > 0:
            total += weights[len(coalition)] * marginal

    return total


def general_power_index(
    value_fn: Callable[[FrozenSet[State]], int],
    players: Sequence[State],
    power_index: Union[str, PowerIndex] = PowerIndex.SHAPLEY
) -> np.ndarray:
    """
    Exact power index of every player under an arbitrary value function

    Complexity: O(n × 2^(n−1)) value evaluations (fewer with a memoized v)

    Parameters:
    -----------
    value_fn : Callable[[FrozenSet[State]], int]
        Characteristic function v
    players : Sequence[State]
        Player set N in a fixed order
    power_index : PowerIndex
        Shapley or Banzhaf

    Returns:
    --------
    phi : np.ndarray
        Responsibility of each player, aligned with `players`
    """
    players = list(players)
    weights = power_index_weights(power_index, len(players))
    phi = np.zeros(len(players))

    for idx in range(len(players)):
        phi[idx] = player_power_index(value_fn, players, idx, weights)

    return phi


def _pessimistic_player_task(args) -> Tuple[float, int]:
    """Process-pool entry point: (responsibility, games solved) for one player"""
    ts, rho, players, player_idx, weights = args
    value_fn = CoalitionValue(ts, rho, pessimistic_value)
    value = player_power_index(value_fn, players, player_idx, weights)
    return value, value_fn.n_evaluations


def optimistic_winning_set(
    ts: TransitionSystem,
    rho: Counterexample,
    players: Iterable[State]
) -> List[State]:
    """WS_opt = {s ∈ N | v_opt({s}) = 1}, in player order"""
    return [s for s in players if optimistic_value(ts, rho, {s}) == 1]


# =============================================================================
# MAIN RESPONSIBILITY ENGINE
# =============================================================================

class ResponsibilityEngine:
    """
    Computes backward responsibility for one (TS, ρ) input per call

    Each call is pure: safety games are built per coalition and discarded,
    coalition values are memoized only for the duration of the call.

    Examples:
    ---------
    >>> engine = ResponsibilityEngine()
    >>> result = engine.compute(ts, rho, power_index='shapley', mode='optimistic')
    >>> print(result.summary())
    """

    def __init__(self, config: Optional[ResponsibilityConfig] = None):
        self.config = config or ResponsibilityConfig()
        logger.info(
            f"✅ ResponsibilityEngine initialized "
            f"(mode={self.config.mode.value}, index={self.config.power_index.value}, "
            f"max_players={self.config.max_players}, workers={self.config.n_workers})"
        )

    def compute(
        self,
        ts: TransitionSystem,
        rho: Union[Counterexample, Sequence[State]],
        power_index: Union[str, PowerIndex, None] = None,
        mode: Union[str, ResponsibilityMode, None] = None
    ) -> ResponsibilityResult:
        """
        Compute per-state responsibility

        Parameters:
        -----------
        ts : TransitionSystem
            Transition system (treated as immutable)
        rho : Counterexample or sequence of states
            Counterexample trace ending in a bad state
        power_index : PowerIndex or str, optional
            Overrides the configured power index
        mode : ResponsibilityMode or str, optional
            Overrides the configured semantics

        Returns:
        --------
        ResponsibilityResult

        Raises:
        -------
        UnsupportedConfigurationError : Unknown or unimplemented index/mode
        MalformedInputError : Inconsistent transition system or trace
        ComputationLimitError : Too many players for exact pessimistic enumeration
        """
        start_time = time.time()

        power_index = PowerIndex.parse(power_index or self.config.power_index)
        mode = ResponsibilityMode.parse(mode or self.config.mode)
        _require_supported(power_index)

        if not isinstance(rho, Counterexample):
            rho = Counterexample(list(rho))

        self._validate_inputs(ts, rho)
        players = self._derive_players(ts, rho)

        if mode is ResponsibilityMode.OPTIMISTIC:
            result = self._compute_optimistic(ts, rho, players, power_index)
        elif mode is ResponsibilityMode.PESSIMISTIC:
            result = self._compute_pessimistic(ts, rho, players, power_index)
        else:
            raise UnsupportedConfigurationError(f"Unknown responsibility mode: '{mode}'")

        if self.config.aggregate_components:
            result.component_responsibility = aggregate_components(result.state_responsibility)

        result.computation_time = time.time() - start_time
        logger.info(
            f"✅ {mode.value}/{power_index.value} responsibility for {len(players)} players "
            f"completed in {result.computation_time:.3f}s ({result.n_games_solved} games)"
        )
        return result

    # ═════════════════════════════════════════════════════════════════════
    # INPUT HANDLING
    # ═════════════════════════════════════════════════════════════════════

    def _validate_inputs(self, ts: TransitionSystem, rho: Counterexample) -> None:
        if ts.initial is None:
            raise MalformedInputError("Transition system has no initial state")
        if ts.initial not in ts.states:
            raise MalformedInputError(
                f"Initial state {ts.initial!r} is not a state of the transition system"
            )

        unknown = [s for s in rho if s not in ts.states]
        if unknown:
            raise MalformedInputError(
                f"Counterexample references unknown states: {unknown}"
            )

        trace = rho.states
        for idx, (source, target) in enumerate(zip(trace, trace[1:])):
            if target not in ts.successors(source):
                raise MalformedInputError(
                    f"Counterexample step {idx} is not a transition: {source!r} -> {target!r}"
                )

        if not rho.is_loop_free():
            logger.warning(f"⚠️ Counterexample is not loop-free: {rho}")
        if len(rho) > 0 and rho.states[0] != ts.initial:
            logger.warning(
                f"⚠️ Counterexample starts at {rho.states[0]!r}, not at initial state {ts.initial!r}"
            )
        if len(rho) > 0 and rho.last() not in ts.bad_states:
            logger.warning(f"⚠️ Counterexample does not end in a bad state: {rho.last()!r}")

    def _derive_players(self, ts: TransitionSystem, rho: Counterexample) -> List[State]:
        """Players N: non-bad trace states, first occurrence order"""
        return list(dict.fromkeys(s for s in rho if s not in ts.bad_states))

    def _state_metadata(
        self,
        ts: TransitionSystem,
        rho: Counterexample,
        players: List[State],
        can_win_alone: Callable[[State], bool]
    ) -> Dict[State, StateInfo]:
        return {
            state: StateInfo(
                on_trace=state in rho,
                branching_degree=ts.branching_degree(state),
                can_win_alone=can_win_alone(state)
            )
            for state in players
        }

    # ═════════════════════════════════════════════════════════════════════
    # SEMANTICS
    # ═════════════════════════════════════════════════════════════════════

    def _compute_optimistic(
        self,
        ts: TransitionSystem,
        rho: Counterexample,
        players: List[State],
        power_index: PowerIndex
    ) -> ResponsibilityResult:
        """Closed-form characterization: uniform K on WS_opt, 0 elsewhere"""
        winning = optimistic_winning_set(ts, rho, players)
        winning_lookup = set(winning)
        k = optimistic_constant(power_index, len(winning))

        responsibility = {s: (k if s in winning_lookup else 0.0) for s in players}

        return ResponsibilityResult(
            state_responsibility=responsibility,
            mode=ResponsibilityMode.OPTIMISTIC,
            power_index=power_index,
            counterexample=rho.states,
            winning_states=winning,
            normalization_k=k,
            state_metadata=self._state_metadata(
                ts, rho, players, lambda s: s in winning_lookup
            ),
            n_games_solved=len(players)
        )

    def _compute_pessimistic(
        self,
        ts: TransitionSystem,
        rho: Counterexample,
        players: List[State],
        power_index: PowerIndex
    ) -> ResponsibilityResult:
        """Exact general formula against v_pes"""
        n = len(players)

        if n > self.config.max_players:
            raise ComputationLimitError(
                f"{n} players exceed max_players={self.config.max_players} "
                f"(exact enumeration needs {n} × 2^{n - 1} coalition terms)"
            )
        if n > 12:
            logger.warning(f"⚠️ N={n} players: exact enumeration of 2^{n - 1} coalitions per player")

        weights = power_index_weights(power_index, n)
        value_fn = CoalitionValue(ts, rho, pessimistic_value)

        games_solved = 0
        if self.config.n_workers > 1 and n > 1:
            tasks = [(ts, rho, players, idx, weights) for idx in range(n)]
            with ProcessPoolExecutor(max_workers=self.config.n_workers) as executor:
                outcomes = list(executor.map(_pessimistic_player_task, tasks))
            phi = np.array([value for value, _ in outcomes], dtype=float)
            games_solved = sum(solved for _, solved in outcomes)
        else:
            phi = np.zeros(n)
            for idx in range(n):
                phi[idx] = player_power_index(value_fn, players, idx, weights)

        responsibility = {s: float(phi[idx]) for idx, s in enumerate(players)}
        metadata = self._state_metadata(ts, rho, players, lambda s: value_fn({s}) == 1)
        games_solved += value_fn.n_evaluations

        return ResponsibilityResult(
            state_responsibility=responsibility,
            mode=ResponsibilityMode.PESSIMISTIC,
            power_index=power_index,
            counterexample=rho.states,
            weights=weights,
            state_metadata=metadata,
            n_games_solved=games_solved
        )


def compute_responsibility(
    ts: TransitionSystem,
    rho: Union[Counterexample, Sequence[State]],
    power_index: Union[str, PowerIndex] = PowerIndex.SHAPLEY,
    mode: Union[str, ResponsibilityMode] = ResponsibilityMode.OPTIMISTIC,
    **config
) -> ResponsibilityResult:
    """One-shot convenience wrapper around `ResponsibilityEngine.compute`"""
    engine = ResponsibilityEngine(
        ResponsibilityConfig(mode=mode, power_index=power_index, **config)
    )
    return engine.compute(ts, rho)
