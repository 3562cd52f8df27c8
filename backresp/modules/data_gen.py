# =============================================================================
# FILE: backresp/modules/data_gen.py
"""
Model Instances - Synthetic transition systems, loaders and counterexample search

Sources of (TS, ρ) pairs:
- railway: the running example of Baier et al. (2024)
- chain: chain with periodic branching, growing with the refinement level
- random: seeded random digraph over a guaranteed backbone path
- file: YAML/JSON documents {states, transitions, initial, bad_states, counterexample?}

When a source provides no trace, the counterexample is the BFS shortest path
from the initial state to the nearest bad state.
"""
# =============================================================================

import numpy as np
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set, Union
import json
import logging

import yaml

from ..exceptions import MalformedInputError
from .transition_system import Counterexample, State, TransitionSystem

logger = logging.getLogger(__name__)


@dataclass
class ModelInstance:
    """A transition system paired with its counterexample"""
    name: str
    ts: TransitionSystem
    counterexample: Counterexample
    metadata: Dict = field(default_factory=dict)

    @property
    def n_players(self) -> int:
        """Number of non-bad trace states"""
        return len({s for s in self.counterexample if s not in self.ts.bad_states})


def find_counterexample(ts: TransitionSystem) -> Counterexample:
    """
    Shortest path from the initial state to any bad state (BFS)

    Returns:
    --------
    rho : Counterexample
        Empty if no bad state is reachable or the initial state is unset
    """
    if ts.initial is None:
        return Counterexample()
    if ts.initial in ts.bad_states:
        return Counterexample([ts.initial])

    parent: Dict[State, Optional[State]] = {ts.initial: None}
    queue = deque([ts.initial])

    while queue:
        current = queue.popleft()
        if current in ts.bad_states:
            path = []
            while current is not None:
                path.append(current)
                current = parent[current]
            return Counterexample(path[::-1])

        for succ in sorted(ts.successors(current), key=repr):
            if succ not in parent:
                parent[succ] = current
                queue.append(succ)

    logger.warning("No bad state reachable from the initial state")
    return Counterexample()


class DataGenerator:
    """Generates seeded (TS, ρ) instances for experiments and tests"""

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)
        self.seed = seed

    def railway(self) -> ModelInstance:
        """
        Railway network example

        s1 → s2, s4    s2 → s3, s5    s3 → error    s4, s5 → safe
        ρ = s1 · s2 · s3 · error
        """
        ts = TransitionSystem()
        for state in ('s1', 's2', 's3', 's4', 's5', 'error', 'safe'):
            ts.add_state(state)
        for source, target in (
            ('s1', 's2'), ('s1', 's4'),
            ('s2', 's3'), ('s2', 's5'),
            ('s3', 'error'),
            ('s4', 'safe'), ('s5', 'safe'),
        ):
            ts.add_transition(source, target)
        ts.set_initial('s1')
        ts.add_bad_state('error')

        return ModelInstance(
            name='railway',
            ts=ts,
            counterexample=Counterexample(['s1', 's2', 's3', 'error']),
            metadata={'source': 'railway'}
        )

    def chain(self, level: int = 0) -> ModelInstance:
        """
        Chain with branching, sized by refinement level

        5 + 3·level states (capped at 40); state i → i+1, every third state
        also branches to i+2; the last two states are bad.
        """
        if level < 0:
            raise ValueError(f"level must be non-negative, got {level}")

        n_states = min(5 + 3 * level, 40)
        ids = [str(7 * i) for i in range(n_states)]

        ts = TransitionSystem()
        for state in ids:
            ts.add_state(state)
        ts.set_initial(ids[0])

        for i in range(n_states - 1):
            ts.add_transition(ids[i], ids[i + 1])
            if i % 3 == 0 and i + 2 < n_states:
                ts.add_transition(ids[i], ids[i + 2])

        ts.add_bad_state(ids[-1])
        if n_states > 3:
            ts.add_bad_state(ids[-2])

        return ModelInstance(
            name=f'chain_L{level}',
            ts=ts,
            counterexample=find_counterexample(ts),
            metadata={'source': 'chain', 'level': level, 'n_states': n_states}
        )

    def random_instance(
        self,
        n_states: int = 6,
        edge_prob: float = 0.3,
        n_bad: int = 1
    ) -> ModelInstance:
        """
        Random digraph over a backbone s0 → s1 → … → s_{n-1}

        The last `n_bad` states are bad dead ends, so a counterexample
        always exists. Extra edges are drawn independently with `edge_prob`.
        """
        if n_states < 2:
            raise ValueError(f"n_states must be at least 2, got {n_states}")
        if not 1 <= n_bad < n_states:
            raise ValueError(f"n_bad must be in [1, {n_states - 1}], got {n_bad}")
        if not 0.0 <= edge_prob <= 1.0:
            raise ValueError(f"edge_prob must be in [0, 1], got {edge_prob}")

        ids = [f's{i}' for i in range(n_states)]
        bad = set(ids[n_states - n_bad:])

        ts = TransitionSystem()
        for state in ids:
            ts.add_state(state)
        ts.set_initial(ids[0])
        for state in bad:
            ts.add_bad_state(state)

        for i in range(n_states - n_bad):
            ts.add_transition(ids[i], ids[i + 1])
            draws = self.rng.random(n_states)
            for j in range(n_states):
                if j != i + 1 and draws[j] < edge_prob:
                    ts.add_transition(ids[i], ids[j])

        return ModelInstance(
            name=f'random_n{n_states}',
            ts=ts,
            counterexample=find_counterexample(ts),
            metadata={
                'source': 'random',
                'n_states': n_states,
                'edge_prob': edge_prob,
                'n_bad': n_bad,
                'seed': self.seed,
            }
        )

    def generate_instance(self, source: str, **params) -> ModelInstance:
        """Dispatch on source name: railway, chain, random or file"""
        if source == 'railway':
            return self.railway()
        if source == 'chain':
            return self.chain(level=params.get('level', 0))
        if source == 'random':
            return self.random_instance(
                n_states=params.get('n_states', 6),
                edge_prob=params.get('edge_prob', 0.3),
                n_bad=params.get('n_bad', 1)
            )
        if source == 'file':
            return load_instance(params['path'])
        raise ValueError(
            f"Unknown instance source: '{source}'\n"
            f"Valid sources: railway, chain, random, file"
        )


# =============================================================================
# LOADING
# =============================================================================

def instance_from_dict(doc: Dict, name: str = 'model') -> ModelInstance:
    """
    Build an instance from a parsed YAML/JSON document

    State identifiers are normalized to strings. `states` may be omitted and
    is then derived from the transitions, initial and bad states.

    Raises:
    -------
    MalformedInputError : If required keys are missing or ids are inconsistent
    """
    if not isinstance(doc, dict):
        raise MalformedInputError(f"Model document must be a mapping, got {type(doc).__name__}")
    if doc.get('initial') is None:
        raise MalformedInputError("Model document has no 'initial' state")

    transitions = doc.get('transitions') or {}
    if not isinstance(transitions, dict):
        raise MalformedInputError("'transitions' must map each state to a list of successors")

    ts = TransitionSystem()
    declared: Set[str] = {str(s) for s in doc.get('states') or []}

    for source, targets in transitions.items():
        for target in targets or []:
            ts.add_transition(str(source), str(target))

    ts.set_initial(str(doc['initial']))
    for bad in doc.get('bad_states') or []:
        ts.add_bad_state(str(bad))

    if declared:
        ts.states = declared
    else:
        ts.states = (
            set(ts.transitions)
            | {t for succs in ts.transitions.values() for t in succs}
            | {ts.initial}
            | ts.bad_states
        )

    problems = ts.validate()
    if problems:
        raise MalformedInputError(f"Invalid model '{name}': " + "; ".join(problems))

    trace = doc.get('counterexample')
    if trace:
        rho = Counterexample([str(s) for s in trace])
    else:
        rho = find_counterexample(ts)

    return ModelInstance(
        name=str(doc.get('name', name)),
        ts=ts,
        counterexample=rho,
        metadata={'source': 'file'}
    )


def load_instance(path: Union[str, Path]) -> ModelInstance:
    """Load a model from a .yaml/.yml or .json file"""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")

    with open(path, 'r') as f:
        if path.suffix.lower() == '.json':
            doc = json.load(f)
        else:
            doc = yaml.safe_load(f)

    instance = instance_from_dict(doc, name=path.stem)
    instance.metadata['path'] = str(path)
    logger.info(f"Loaded model {instance.name}: {instance.ts.summary()}")
    return instance
