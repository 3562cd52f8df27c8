# =============================================================================
# FILE: tests/test_data_gen.py
"""
Unit Tests for Instance Generation, Counterexample Search and Model Loading
"""
import json

import pytest
import yaml

from backresp.exceptions import MalformedInputError
from backresp.modules.data_gen import (
    DataGenerator,
    find_counterexample,
    instance_from_dict,
    load_instance,
)
from backresp.modules.transition_system import TransitionSystem


RAILWAY_DOC = {
    'name': 'railway',
    'states': ['s1', 's2', 's3', 's4', 's5', 'error', 'safe'],
    'initial': 's1',
    'bad_states': ['error'],
    'transitions': {
        's1': ['s2', 's4'],
        's2': ['s3', 's5'],
        's3': ['error'],
        's4': ['safe'],
        's5': ['safe'],
    },
    'counterexample': ['s1', 's2', 's3', 'error'],
}


class TestGenerators:
    """Built-in instance families"""

    def test_railway(self):
        instance = DataGenerator().railway()
        assert instance.name == 'railway'
        assert instance.n_players == 3
        assert instance.ts.validate() == []

    @pytest.mark.parametrize("level,n_states", [(0, 5), (2, 11), (20, 40)])
    def test_chain_size(self, level, n_states):
        instance = DataGenerator().chain(level=level)
        assert len(instance.ts.states) == n_states
        assert instance.metadata['level'] == level

    def test_chain_trace_reaches_bad(self):
        instance = DataGenerator().chain(level=3)
        assert instance.counterexample.last() in instance.ts.bad_states
        assert instance.counterexample.states[0] == instance.ts.initial
        assert instance.counterexample.is_loop_free()

    def test_chain_rejects_negative_level(self):
        with pytest.raises(ValueError):
            DataGenerator().chain(level=-1)

    def test_random_is_reproducible(self):
        a = DataGenerator(seed=5).random_instance(n_states=8, edge_prob=0.4)
        b = DataGenerator(seed=5).random_instance(n_states=8, edge_prob=0.4)
        assert a.ts.transitions == b.ts.transitions
        assert a.counterexample == b.counterexample

    def test_random_bad_states_are_dead_ends(self):
        instance = DataGenerator(seed=1).random_instance(n_states=8, edge_prob=0.5, n_bad=2)
        assert instance.ts.bad_states == {'s6', 's7'}
        for bad in instance.ts.bad_states:
            assert instance.ts.successors(bad) == frozenset()
        assert instance.counterexample.last() in instance.ts.bad_states

    @pytest.mark.parametrize("params", [
        {'n_states': 1},
        {'n_states': 4, 'n_bad': 4},
        {'edge_prob': 1.5},
    ])
    def test_random_rejects_bad_parameters(self, params):
        with pytest.raises(ValueError):
            DataGenerator(seed=0).random_instance(**params)

    def test_generate_instance_dispatch(self):
        generator = DataGenerator(seed=0)
        assert generator.generate_instance('railway').name == 'railway'
        assert generator.generate_instance('chain', level=1).name == 'chain_L1'
        assert generator.generate_instance('random', n_states=5).name == 'random_n5'

    def test_generate_instance_unknown_source(self):
        with pytest.raises(ValueError):
            DataGenerator().generate_instance('lattice')


class TestFindCounterexample:
    """BFS shortest path to a bad state"""

    def test_shortest_path(self):
        ts = TransitionSystem(states={'a', 'b', 'c', 'x'}, initial='a', bad_states={'x'})
        ts.add_transition('a', 'b')
        ts.add_transition('b', 'c')
        ts.add_transition('c', 'x')
        ts.add_transition('a', 'c')
        assert find_counterexample(ts).states == ['a', 'c', 'x']

    def test_initial_is_bad(self):
        ts = TransitionSystem(states={'x'}, initial='x', bad_states={'x'})
        assert find_counterexample(ts).states == ['x']

    def test_unreachable_bad_state(self):
        ts = TransitionSystem(states={'a', 'x'}, initial='a', bad_states={'x'})
        assert len(find_counterexample(ts)) == 0

    def test_no_initial(self):
        assert len(find_counterexample(TransitionSystem(states={'a'}))) == 0


class TestLoading:
    """YAML/JSON model documents"""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / 'railway.yaml'
        path.write_text(yaml.safe_dump(RAILWAY_DOC))

        instance = load_instance(path)
        assert instance.name == 'railway'
        assert instance.counterexample.states == ['s1', 's2', 's3', 'error']
        assert instance.ts.successors('s2') == frozenset({'s3', 's5'})
        assert instance.metadata['path'] == str(path)

    def test_load_json(self, tmp_path):
        path = tmp_path / 'model.json'
        path.write_text(json.dumps(RAILWAY_DOC))
        assert load_instance(path).ts.initial == 's1'

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_instance(tmp_path / 'absent.yaml')

    def test_ids_are_strings(self):
        doc = {'initial': 0, 'bad_states': [2], 'transitions': {0: [1], 1: [2]}}
        instance = instance_from_dict(doc)
        assert instance.ts.states == {'0', '1', '2'}
        assert instance.counterexample.states == ['0', '1', '2']

    def test_states_derived_when_absent(self):
        doc = {k: v for k, v in RAILWAY_DOC.items() if k != 'states'}
        instance = instance_from_dict(doc)
        assert instance.ts.states == set(RAILWAY_DOC['states'])

    def test_trace_found_when_absent(self):
        doc = {k: v for k, v in RAILWAY_DOC.items() if k != 'counterexample'}
        assert instance_from_dict(doc).counterexample.states == ['s1', 's2', 's3', 'error']

    def test_missing_initial(self):
        doc = {k: v for k, v in RAILWAY_DOC.items() if k != 'initial'}
        with pytest.raises(MalformedInputError):
            instance_from_dict(doc)

    def test_undeclared_target(self):
        doc = dict(RAILWAY_DOC, transitions={'s1': ['nowhere']})
        with pytest.raises(MalformedInputError):
            instance_from_dict(doc)

    def test_non_mapping_document(self):
        with pytest.raises(MalformedInputError):
            instance_from_dict(['s1', 's2'])
