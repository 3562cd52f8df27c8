# =============================================================================
# FILE: tests/test_values.py
"""
Unit Tests for Coalition Value Functions (v_pes, v_opt)
"""
import pytest

from backresp.modules.data_gen import DataGenerator
from backresp.modules.values import CoalitionValue, optimistic_value, pessimistic_value
from backresp.utils.validation import GameValidator


@pytest.fixture
def railway():
    return DataGenerator(seed=0).railway()


class TestPessimisticValue:
    """v_pes(C) = 1 iff Safe wins G(C)"""

    @pytest.mark.parametrize("coalition,expected", [
        (set(), 0),
        ({'s1'}, 1),
        ({'s2'}, 1),
        ({'s3'}, 0),
        ({'s1', 's3'}, 1),
        ({'s1', 's2', 's3'}, 1),
    ])
    def test_railway(self, railway, coalition, expected):
        assert pessimistic_value(railway.ts, railway.counterexample, coalition) == expected

    def test_monotone(self, railway):
        value_fn = CoalitionValue(railway.ts, railway.counterexample, pessimistic_value)
        result = GameValidator().validate_monotonicity(value_fn, ['s1', 's2', 's3'])
        assert result.is_valid, result.error


class TestOptimisticValue:
    """v_opt(C) = 1 iff Safe wins G(C ∪ off-trace states)"""

    @pytest.mark.parametrize("coalition,expected", [
        (set(), 0),
        ({'s1'}, 1),
        ({'s2'}, 1),
        ({'s3'}, 0),
    ])
    def test_railway(self, railway, coalition, expected):
        assert optimistic_value(railway.ts, railway.counterexample, coalition) == expected

    def test_optimistic_dominates_pessimistic(self):
        instance = DataGenerator(seed=3).random_instance(n_states=7, edge_prob=0.3)
        ts, rho = instance.ts, instance.counterexample
        players = [s for s in rho if s not in ts.bad_states]
        for s in players:
            assert optimistic_value(ts, rho, {s}) >= pessimistic_value(ts, rho, {s})

    @pytest.mark.parametrize("seed", range(5))
    def test_monotone_on_random_instances(self, seed):
        instance = DataGenerator(seed=seed).random_instance(n_states=7, edge_prob=0.3)
        players = [s for s in instance.counterexample if s not in instance.ts.bad_states]
        value_fn = CoalitionValue(instance.ts, instance.counterexample, optimistic_value)
        result = GameValidator().validate_monotonicity(value_fn, players)
        assert result.is_valid, result.error


class TestCoalitionValue:
    """Test the memoized characteristic function"""

    def test_memoizes_by_coalition(self, railway):
        value_fn = CoalitionValue(railway.ts, railway.counterexample, pessimistic_value)
        assert value_fn({'s1'}) == 1
        assert value_fn(['s1']) == 1
        assert value_fn(frozenset({'s1'})) == 1
        assert value_fn.n_evaluations == 1

        value_fn(set())
        assert value_fn.n_evaluations == 2
