# =============================================================================
# FILE: tests/test_safety_game.py
"""
Unit Tests for Safety-Game Construction and Attractor Solving

Covers the coalition-dependent restriction of transitions, the backward
attractor on the railway example, dead ends on both sides, and closure of
the winning region on random games.
"""
import pytest

from backresp.exceptions import MalformedInputError
from backresp.modules.data_gen import DataGenerator
from backresp.modules.safety_game import SafetyGame
from backresp.modules.transition_system import Counterexample, TransitionSystem
from backresp.utils.validation import GameValidator


@pytest.fixture
def railway():
    return DataGenerator(seed=0).railway()


def make_ts(edges, initial, bad, extra_states=()):
    ts = TransitionSystem()
    for source, target in edges:
        ts.add_state(source)
        ts.add_state(target)
        ts.add_transition(source, target)
    for state in extra_states:
        ts.add_state(state)
    for state in bad:
        ts.add_state(state)
        ts.add_bad_state(state)
    ts.add_state(initial)
    ts.set_initial(initial)
    return ts


class TestConstruction:
    """Test G_ρ^TS(C) construction"""

    def test_partition(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, {'s2'})
        assert game.safe_states == frozenset({'s2'})
        assert game.reach_states == railway.ts.states - {'s2'}
        assert game.states == frozenset(railway.ts.states)

    def test_trace_states_outside_coalition_follow_trace(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, set())
        assert game.transitions['s1'] == frozenset({'s2'})
        assert game.transitions['s2'] == frozenset({'s3'})
        assert game.transitions['s3'] == frozenset({'error'})

    def test_coalition_keeps_all_transitions(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, {'s1'})
        assert game.transitions['s1'] == frozenset({'s2', 's4'})
        assert game.transitions['s2'] == frozenset({'s3'})

    def test_off_trace_states_keep_transitions(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, set())
        assert game.transitions['s4'] == frozenset({'safe'})
        assert game.transitions['safe'] == frozenset()

    def test_last_trace_state_keeps_transitions(self):
        ts = make_ts([('a', 'b'), ('b', 'c'), ('b', 'd')], initial='a', bad=['d'])
        game = SafetyGame.build(ts, Counterexample(['a', 'b']), set())
        assert game.transitions['b'] == frozenset({'c', 'd'})

    def test_edges_to_unknown_states_are_dropped(self):
        ts = make_ts([('a', 'x')], initial='a', bad=['x'])
        ts.add_transition('a', 'ghost')
        game = SafetyGame.build(ts, Counterexample(['a', 'x']), {'a'})
        assert game.transitions['a'] == frozenset({'x'})

    def test_input_is_not_mutated(self, railway):
        before = {s: set(t) for s, t in railway.ts.transitions.items()}
        SafetyGame.build(railway.ts, railway.counterexample, set())
        assert railway.ts.transitions == before

    def test_game_is_read_only_and_hashable(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, {'s1'})
        with pytest.raises(TypeError):
            game.transitions['s1'] = frozenset({'error'})
        with pytest.raises(AttributeError):
            game.initial = 's2'
        assert game.transitions['s1'] == frozenset({'s2', 's4'})
        assert len({game, game}) == 1
        hash(game)

    def test_missing_initial_raises(self):
        ts = TransitionSystem(states={'a'})
        with pytest.raises(MalformedInputError):
            SafetyGame.build(ts, Counterexample(['a']), set())


class TestSolving:
    """Test the Reach attractor and Safe's winning region"""

    def test_empty_coalition_loses(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, set())
        assert game.reach_attractor() == frozenset({'s1', 's2', 's3', 'error'})
        assert game.solve() == frozenset({'s4', 's5', 'safe'})
        assert not game.does_safe_win()

    def test_single_switch_wins(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, {'s2'})
        assert game.solve() == frozenset({'s1', 's2', 's4', 's5', 'safe'})
        assert game.does_safe_win()

    def test_s3_alone_loses(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, {'s3'})
        assert not game.does_safe_win()

    def test_explicit_target(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, set())
        assert game.reach_attractor(target={'s3'}) == frozenset({'s1', 's2', 's3'})

    def test_safe_state_with_all_successors_bad(self):
        ts = make_ts([('a', 'x')], initial='a', bad=['x'])
        game = SafetyGame.build(ts, Counterexample(['a', 'x']), {'a'})
        assert 'a' in game.reach_attractor()

    def test_safe_state_escapes_through_one_successor(self):
        ts = make_ts([('a', 'x'), ('a', 'ok')], initial='a', bad=['x'])
        game = SafetyGame.build(ts, Counterexample(['a', 'x']), {'a'})
        assert game.does_safe_win()

    def test_reach_state_with_one_bad_successor(self):
        ts = make_ts([('a', 'x'), ('a', 'ok')], initial='a', bad=['x'])
        game = SafetyGame.build(ts, Counterexample(['a', 'x']), set())
        assert not game.does_safe_win()

    @pytest.mark.parametrize("coalition", [set(), {'b'}])
    def test_dead_end_is_winning_for_safe(self, coalition):
        ts = make_ts([('a', 'b')], initial='a', bad=['x'])
        game = SafetyGame.build(ts, Counterexample(['a', 'b']), coalition)
        assert game.transitions['b'] == frozenset()
        assert 'b' not in game.reach_attractor()
        assert game.does_safe_win()

    def test_bad_initial_state_loses(self):
        ts = make_ts([('x', 'ok')], initial='x', bad=['x'])
        game = SafetyGame.build(ts, Counterexample(['x']), set())
        assert not game.does_safe_win()

    def test_cycle_avoiding_bad_is_winning(self):
        ts = make_ts([('a', 'b'), ('b', 'a'), ('b', 'x')], initial='a', bad=['x'])
        game = SafetyGame.build(ts, Counterexample(['a', 'b', 'x']), {'b'})
        assert game.does_safe_win()

    def test_summary(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, {'s1'})
        assert 'safe=1' in game.summary()


class TestWinningRegionClosure:
    """Winning regions must be closed under both players' moves"""

    @pytest.mark.parametrize("seed", range(8))
    def test_random_games(self, seed):
        instance = DataGenerator(seed=seed).random_instance(n_states=7, edge_prob=0.3)
        validator = GameValidator()
        players = [s for s in instance.counterexample if s not in instance.ts.bad_states]

        coalitions = [set(), set(players)] + [{s} for s in players]
        for coalition in coalitions:
            game = SafetyGame.build(instance.ts, instance.counterexample, coalition)
            result = validator.validate_winning_region(game)
            assert result.is_valid, result.error

    def test_validator_rejects_bad_state_in_region(self, railway):
        game = SafetyGame.build(railway.ts, railway.counterexample, set())
        result = GameValidator().validate_winning_region(game, frozenset({'error'}))
        assert not result.is_valid
