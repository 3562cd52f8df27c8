# =============================================================================
# FILE: tests/test_aggregation.py
"""
Unit Tests for Component Aggregation
"""
import pytest

from backresp.modules.aggregation import aggregate_components, component_of


class TestComponentOf:
    """State identifier → component label"""

    @pytest.mark.parametrize("state,label", [
        ('train.pos=3', 'train'),
        ('signal.a.b', 'signal'),
        ('s0', 'state'),
        ('s42', 'state'),
        ('s', 'unknown'),
        ('s1x', 'unknown'),
        ('error', 'unknown'),
        (7, 'unknown'),
    ])
    def test_labels(self, state, label):
        assert component_of(state) == label


class TestAggregateComponents:
    """Averaging state responsibility per component"""

    def test_mixed_components(self):
        result = aggregate_components({
            'mod.x=1': 0.2,
            'mod.y=2': 0.4,
            's1': 1.0,
            's3': 0.0,
            'error': 0.5,
        })
        assert result == pytest.approx({'mod': 0.3, 'state': 0.5, 'unknown': 0.5})

    def test_empty(self):
        assert aggregate_components({}) == {}

    def test_custom_labeler(self):
        result = aggregate_components({'a1': 1.0, 'a2': 0.0, 'b1': 0.5},
                                      labeler=lambda s: s[0])
        assert result == pytest.approx({'a': 0.5, 'b': 0.5})

    def test_not_idempotent(self):
        once = aggregate_components({'mod.x=1': 0.2, 'mod.y=2': 0.4, 's1': 1.0, 'error': 0.5})
        twice = aggregate_components(once)

        assert set(once) == {'mod', 'state', 'unknown'}
        assert twice == pytest.approx({'unknown': (0.3 + 1.0 + 0.5) / 3})
