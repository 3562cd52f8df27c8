"""
Modules package for backward responsibility analysis.

This package contains core modules for:
- Transition systems: Input graph and counterexample trace
- Safety games: Game construction per coalition and attractor solving
- Values: Optimistic and pessimistic coalition value functions
- Responsibility: Shapley/Banzhaf power-index aggregation
- Aggregation: State-to-component responsibility heuristic
- Data generation: Synthetic instances, loaders and counterexample search
- Experiment running: Orchestrates parameter sweeps
"""

from .transition_system import TransitionSystem, Counterexample
from .safety_game import SafetyGame
from .values import CoalitionValue, optimistic_value, pessimistic_value
from .responsibility import (
    PowerIndex,
    ResponsibilityConfig,
    ResponsibilityEngine,
    ResponsibilityMode,
    ResponsibilityResult,
    StateInfo,
    compute_responsibility,
    general_power_index
)
from .aggregation import aggregate_components
from .data_gen import DataGenerator, ModelInstance, find_counterexample, load_instance
from .runner import ExperimentRunner

__all__ = [
    'TransitionSystem',
    'Counterexample',
    'SafetyGame',
    'CoalitionValue',
    'optimistic_value',
    'pessimistic_value',
    'PowerIndex',
    'ResponsibilityConfig',
    'ResponsibilityEngine',
    'ResponsibilityMode',
    'ResponsibilityResult',
    'StateInfo',
    'compute_responsibility',
    'general_power_index',
    'aggregate_components',
    'DataGenerator',
    'ModelInstance',
    'find_counterexample',
    'load_instance',
    'ExperimentRunner'
]
