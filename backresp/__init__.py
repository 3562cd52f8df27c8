"""
Backward Responsibility in Transition Systems.

This package provides implementations for:
- Safety-game construction and attractor solving per coalition
- Optimistic and pessimistic cooperative games over counterexample states
- Shapley and Banzhaf responsibility with the optimistic characterization
- Experiment sweeps and validation tools
"""

# Import core modules for easy access
from .modules import (
    TransitionSystem,
    Counterexample,
    SafetyGame,
    PowerIndex,
    ResponsibilityConfig,
    ResponsibilityEngine,
    ResponsibilityMode,
    ResponsibilityResult,
    compute_responsibility,
    aggregate_components,
    DataGenerator,
    ExperimentRunner
)
from .exceptions import (
    ResponsibilityError,
    MalformedInputError,
    UnsupportedConfigurationError,
    ComputationLimitError
)
from .utils import ExperimentLogger

__all__ = [
    # Core modules
    'TransitionSystem',
    'Counterexample',
    'SafetyGame',
    'PowerIndex',
    'ResponsibilityConfig',
    'ResponsibilityEngine',
    'ResponsibilityMode',
    'ResponsibilityResult',
    'compute_responsibility',
    'aggregate_components',
    'DataGenerator',
    'ExperimentRunner',
    'ExperimentLogger',
    # Errors
    'ResponsibilityError',
    'MalformedInputError',
    'UnsupportedConfigurationError',
    'ComputationLimitError'
]

__version__ = "1.0.0"
