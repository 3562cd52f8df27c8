"""
Utilities package for backward responsibility analysis.

This package contains utility modules for:
- Logging: Experiment logger with start/end tracking
- Validation: Safety-game and power-index consistency checks
"""

from .logging_utils import ExperimentLogger
from .validation import (
    GameValidator,
    ResponsibilityValidator,
    ValidationResult
)

__all__ = [
    'ExperimentLogger',
    'GameValidator',
    'ResponsibilityValidator',
    'ValidationResult'
]
