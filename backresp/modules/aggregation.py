# =============================================================================
# FILE: backresp/modules/aggregation.py
"""
Component Aggregation - Maps state-level responsibility onto components

Heuristic on state identifiers:
- "module.var=val"  → "module"   (prefix before the first '.')
- "s<digits>"       → "state"
- anything else     → "unknown"

Responsibility is averaged over the states of each component.

Note: not idempotent. Component labels carry no '.', so aggregating an
already aggregated map collapses every label except a literal "s<digits>"
into the "unknown" bucket.
"""
# =============================================================================

import re
from typing import Callable, Dict, Hashable, Mapping
import logging

import pandas as pd

logger = logging.getLogger(__name__)

_SIMPLE_STATE = re.compile(r"s\d+")


def component_of(state: Hashable) -> str:
    """Component label of a single state identifier"""
    name = str(state)
    if "." in name:
        return name[:name.index(".")]
    if _SIMPLE_STATE.fullmatch(name):
        return "state"
    return "unknown"


def aggregate_components(
    state_responsibility: Mapping[Hashable, float],
    labeler: Callable[[Hashable], str] = component_of
) -> Dict[str, float]:
    """
    Average state responsibility per component

    Parameters:
    -----------
    state_responsibility : Mapping[State, float]
        Per-state responsibility
    labeler : Callable
        State → component label (default: `component_of`)

    Returns:
    --------
    component_responsibility : Dict[str, float]
    """
    if not state_responsibility:
        return {}

    values = pd.Series(
        [float(v) for v in state_responsibility.values()],
        index=[labeler(s) for s in state_responsibility.keys()],
        dtype=float
    )
    means = values.groupby(level=0, sort=True).mean()

    logger.debug(f"Aggregated {len(values)} states into {len(means)} components")
    return {str(label): float(value) for label, value in means.items()}
