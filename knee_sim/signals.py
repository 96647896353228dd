from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from scipy.interpolate import PchipInterpolator

from knee_sim.phases import FLEX_END_INDEX, LOAD_END_INDEX, PhasePlan


def synthesize(breakpoints: np.ndarray, sparse_values: Sequence[float], grid: np.ndarray) -> np.ndarray:
    """
    Shape-preserving cubic (PCHIP) curve through one target value per breakpoint.

    Passes exactly through every breakpoint value, never overshoots the range
    of two neighbouring targets, and is C1 continuous. Same routine for
    flexion angles and every load channel.
    """
    t = np.asarray(breakpoints, dtype=float)
    y = np.asarray(sparse_values, dtype=float)
    if y.shape != t.shape:
        raise ValueError(f'Need one target per breakpoint: {t.size} breakpoints, {y.size} values.')
    return PchipInterpolator(t, y, extrapolate=True)(np.asarray(grid, dtype=float))


def plateau_targets(n_points: int, start_index: int, value: float, base: float = 0.0) -> np.ndarray:
    """[base] * start_index followed by [value] for the remaining breakpoints."""
    if not 0 <= start_index <= n_points:
        raise ValueError(f'start_index {start_index} outside 0..{n_points}.')
    out = np.full(n_points, float(base))
    out[start_index:] = float(value)
    return out


def flexion_targets(plan: PhasePlan, angle_deg: float, start_deg: float = 0.0) -> np.ndarray:
    # Flexion reaches the target at the end of the flex phase and holds.
    return plateau_targets(plan.breakpoints.size, FLEX_END_INDEX, angle_deg, base=start_deg)


def load_targets(plan: PhasePlan, value: float) -> np.ndarray:
    if plan.breakpoints.size <= LOAD_END_INDEX:
        raise ValueError(f"Phase plan '{plan.kind}' has no load ramp.")
    return plateau_targets(plan.breakpoints.size, LOAD_END_INDEX, value)
