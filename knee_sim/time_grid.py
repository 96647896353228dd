from __future__ import annotations

import numpy as np

from knee_sim.errors import InvalidPhasePlan


DEFAULT_TIME_STEP_S = 0.01

# Guards floor(total/step) against 3.5/0.01 == 349.99999999999994.
_STEP_COUNT_EPS = 1e-9


def build_time_grid(total_duration_s: float, step_s: float = DEFAULT_TIME_STEP_S) -> np.ndarray:
    """
    Fixed-step sample times 0, step, 2*step, ... <= total_duration_s.

    Computed as i * step (not by accumulation) so every trial with the same
    duration gets bit-identical times.
    """
    total = float(total_duration_s)
    step = float(step_s)
    if step <= 0.0:
        raise InvalidPhasePlan(f'Time step must be positive, got {step}.', field='time_step_s')
    if total <= 0.0:
        raise InvalidPhasePlan(f'Total duration must be positive, got {total}.', field='durations')

    n = int(np.floor(total / step + _STEP_COUNT_EPS)) + 1
    return np.arange(n, dtype=float) * step


def breakpoint_indices(breakpoints: np.ndarray, grid: np.ndarray) -> np.ndarray:
    """Index of the grid sample nearest to each breakpoint."""
    bp = np.asarray(breakpoints, dtype=float)
    if grid.size < 2:
        return np.zeros(bp.shape, dtype=int)
    idx = np.searchsorted(grid, bp)
    idx = np.clip(idx, 1, grid.size - 1)
    left = grid[idx - 1]
    right = grid[idx]
    idx = idx - ((bp - left) <= (right - bp))
    return idx.astype(int)
