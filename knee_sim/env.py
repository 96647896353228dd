"""Environment overrides for trial preparation.

KNEE_SIM_TIME_STEP_S  sample spacing of the time grid (s), overrides timeline.time_step_s
KNEE_SIM_OUTPUT_DIR   output directory, overrides config output_dir (but not --out)
"""

from __future__ import annotations

import math
import os
from pathlib import Path


TIME_STEP_ENV = 'KNEE_SIM_TIME_STEP_S'
OUTPUT_DIR_ENV = 'KNEE_SIM_OUTPUT_DIR'


def _env_value(name: str) -> str | None:
    # Unset and blank are treated the same.
    v = os.environ.get(name, '').strip()
    return v or None


def env_time_step_s() -> float | None:
    v = _env_value(TIME_STEP_ENV)
    if v is None:
        return None
    try:
        step = float(v)
    except ValueError as e:
        raise ValueError(f'{TIME_STEP_ENV} must be a number of seconds, got {v!r}.') from e
    if not (math.isfinite(step) and step > 0.0):
        raise ValueError(f'{TIME_STEP_ENV} must be a positive finite number, got {v!r}.')
    return step


def env_output_dir() -> Path | None:
    v = _env_value(OUTPUT_DIR_ENV)
    return None if v is None else Path(v).expanduser()
