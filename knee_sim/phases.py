"""Phase templates and cumulative breakpoints for a trial.

All trials:      settle -> flex -> settle
Laxity/combined: ... -> ramp external load -> settle (hold load)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from knee_sim.errors import InvalidPhasePlan
from knee_sim.trial_names import PASSIVE, TRIAL_KINDS


DEFAULT_PASSIVE_DURATIONS_S = (0.5, 1.0, 0.5)
DEFAULT_LAXITY_DURATIONS_S = (0.5, 1.0, 0.5, 1.0, 0.5)

PASSIVE_PHASE_NAMES = ('settle', 'flex', 'settle')
LAXITY_PHASE_NAMES = ('settle', 'flex', 'settle', 'ramp_load', 'hold_load')

# Breakpoint index where the flexion ramp ends (plateau starts).
FLEX_END_INDEX = 2
# Breakpoint index where the load ramp ends.
LOAD_END_INDEX = 4


@dataclass(frozen=True, eq=False)
class PhasePlan:
    kind: str
    phase_names: tuple[str, ...]
    durations: tuple[float, ...]
    breakpoints: np.ndarray  # shape (len(durations) + 1,), starts at 0

    @property
    def total_duration(self) -> float:
        return float(self.breakpoints[-1])

    @property
    def n_phases(self) -> int:
        return len(self.durations)

    def validate(self) -> None:
        if len(self.phase_names) != len(self.durations):
            raise InvalidPhasePlan(
                f'{len(self.durations)} durations for {len(self.phase_names)} phases.', field='durations'
            )
        if any(d <= 0.0 for d in self.durations):
            raise InvalidPhasePlan(f'Phase durations must be positive, got {self.durations}.', field='durations')
        bp = self.breakpoints
        if bp.shape != (len(self.durations) + 1,):
            raise InvalidPhasePlan(
                f'Expected {len(self.durations) + 1} breakpoints, got {bp.size}.', field='breakpoints'
            )
        if bp[0] != 0.0 or np.any(np.diff(bp) <= 0.0):
            raise InvalidPhasePlan('Breakpoints must start at 0 and strictly increase.', field='breakpoints')


def plan_phases(
    kind: str,
    passive_durations_s: Sequence[float] = DEFAULT_PASSIVE_DURATIONS_S,
    laxity_durations_s: Sequence[float] = DEFAULT_LAXITY_DURATIONS_S,
) -> PhasePlan:
    """Pick the phase template for the trial kind and compute its breakpoints."""
    if kind not in TRIAL_KINDS:
        raise InvalidPhasePlan(f"Unknown trial kind '{kind}'.", field='kind')

    if kind == PASSIVE:
        names, durations = PASSIVE_PHASE_NAMES, tuple(float(d) for d in passive_durations_s)
    else:
        names, durations = LAXITY_PHASE_NAMES, tuple(float(d) for d in laxity_durations_s)

    breakpoints = np.concatenate([[0.0], np.cumsum(durations, dtype=float)])
    breakpoints.setflags(write=False)
    plan = PhasePlan(kind=kind, phase_names=names, durations=durations, breakpoints=breakpoints)
    plan.validate()
    return plan
