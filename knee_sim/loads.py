"""Compose the 9-channel external load record of a laxity / combined trial."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from knee_sim.dof_table import LOAD_CHANNELS, DofRule, LoadMapping, map_load
from knee_sim.errors import ChannelCollision
from knee_sim.phases import PhasePlan
from knee_sim.signals import load_targets, synthesize
from knee_sim.trial_names import TrialDescriptor


@dataclass(frozen=True, eq=False)
class LoadRecord:
    """Force (N), application point (m) and torque (Nm) channels, all shape (T,)."""

    force_vx: np.ndarray
    force_vy: np.ndarray
    force_vz: np.ndarray
    force_px: np.ndarray
    force_py: np.ndarray
    force_pz: np.ndarray
    torque_x: np.ndarray
    torque_y: np.ndarray
    torque_z: np.ndarray
    active_channels: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        for name in LOAD_CHANNELS:
            getattr(self, name).setflags(write=False)

    def channel(self, name: str) -> np.ndarray:
        if name not in LOAD_CHANNELS:
            raise KeyError(f"Unknown load channel '{name}'. Available: {', '.join(LOAD_CHANNELS)}")
        return getattr(self, name)

    def as_columns(self, body: str) -> dict[str, np.ndarray]:
        # ExternalForce identifiers: <body>_force_v*, <body>_force_p*, <body>_torque_*
        return {f'{body}_{name}': self.channel(name) for name in LOAD_CHANNELS}


def map_trial_loads(
    descriptor: TrialDescriptor, table: dict[str, DofRule] | None = None
) -> list[LoadMapping]:
    """Map every (DOF code, magnitude) pair and reject channel collisions."""
    trial = descriptor.name
    mappings = [map_load(code, mag, table) for code, mag in zip(descriptor.dof_codes, descriptor.magnitudes)]

    owner: dict[str, str] = {}
    points: dict[str, tuple[str, float]] = {}
    for m in mappings:
        if m.channel in owner:
            raise ChannelCollision(
                f"DOF codes '{owner[m.channel]}' and '{m.code}' both load channel {m.channel}.",
                trial=trial,
                field='dof_codes',
            )
        owner[m.channel] = m.code

        if m.point_channel is None:
            continue
        prev = points.get(m.point_channel)
        if prev is not None and prev[1] != m.point_value:
            raise ChannelCollision(
                f"DOF codes '{prev[0]}' and '{m.code}' need different application points on "
                f'{m.point_channel} ({prev[1]} vs {m.point_value} m).',
                trial=trial,
                field='dof_codes',
            )
        points[m.point_channel] = (m.code, float(m.point_value))
    return mappings


def compose_load_record(
    descriptor: TrialDescriptor,
    plan: PhasePlan,
    grid: np.ndarray,
    table: dict[str, DofRule] | None = None,
    *,
    mappings: list[LoadMapping] | None = None,
) -> LoadRecord:
    """
    Superpose the loads of all DOF codes into one LoadRecord.

    Each scaled magnitude ramps in during the load phase (PCHIP through
    [0, 0, 0, 0, m, m]); application points are constant over the trial.
    Channels no DOF code touches stay zero.
    """
    if mappings is None:
        mappings = map_trial_loads(descriptor, table)

    channels = {name: np.zeros(grid.size, dtype=float) for name in LOAD_CHANNELS}
    active: list[str] = []
    for m in mappings:
        channels[m.channel] = synthesize(plan.breakpoints, load_targets(plan, m.scaled_magnitude), grid)
        active.append(m.channel)
        if m.point_channel is not None:
            channels[m.point_channel] = np.full(grid.size, float(m.point_value))
            active.append(m.point_channel)

    return LoadRecord(**channels, active_channels=tuple(dict.fromkeys(active)))
