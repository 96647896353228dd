"""Trial pipeline: name -> descriptor -> phases -> time grid -> signals."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

import numpy as np

from knee_sim.loads import LoadRecord, compose_load_record, map_trial_loads
from knee_sim.phases import PhasePlan, plan_phases
from knee_sim.settings import TimelineConfig
from knee_sim.signals import flexion_targets, synthesize
from knee_sim.time_grid import build_time_grid
from knee_sim.trial_names import TrialDescriptor, parse_trial_name


@dataclass(frozen=True, eq=False)
class TrialRecord:
    descriptor: TrialDescriptor
    plan: PhasePlan
    time_s: np.ndarray
    knee_flex_deg: np.ndarray
    hip_flex_deg: np.ndarray
    pelvis_tilt_deg: np.ndarray
    loads: LoadRecord | None
    load_body: str

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def n_samples(self) -> int:
        return int(self.time_s.size)

    def coordinate_columns(self) -> dict[str, np.ndarray]:
        """Prescribed coordinates, keyed by model coordinate name."""
        return {
            'time': self.time_s,
            'knee_flex_r': self.knee_flex_deg,
            'hip_flex_r': self.hip_flex_deg,
            'pelvis_tilt': self.pelvis_tilt_deg,
        }

    def load_columns(self) -> dict[str, np.ndarray] | None:
        if self.loads is None:
            return None
        return {'time': self.time_s, **self.loads.as_columns(self.load_body)}

    def load_definition(self, data_file: str | None = None) -> dict | None:
        """ExternalForce description that points at the load columns in `data_file`."""
        if self.loads is None:
            return None
        body = self.load_body
        return {
            'name': f'{self.name}_load',
            'applied_to_body': body,
            'force_expressed_in_body': body,
            'point_expressed_in_body': body,
            'force_identifier': f'{body}_force_v',
            'point_identifier': f'{body}_force_p',
            'torque_identifier': f'{body}_torque_',
            'data_file': data_file or f'external_loads_{self.name}.csv',
            'header': f'{self.name} External Load',
        }


def build_trial(trial: str | TrialDescriptor, config: TimelineConfig | None = None) -> TrialRecord:
    """
    Build every control signal for one trial.

    Validation (name grammar, DOF codes, phase template, channel collisions)
    all happens before the time grid and curves are computed.
    """
    config = TimelineConfig() if config is None else config
    table = config.dof_table()
    descriptor = parse_trial_name(trial, table) if isinstance(trial, str) else trial

    plan = plan_phases(descriptor.kind, config.phase_durations_passive_s, config.phase_durations_laxity_s)
    mappings = map_trial_loads(descriptor, table) if descriptor.is_loaded else None

    grid = build_time_grid(plan.total_duration, config.time_step_s)

    knee = synthesize(
        plan.breakpoints,
        flexion_targets(plan, descriptor.flexion_angle_deg, descriptor.start_flexion_angle_deg),
        grid,
    )
    hip = synthesize(plan.breakpoints, flexion_targets(plan, config.hip_flexion_angle_deg), grid)
    pelvis = np.full(grid.size, float(config.pelvis_tilt_deg))

    loads = None
    if mappings is not None:
        loads = compose_load_record(descriptor, plan, grid, table, mappings=mappings)

    for arr in (grid, knee, hip, pelvis):
        arr.setflags(write=False)

    return TrialRecord(
        descriptor=descriptor,
        plan=plan,
        time_s=grid,
        knee_flex_deg=knee,
        hip_flex_deg=hip,
        pelvis_tilt_deg=pelvis,
        loads=loads,
        load_body=config.load_body,
    )


def build_trials(
    trials: Iterable[str | TrialDescriptor],
    config: TimelineConfig | None = None,
    echo: Callable[[str], None] = print,
) -> list[TrialRecord]:
    """Build several independent trials; the first invalid trial aborts the batch."""
    records: list[TrialRecord] = []
    for trial in trials:
        rec = build_trial(trial, config)
        echo(
            f'  {rec.name}: {rec.descriptor.kind}, {rec.plan.n_phases} phases, '
            f'{rec.plan.total_duration:.2f} s, {rec.n_samples} samples'
        )
        records.append(rec)
    return records
