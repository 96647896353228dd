"""Trial names <-> TrialDescriptor.

Grammar:
  passive flexion:   flex_passive_<start_deg>_<end_deg>       e.g. flex_passive_0_90
  laxity / combined: lax_<dofs>_frc<loads>_<flexion_deg>      e.g. lax_var_frc10_25
                                                              e.g. lax_ant-comp_frc150-3000_30
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from knee_sim.dof_table import DOF_TABLE, DofRule, get_dof_rule
from knee_sim.errors import LengthMismatch, MalformedTrialName


PASSIVE = 'passive'
LAXITY = 'laxity'
COMBINED = 'combined'
TRIAL_KINDS = (PASSIVE, LAXITY, COMBINED)

PASSIVE_TEST_DOF = 'flex'
DOF_SEPARATOR = '-'
LOAD_PREFIX = 'frc'


@dataclass(frozen=True)
class TrialDescriptor:
    kind: str
    dof_codes: tuple[str, ...]
    magnitudes: tuple[float, ...]
    flexion_angle_deg: float
    start_flexion_angle_deg: float = 0.0

    def __post_init__(self) -> None:
        if self.kind not in TRIAL_KINDS:
            raise MalformedTrialName(f"Unknown trial kind '{self.kind}'.", field='kind')
        for field in ('flexion_angle_deg', 'start_flexion_angle_deg'):
            if not math.isfinite(getattr(self, field)):
                raise MalformedTrialName(f'{field} must be finite, got {getattr(self, field)}.', field=field)
        if self.kind == PASSIVE:
            if self.dof_codes or self.magnitudes:
                raise MalformedTrialName('Passive trials take no DOF codes or loads.', field='dof_codes')
            return
        if len(self.dof_codes) != len(self.magnitudes):
            raise LengthMismatch(
                f'{len(self.dof_codes)} DOF code(s) but {len(self.magnitudes)} load magnitude(s).',
                field='magnitudes',
            )
        expected = LAXITY if len(self.dof_codes) == 1 else COMBINED
        if not self.dof_codes or self.kind != expected:
            raise MalformedTrialName(
                f"Trial kind '{self.kind}' does not match {len(self.dof_codes)} DOF code(s).", field='kind'
            )
        if not all(math.isfinite(m) for m in self.magnitudes):
            raise MalformedTrialName('Load magnitudes must be finite.', field='magnitudes')
        if any(m < 0.0 for m in self.magnitudes):
            raise MalformedTrialName('Load magnitudes must be non-negative.', field='magnitudes')

    @property
    def is_loaded(self) -> bool:
        return self.kind != PASSIVE

    @property
    def name(self) -> str:
        return format_trial_name(self)


def _format_number(x: float) -> str:
    return np.format_float_positional(float(x), trim='-')


def _parse_number(token: str, *, trial: str, field: str) -> float:
    try:
        value = float(token)
    except ValueError as e:
        raise MalformedTrialName(f"'{token}' is not a number.", trial=trial, field=field) from e
    if not math.isfinite(value):
        raise MalformedTrialName(f"'{token}' is not a finite number.", trial=trial, field=field)
    return value


def format_trial_name(descriptor: TrialDescriptor) -> str:
    if descriptor.kind == PASSIVE:
        return (
            f'flex_passive_{_format_number(descriptor.start_flexion_angle_deg)}'
            f'_{_format_number(descriptor.flexion_angle_deg)}'
        )
    dofs = DOF_SEPARATOR.join(descriptor.dof_codes)
    loads = DOF_SEPARATOR.join(_format_number(m) for m in descriptor.magnitudes)
    return f'lax_{dofs}_{LOAD_PREFIX}{loads}_{_format_number(descriptor.flexion_angle_deg)}'


def parse_trial_name(name: str, table: dict[str, DofRule] | None = None) -> TrialDescriptor:
    """Parse a trial name into a validated TrialDescriptor.

    DOF codes are checked against the DOF table, so every descriptor that
    comes out of here can be mapped to load channels.
    """
    table = DOF_TABLE if table is None else table
    tokens = name.strip().split('_')
    if len(tokens) != 4:
        raise MalformedTrialName(
            f'Expected 4 underscore-separated tokens, got {len(tokens)}.', trial=name, field='name'
        )

    head = tokens[0]
    if head == 'flex':
        if tokens[1] != 'passive':
            raise MalformedTrialName(
                f"Expected 'flex_passive_...', got 'flex_{tokens[1]}_...'.", trial=name, field='kind'
            )
        start = _parse_number(tokens[2], trial=name, field='start_flexion_angle_deg')
        end = _parse_number(tokens[3], trial=name, field='flexion_angle_deg')
        return TrialDescriptor(PASSIVE, (), (), flexion_angle_deg=end, start_flexion_angle_deg=start)

    if head != 'lax':
        raise MalformedTrialName(f"Unknown trial prefix '{head}'.", trial=name, field='kind')

    dof_codes = tuple(c.strip().lower() for c in tokens[1].split(DOF_SEPARATOR))
    if any(not c for c in dof_codes):
        raise MalformedTrialName(f"Empty DOF code in '{tokens[1]}'.", trial=name, field='dof_codes')
    for code in dof_codes:
        get_dof_rule(code, table, trial=name)

    load_token = tokens[2]
    if not load_token.startswith(LOAD_PREFIX):
        raise MalformedTrialName(
            f"Load token must start with '{LOAD_PREFIX}', got '{load_token}'.", trial=name, field='magnitudes'
        )
    magnitudes = tuple(
        _parse_number(t, trial=name, field='magnitudes')
        for t in load_token[len(LOAD_PREFIX):].split(DOF_SEPARATOR)
    )
    if len(magnitudes) != len(dof_codes):
        raise LengthMismatch(
            f'{len(dof_codes)} DOF code(s) but {len(magnitudes)} load magnitude(s).',
            trial=name,
            field='magnitudes',
        )
    if any(m < 0.0 for m in magnitudes):
        raise MalformedTrialName('Load magnitudes must be non-negative.', trial=name, field='magnitudes')

    flexion = _parse_number(tokens[3], trial=name, field='flexion_angle_deg')
    kind = LAXITY if len(dof_codes) == 1 else COMBINED
    return TrialDescriptor(kind, dof_codes, magnitudes, flexion_angle_deg=flexion)


def build_trial_names(
    test_dofs: Sequence[str],
    knee_flex_angles: Sequence[float],
    external_loads: Sequence[float | Sequence[float]],
) -> list[str]:
    """Expand study settings into trial names.

    Each test DOF is run at every flexion angle. 'flex' means passive flexion
    from 0 deg to the flexion angle (its load entry is ignored). Combined
    tests join DOF codes with '-' and take one load per code.
    """
    if len(test_dofs) != len(external_loads):
        raise LengthMismatch(
            f'test_dofs has {len(test_dofs)} entries but external_loads has {len(external_loads)}.',
            field='external_loads',
        )

    names: list[str] = []
    for test_dof, loads in zip(test_dofs, external_loads):
        for angle in knee_flex_angles:
            if test_dof.strip().lower() == PASSIVE_TEST_DOF:
                d = TrialDescriptor(PASSIVE, (), (), flexion_angle_deg=float(angle))
            else:
                codes = tuple(c.strip().lower() for c in test_dof.split(DOF_SEPARATOR))
                mags = tuple(float(m) for m in np.atleast_1d(np.asarray(loads, dtype=float)))
                if len(mags) != len(codes):
                    raise LengthMismatch(
                        f"'{test_dof}' needs {len(codes)} load(s), got {len(mags)}.",
                        trial=test_dof,
                        field='external_loads',
                    )
                for code in codes:
                    get_dof_rule(code, trial=test_dof)
                kind = LAXITY if len(codes) == 1 else COMBINED
                d = TrialDescriptor(kind, codes, mags, flexion_angle_deg=float(angle))
            names.append(format_trial_name(d))
    return names
