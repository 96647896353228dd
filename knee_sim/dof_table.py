"""Declarative DOF table: sign, scaling, channel and application point per DOF code.

This is the only place where a laxity DOF code is tied to a physical load
channel. The parser validates codes against it and the load composer reads
channels and scaled magnitudes from it.
"""

from __future__ import annotations

from dataclasses import dataclass

from knee_sim.errors import UnknownDOFCode


# Order matches the columns of an ExternalForce data file.
LOAD_CHANNELS = (
    'force_vx',
    'force_vy',
    'force_vz',
    'force_px',
    'force_py',
    'force_pz',
    'torque_x',
    'torque_y',
    'torque_z',
)

POSITIVE_DOFS = frozenset({'ant', 'ir', 'val', 'comp'})
NEGATIVE_DOFS = frozenset({'post', 'er', 'var', 'dist'})

# Varus/valgus moments are applied as a force near the ankle.
DEFAULT_VARUS_VALGUS_MOMENT_ARM_M = 0.3
# Anterior/posterior drawer force at tibial tuberosity height (KT-1000 style).
DEFAULT_AP_POINT_HEIGHT_M = -0.1


@dataclass(frozen=True)
class DofRule:
    code: str
    sign: float
    channel: str
    moment_arm_m: float | None = None  # divide magnitude by this (moment -> force)
    point_channel: str | None = None
    point_value: float | None = None

    def scale(self, magnitude: float) -> float:
        value = float(magnitude)
        if self.moment_arm_m is not None:
            value = value / abs(self.moment_arm_m)
        return value * self.sign


@dataclass(frozen=True)
class LoadMapping:
    code: str
    channel: str
    sign: float
    scaled_magnitude: float
    point_channel: str | None
    point_value: float | None


def load_sign(code: str) -> float:
    if code in POSITIVE_DOFS:
        return 1.0
    if code in NEGATIVE_DOFS:
        return -1.0
    raise UnknownDOFCode(f"Unknown DOF code '{code}'.", field='dof_codes')


def build_dof_table(
    varus_valgus_moment_arm_m: float = DEFAULT_VARUS_VALGUS_MOMENT_ARM_M,
    ap_point_height_m: float = DEFAULT_AP_POINT_HEIGHT_M,
) -> dict[str, DofRule]:
    if varus_valgus_moment_arm_m == 0.0:
        raise ValueError('varus_valgus_moment_arm_m must be non-zero.')
    arm = abs(float(varus_valgus_moment_arm_m))
    ap_height = float(ap_point_height_m)

    table: dict[str, DofRule] = {}
    for code in ('ant', 'post'):
        table[code] = DofRule(
            code, load_sign(code), 'force_vx', point_channel='force_py', point_value=ap_height
        )
    for code in ('var', 'val'):
        # The force acts at the end of the lever arm, below the joint.
        table[code] = DofRule(
            code, load_sign(code), 'force_vz', moment_arm_m=arm, point_channel='force_py', point_value=-arm
        )
    for code in ('ir', 'er'):
        table[code] = DofRule(code, load_sign(code), 'torque_y')
    for code in ('comp', 'dist'):
        table[code] = DofRule(code, load_sign(code), 'force_vy')
    return table


DOF_TABLE: dict[str, DofRule] = build_dof_table()


def get_dof_rule(
    code: str, table: dict[str, DofRule] | None = None, *, trial: str | None = None
) -> DofRule:
    table = DOF_TABLE if table is None else table
    key = code.strip().lower()
    if key not in table:
        valid = ', '.join(table.keys())
        raise UnknownDOFCode(f"Unknown DOF code '{code}'. Available: {valid}", trial=trial, field='dof_codes')
    return table[key]


def map_load(code: str, magnitude: float, table: dict[str, DofRule] | None = None) -> LoadMapping:
    """Resolve one (DOF code, magnitude) pair to its signed, scaled load channel.

    Varus/valgus magnitudes are moments (Nm) and are converted to an
    equivalent force at the moment arm: map_load('var', 30) -> -100 N on force_vz.
    """
    rule = get_dof_rule(code, table)
    return LoadMapping(
        code=rule.code,
        channel=rule.channel,
        sign=rule.sign,
        scaled_magnitude=rule.scale(magnitude),
        point_channel=rule.point_channel,
        point_value=rule.point_value,
    )
