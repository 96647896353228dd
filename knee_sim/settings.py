"""Config loading for trial preparation (config.json at the repo root).

Policy:
- Timeline keys are optional; missing keys take the defaults below, which
  reproduce the standard trial templates.
- Keys that are present are type-checked; bad values terminate with a clear error.
- Study settings and output paths are only read by the CLI.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from knee_sim.dof_table import (
    DEFAULT_AP_POINT_HEIGHT_M,
    DEFAULT_VARUS_VALGUS_MOMENT_ARM_M,
    DofRule,
    build_dof_table,
)
from knee_sim.env import env_time_step_s
from knee_sim.phases import DEFAULT_LAXITY_DURATIONS_S, DEFAULT_PASSIVE_DURATIONS_S
from knee_sim.time_grid import DEFAULT_TIME_STEP_S


REPO_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = REPO_ROOT / 'config.json'
DEFAULT_OUTPUT_DIR = REPO_ROOT / 'output' / 'trials'

DEFAULT_LOAD_BODY = 'tibia_proximal_r'
DEFAULT_HIP_FLEXION_DEG = 0.0
DEFAULT_PELVIS_TILT_DEG = 90.0  # 0 = standing, 90 = supine


@dataclass(frozen=True)
class TimelineConfig:
    time_step_s: float = DEFAULT_TIME_STEP_S
    phase_durations_passive_s: tuple[float, ...] = DEFAULT_PASSIVE_DURATIONS_S
    phase_durations_laxity_s: tuple[float, ...] = DEFAULT_LAXITY_DURATIONS_S
    hip_flexion_angle_deg: float = DEFAULT_HIP_FLEXION_DEG
    pelvis_tilt_deg: float = DEFAULT_PELVIS_TILT_DEG
    load_body: str = DEFAULT_LOAD_BODY
    varus_valgus_moment_arm_m: float = DEFAULT_VARUS_VALGUS_MOMENT_ARM_M
    ap_point_height_m: float = DEFAULT_AP_POINT_HEIGHT_M

    def dof_table(self) -> dict[str, DofRule]:
        return build_dof_table(self.varus_valgus_moment_arm_m, self.ap_point_height_m)


@dataclass(frozen=True)
class StudySettings:
    test_dofs: tuple[str, ...]
    knee_flex_angles: tuple[float, ...]
    external_loads: tuple[float | tuple[float, ...], ...]


def resolve_path(p: str) -> Path:
    path = Path(p)
    return path if path.is_absolute() else (REPO_ROOT / path)


def load_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding='utf-8'))


def _get_path(cfg: dict, keys: list[str]) -> Any:
    cur: Any = cfg
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return None
        cur = cur[k]
    return cur


def _require_path(cfg: dict, keys: list[str]) -> Any:
    cur: Any = cfg
    prefix: list[str] = []
    for k in keys:
        prefix.append(k)
        if not isinstance(cur, dict) or k not in cur:
            raise KeyError(f'Missing required config key: {".".join(prefix)}')
        cur = cur[k]
    return cur


def _as_float(v: Any, keys: list[str]) -> float:
    try:
        return float(v)
    except Exception as e:
        raise ValueError(f'Config key {".".join(keys)} must be a float-like value.') from e


def _as_float_list(v: Any, keys: list[str]) -> tuple[float, ...]:
    if not isinstance(v, list) or not v:
        raise ValueError(f'Config key {".".join(keys)} must be a non-empty list of numbers.')
    return tuple(_as_float(x, keys) for x in v)


def opt_float(cfg: dict, keys: list[str], default: float) -> float:
    v = _get_path(cfg, keys)
    return default if v is None else _as_float(v, keys)


def opt_float_list(cfg: dict, keys: list[str], default: tuple[float, ...]) -> tuple[float, ...]:
    v = _get_path(cfg, keys)
    return default if v is None else _as_float_list(v, keys)


def opt_str(cfg: dict, keys: list[str], default: str) -> str:
    v = _get_path(cfg, keys)
    if v is None:
        return default
    if not isinstance(v, str) or not v.strip():
        raise ValueError(f'Config key {".".join(keys)} must be a non-empty string.')
    return v


def config_from_dict(cfg: dict) -> TimelineConfig:
    config = TimelineConfig(
        time_step_s=opt_float(cfg, ['timeline', 'time_step_s'], DEFAULT_TIME_STEP_S),
        phase_durations_passive_s=opt_float_list(
            cfg, ['timeline', 'phase_durations_s', 'passive'], DEFAULT_PASSIVE_DURATIONS_S
        ),
        phase_durations_laxity_s=opt_float_list(
            cfg, ['timeline', 'phase_durations_s', 'laxity'], DEFAULT_LAXITY_DURATIONS_S
        ),
        hip_flexion_angle_deg=opt_float(cfg, ['coordinates', 'hip_flexion_angle_deg'], DEFAULT_HIP_FLEXION_DEG),
        pelvis_tilt_deg=opt_float(cfg, ['coordinates', 'pelvis_tilt_deg'], DEFAULT_PELVIS_TILT_DEG),
        load_body=opt_str(cfg, ['loads', 'body'], DEFAULT_LOAD_BODY),
        varus_valgus_moment_arm_m=opt_float(
            cfg, ['loads', 'varus_valgus_moment_arm_m'], DEFAULT_VARUS_VALGUS_MOMENT_ARM_M
        ),
        ap_point_height_m=opt_float(cfg, ['loads', 'ap_point_height_m'], DEFAULT_AP_POINT_HEIGHT_M),
    )
    validate_config(config)
    return config


def validate_config(config: TimelineConfig) -> None:
    if config.time_step_s <= 0.0:
        raise ValueError(f'timeline.time_step_s must be positive, got {config.time_step_s}.')
    if config.varus_valgus_moment_arm_m == 0.0:
        raise ValueError('loads.varus_valgus_moment_arm_m must be non-zero.')


def apply_env_overrides(config: TimelineConfig) -> TimelineConfig:
    step = env_time_step_s()
    if step is None:
        return config
    config = replace(config, time_step_s=step)
    validate_config(config)
    return config


def read_config(path: Path = DEFAULT_CONFIG_PATH) -> dict:
    return load_json(path)


def read_timeline_config(path: Path = DEFAULT_CONFIG_PATH) -> TimelineConfig:
    return apply_env_overrides(config_from_dict(read_config(path)))


def read_study_settings(cfg: dict) -> StudySettings:
    test_dofs = _require_path(cfg, ['study', 'test_dofs'])
    angles = _require_path(cfg, ['study', 'knee_flex_angles'])
    loads = _require_path(cfg, ['study', 'external_loads'])
    if not isinstance(test_dofs, list) or not all(isinstance(d, str) and d for d in test_dofs):
        raise ValueError('Config key study.test_dofs must be a list of non-empty strings.')

    parsed_loads: list[float | tuple[float, ...]] = []
    if not isinstance(loads, list):
        raise ValueError('Config key study.external_loads must be a list.')
    for v in loads:
        if isinstance(v, list):
            parsed_loads.append(_as_float_list(v, ['study', 'external_loads']))
        else:
            parsed_loads.append(_as_float(v, ['study', 'external_loads']))

    return StudySettings(
        test_dofs=tuple(test_dofs),
        knee_flex_angles=_as_float_list(angles, ['study', 'knee_flex_angles']),
        external_loads=tuple(parsed_loads),
    )
