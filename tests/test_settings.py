from __future__ import annotations

import json
from pathlib import Path

import pytest

from knee_sim.env import env_output_dir, env_time_step_s
from knee_sim.settings import (
    DEFAULT_CONFIG_PATH,
    TimelineConfig,
    apply_env_overrides,
    config_from_dict,
    read_config,
    read_study_settings,
    read_timeline_config,
)
from knee_sim.trial_names import build_trial_names


def test_empty_config_uses_defaults():
    config = config_from_dict({})
    assert config == TimelineConfig()
    assert config.time_step_s == 0.01
    assert config.phase_durations_passive_s == (0.5, 1.0, 0.5)
    assert config.phase_durations_laxity_s == (0.5, 1.0, 0.5, 1.0, 0.5)
    assert config.hip_flexion_angle_deg == 0.0
    assert config.pelvis_tilt_deg == 90.0


def test_repo_config_matches_defaults():
    assert config_from_dict(read_config(DEFAULT_CONFIG_PATH)) == TimelineConfig()


def test_config_values_are_read():
    cfg = {
        'timeline': {'time_step_s': 0.02, 'phase_durations_s': {'laxity': [1, 1, 1, 2, 1]}},
        'coordinates': {'pelvis_tilt_deg': 0},
        'loads': {'varus_valgus_moment_arm_m': 0.25, 'body': 'tibia_r'},
    }
    config = config_from_dict(cfg)
    assert config.time_step_s == 0.02
    assert config.phase_durations_laxity_s == (1.0, 1.0, 1.0, 2.0, 1.0)
    assert config.pelvis_tilt_deg == 0.0
    assert config.load_body == 'tibia_r'
    assert config.dof_table()['var'].moment_arm_m == 0.25


@pytest.mark.parametrize(
    'cfg',
    [
        {'timeline': {'time_step_s': 'fast'}},
        {'timeline': {'time_step_s': 0}},
        {'timeline': {'phase_durations_s': {'passive': []}}},
        {'loads': {'body': ''}},
        {'loads': {'varus_valgus_moment_arm_m': 0}},
    ],
)
def test_bad_config_values(cfg):
    with pytest.raises(ValueError):
        config_from_dict(cfg)


def test_env_override(monkeypatch):
    monkeypatch.setenv('KNEE_SIM_TIME_STEP_S', '0.005')
    assert apply_env_overrides(TimelineConfig()).time_step_s == 0.005
    monkeypatch.setenv('KNEE_SIM_TIME_STEP_S', 'abc')
    with pytest.raises(ValueError):
        apply_env_overrides(TimelineConfig())


def test_env_time_step_rejects_non_positive(monkeypatch):
    for value in ('0', '-0.01', 'nan'):
        monkeypatch.setenv('KNEE_SIM_TIME_STEP_S', value)
        with pytest.raises(ValueError):
            env_time_step_s()
    monkeypatch.setenv('KNEE_SIM_TIME_STEP_S', '  ')
    assert env_time_step_s() is None


def test_env_output_dir(monkeypatch):
    monkeypatch.delenv('KNEE_SIM_OUTPUT_DIR', raising=False)
    assert env_output_dir() is None
    monkeypatch.setenv('KNEE_SIM_OUTPUT_DIR', '~/trials')
    assert env_output_dir() == Path('~/trials').expanduser()


def test_read_timeline_config_from_file(tmp_path, monkeypatch):
    monkeypatch.delenv('KNEE_SIM_TIME_STEP_S', raising=False)
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'timeline': {'time_step_s': 0.05}}), encoding='utf-8')
    assert read_timeline_config(path).time_step_s == 0.05


def test_study_settings():
    cfg = {'study': {'test_dofs': ['flex', 'post-comp'], 'knee_flex_angles': [90], 'external_loads': [0, [350, 3000]]}}
    study = read_study_settings(cfg)
    assert study.external_loads == (0.0, (350.0, 3000.0))
    names = build_trial_names(study.test_dofs, study.knee_flex_angles, study.external_loads)
    assert names == ['flex_passive_0_90', 'lax_post-comp_frc350-3000_90']


def test_study_settings_missing_key():
    with pytest.raises(KeyError):
        read_study_settings({'study': {'test_dofs': ['flex']}})
