from __future__ import annotations

import numpy as np
import pytest

from knee_sim.dof_table import LOAD_CHANNELS, build_dof_table, load_sign, map_load
from knee_sim.errors import ChannelCollision, UnknownDOFCode
from knee_sim.loads import compose_load_record, map_trial_loads
from knee_sim.phases import plan_phases
from knee_sim.time_grid import build_time_grid
from knee_sim.trial_names import COMBINED, LAXITY, TrialDescriptor, parse_trial_name


def test_sign_groups():
    for code in ('ant', 'ir', 'val', 'comp'):
        assert load_sign(code) == 1.0
    for code in ('post', 'er', 'var', 'dist'):
        assert load_sign(code) == -1.0
    with pytest.raises(UnknownDOFCode):
        load_sign('xyz')


def test_anterior_posterior_sign():
    ant = map_load('ant', 100)
    post = map_load('post', 100)
    assert ant.channel == post.channel == 'force_vx'
    assert ant.scaled_magnitude == 100.0
    assert post.scaled_magnitude == -100.0
    assert ant.point_channel == 'force_py'
    assert ant.point_value == pytest.approx(-0.1)


def test_varus_moment_arm_conversion():
    m = map_load('var', 30)
    assert m.channel == 'force_vz'
    assert m.sign == -1.0
    assert m.scaled_magnitude == pytest.approx(-100.0)
    assert m.point_value == pytest.approx(-0.3)
    assert map_load('val', 30).scaled_magnitude == pytest.approx(100.0)


@pytest.mark.parametrize(
    'code, channel, value',
    [('ir', 'torque_y', 5.0), ('er', 'torque_y', -5.0), ('comp', 'force_vy', 5.0), ('dist', 'force_vy', -5.0)],
)
def test_unscaled_channels(code, channel, value):
    m = map_load(code, 5)
    assert m.channel == channel
    assert m.scaled_magnitude == value
    assert m.point_channel is None


def test_unknown_code():
    with pytest.raises(UnknownDOFCode):
        map_load('xyz', 10)


def test_configurable_moment_arm():
    table = build_dof_table(varus_valgus_moment_arm_m=0.4)
    m = map_load('val', 20, table)
    assert m.scaled_magnitude == pytest.approx(50.0)
    assert m.point_value == pytest.approx(-0.4)


def test_defined_codes_use_distinct_load_channels():
    table = build_dof_table()
    groups = {}
    for rule in table.values():
        groups.setdefault(rule.channel, set()).add(rule.sign)
    # One positive and one negative code per load channel.
    assert all(signs == {1.0, -1.0} for signs in groups.values())
    assert len(groups) == 4


def _record(name):
    d = parse_trial_name(name)
    plan = plan_phases(d.kind)
    grid = build_time_grid(plan.total_duration, 0.01)
    return compose_load_record(d, plan, grid), grid


def test_single_dof_record():
    rec, grid = _record('lax_var_frc30_25')
    assert rec.force_vz.shape == grid.shape
    assert rec.force_vz[-1] == pytest.approx(-100.0)
    assert rec.force_vz.min() >= -100.0 - 1e-9
    np.testing.assert_allclose(rec.force_py, -0.3)
    for name in LOAD_CHANNELS:
        if name not in ('force_vz', 'force_py'):
            assert np.all(rec.channel(name) == 0.0), name
    assert rec.active_channels == ('force_vz', 'force_py')


def test_combined_superposition():
    rec, grid = _record('lax_ant-comp_frc150-3000_30')
    assert rec.force_vx[-1] == pytest.approx(150.0)
    assert rec.force_vy[-1] == pytest.approx(3000.0)
    np.testing.assert_allclose(rec.force_vx[grid <= 2.0], 0.0, atol=1e-12)
    np.testing.assert_allclose(rec.force_vy[grid <= 2.0], 0.0, atol=1e-12)
    assert np.all(np.diff(rec.force_vx) >= -1e-9)
    assert np.all(np.diff(rec.force_vy) >= -1e-9)
    np.testing.assert_allclose(rec.force_py, -0.1)
    for name in ('force_vz', 'force_px', 'force_pz', 'torque_x', 'torque_y', 'torque_z'):
        assert np.all(rec.channel(name) == 0.0), name


def test_as_columns_uses_body_prefix():
    rec, _ = _record('lax_ir_frc5_30')
    cols = rec.as_columns('tibia_proximal_r')
    assert list(cols) == [f'tibia_proximal_r_{c}' for c in LOAD_CHANNELS]
    assert cols['tibia_proximal_r_torque_y'][-1] == pytest.approx(5.0)


def test_same_channel_collision():
    d = TrialDescriptor(COMBINED, ('ant', 'post'), (100.0, 100.0), 30.0)
    with pytest.raises(ChannelCollision) as info:
        map_trial_loads(d)
    assert info.value.trial == 'lax_ant-post_frc100-100_30'


def test_application_point_collision():
    d = TrialDescriptor(COMBINED, ('ant', 'var'), (100.0, 10.0), 30.0)
    with pytest.raises(ChannelCollision):
        map_trial_loads(d)


def test_unknown_code_in_descriptor():
    d = TrialDescriptor(LAXITY, ('xyz',), (10.0,), 30.0)
    with pytest.raises(UnknownDOFCode):
        map_trial_loads(d)


def test_record_is_read_only():
    rec, _ = _record('lax_comp_frc3000_0')
    with pytest.raises(ValueError):
        rec.force_vy[0] = 1.0
    with pytest.raises(KeyError):
        rec.channel('force_vw')
