from __future__ import annotations

import math
import threading

import numpy as np
import pytest
import sympy as sp

from twistctl.core.config import BaseActiveParams
from twistctl.core.errors import ExtensionInitError, InvalidInputError, UnsupportedConfigurationError
from twistctl.core.models import ActiveCartesianDimension, FrameTransform, JointStates, LimiterParams
from twistctl.extensions.base import ExtensionStatus, NoExtension
from twistctl.extensions.base_active import BaseActiveExtension
from twistctl.extensions.builder import build_extension
from twistctl.extensions.interfaces import StaticFrameSource
from twistctl.model.extension_jacobian import extension_jacobian_columns, symbolic_extension_columns


class RecordingSink:
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.sent: list[np.ndarray] = []

    def is_available(self) -> bool:
        return self.available

    def send(self, command):
        self.sent.append(np.array(command))


def _chain_jacobian(cols: int = 4) -> np.ndarray:
    return np.arange(6 * cols, dtype=float).reshape(6, cols)


def _base(sink=None, tip=None, base=None, params=None) -> BaseActiveExtension:
    frames = StaticFrameSource(tip or FrameTransform.identity(), base)
    return BaseActiveExtension(sink if sink is not None else RecordingSink(), frames, params)


def test_identity_frames_give_unit_columns():
    ext = _base()
    assert ext.status is ExtensionStatus.READY
    jac_chain = _chain_jacobian()
    jac = ext.adjust_jacobian(jac_chain)
    assert jac.shape == (6, 7)
    np.testing.assert_array_equal(jac[:, :4], jac_chain)
    expected = np.zeros((6, 3))
    expected[0, 0] = 1.0  # lin_x
    expected[1, 1] = 1.0  # lin_y
    expected[5, 2] = 1.0  # rot_z
    np.testing.assert_allclose(jac[:, 4:], expected, atol=1e-12)


def test_tip_offset_along_x_couples_rot_z_into_lin_y():
    ext = _base(tip=FrameTransform.from_xyz_rpy(1.0, 0.0, 0.0))
    rot_z_col = ext.adjust_jacobian(_chain_jacobian())[:, -1]
    np.testing.assert_allclose(rot_z_col, [0.0, 1.0, 0.0, 0.0, 0.0, 1.0], atol=1e-12)


def test_rotated_base_rotates_columns_and_offset():
    # base yawed by 90 deg in the chain base, tip 2 m ahead of the base
    cols = extension_jacobian_columns(
        FrameTransform.from_xyz_rpy(2.0, 0.0, 0.5),
        FrameTransform.from_xyz_rpy(3.0, -1.0, 0.0, yaw=math.pi / 2),
        ActiveCartesianDimension.PLANAR,
    )
    np.testing.assert_allclose(cols[:3, 0], [0.0, 1.0, 0.0], atol=1e-12)  # base x -> chain y
    np.testing.assert_allclose(cols[:3, 1], [-1.0, 0.0, 0.0], atol=1e-12)
    # offset in chain base is (0, 2, 0.5); z x (0, 2, 0.5) = (-2, 0, 0)
    np.testing.assert_allclose(cols[:, 2], [-2.0, 0.0, 0.0, 0.0, 0.0, 1.0], atol=1e-12)


def test_columns_follow_rigid_body_velocity_composition():
    eb_frame_ct = FrameTransform.from_xyz_rpy(0.4, -0.3, 0.9, 0.2, 0.1, -0.5)
    cb_frame_eb = FrameTransform.from_xyz_rpy(1.0, 0.5, 0.0, 0.05, -0.1, 1.2)
    all_axes = ActiveCartesianDimension.PLANAR | ActiveCartesianDimension.LIN_Z | ActiveCartesianDimension.ROT_X
    cols = extension_jacobian_columns(eb_frame_ct, cb_frame_eb, all_axes)
    R = cb_frame_eb.rotation
    p = R @ eb_frame_ct.translation
    for col, axis in zip(cols.T, all_axes.axes()):
        e = np.zeros(3)
        e[axis.twist_index % 3] = 1.0
        if axis.is_linear:
            np.testing.assert_allclose(col, np.concatenate((R @ e, np.zeros(3))), atol=1e-12)
        else:
            w = R @ e
            np.testing.assert_allclose(col, np.concatenate((np.cross(w, p), w)), atol=1e-12)


def test_symbolic_columns_match_numeric():
    sym = symbolic_extension_columns()
    values = (0.4, -0.3, 0.9, 0.2, 0.1, -0.5)
    subs = dict(zip((*sym.offset, *sym.rpy), values))
    symbolic = np.array(sym.columns.subs(subs).evalf().tolist(), dtype=float)
    numeric = extension_jacobian_columns(
        FrameTransform.from_xyz_rpy(*values[:3]),
        FrameTransform.from_xyz_rpy(0.0, 0.0, 0.0, *values[3:]),
        ActiveCartesianDimension.PLANAR,
    )
    np.testing.assert_allclose(symbolic, numeric, atol=1e-12)


def test_symbolic_planar_rot_z_column_with_yaw_only():
    sym = symbolic_extension_columns()
    px, py, _ = sym.offset
    roll, pitch, _ = sym.rpy
    col = sp.simplify(sym.J_linear[:, 2].subs({roll: 0, pitch: 0}))
    assert sp.simplify(col[0] + px * sp.sin(sym.rpy[2]) + py * sp.cos(sym.rpy[2])) == 0


def test_adjust_jacobian_requires_full_twist_rows():
    with pytest.raises(InvalidInputError):
        _base().adjust_jacobian(np.zeros((3, 4)))


def test_threshold_and_clamp_scenario():
    sink = RecordingSink()
    ext = _base(sink=sink)
    q_dot = np.array([0.3, -0.2, 0.002, 0.6, 0.003])  # two chain joints, then base
    command = ext.process_result_extension(q_dot)
    np.testing.assert_array_equal(command, [0.0, 0.5, 0.0])
    assert len(sink.sent) == 1
    np.testing.assert_array_equal(sink.sent[0], [0.0, 0.5, 0.0])


def test_negative_values_clamp_symmetrically_with_separate_limits():
    params = BaseActiveParams(max_vel_lin=0.3, max_vel_rot=0.8)
    ext = _base(params=params)
    command = ext.process_result_extension(np.array([-0.9, 0.1, -1.5]))
    np.testing.assert_allclose(command, [-0.3, 0.1, -0.8])


def test_process_result_rejects_short_solution():
    with pytest.raises(InvalidInputError):
        _base().process_result_extension(np.zeros(2))


def test_joint_states_and_limits_are_appended():
    ext = _base()
    chain_states = JointStates(("j1", "j2"), [0.1, 0.2], [0.0, 0.0])
    states = ext.adjust_joint_states(chain_states)
    assert states.names == ("j1", "j2", "base_lin_x", "base_lin_y", "base_rot_z")
    np.testing.assert_array_equal(states.positions[2:], np.zeros(3))
    np.testing.assert_array_equal(states.velocities[2:], np.zeros(3))

    limits = ext.adjust_limiter_params(LimiterParams([-1.0, -1.0], [1.0, 1.0], [2.0, 2.0], [4.0, 4.0]))
    assert limits.dof == 5
    np.testing.assert_array_equal(limits.velocity_max[2:], [0.5, 0.5, 0.5])
    assert np.all(np.isinf(limits.position_max[2:]))
    assert np.all(limits.position_min[2:] == -np.inf)


def test_feedback_updates_appended_joint_states():
    ext = _base()
    ext.ingest_feedback([0.1, 0.0, -0.2], positions=[1.0, 2.0, 0.5])
    ext.ingest_feedback([0.3, 0.1, 0.0])  # positions carried over
    states = ext.adjust_joint_states(JointStates(("j1",), [0.0], [0.0]))
    np.testing.assert_array_equal(states.positions[1:], [1.0, 2.0, 0.5])
    np.testing.assert_array_equal(states.velocities[1:], [0.3, 0.1, 0.0])
    with pytest.raises(InvalidInputError):
        ext.ingest_feedback([0.0, 0.0])


def test_feedback_snapshots_are_never_partial():
    ext = _base()

    def writer() -> None:
        for i in range(2000):
            v = float(i)
            ext.ingest_feedback([v, v, v], positions=[v, v, v])

    thread = threading.Thread(target=writer)
    thread.start()
    for _ in range(2000):
        snap = ext.state
        assert np.all(snap.velocities == snap.velocities[0])
        assert np.all(snap.positions == snap.velocities[0])
    thread.join()


def test_unavailable_sink_fails_init_and_passes_through():
    sink = RecordingSink(available=False)
    ext = _base(sink=sink)
    assert ext.status is ExtensionStatus.FAILED_INIT
    assert isinstance(ext.init_error, ExtensionInitError)
    assert ext.active_dof == 0

    jac_chain = _chain_jacobian()
    assert ext.adjust_jacobian(jac_chain) is jac_chain
    states = JointStates(("j1",), [0.0], [0.0])
    assert ext.adjust_joint_states(states) is states
    limits = LimiterParams.unbounded(1)
    assert ext.adjust_limiter_params(limits) is limits
    assert ext.process_result_extension(np.ones(4)) is None
    assert sink.sent == []

    # terminal: becoming available later does not revive this instance
    sink.available = True
    assert ext.init_extension() is False
    assert ext.status is ExtensionStatus.FAILED_INIT


def test_missing_collaborators_fail_init():
    no_sink = BaseActiveExtension(None, StaticFrameSource(FrameTransform.identity()))
    no_frames = BaseActiveExtension(RecordingSink(), None)
    jac_chain = _chain_jacobian()
    for ext in (no_sink, no_frames):
        assert ext.status is ExtensionStatus.FAILED_INIT
        assert ext.adjust_jacobian(jac_chain) is jac_chain
        assert ext.process_result_extension(np.ones(7)) is None


def test_no_extension_is_ready_pass_through():
    ext = NoExtension()
    assert ext.ready and ext.ext_dof == 0
    J = _chain_jacobian()
    assert ext.adjust_jacobian(J) is J
    assert ext.process_result_extension(np.ones(4)) is None


def test_build_extension():
    assert isinstance(build_extension("none"), NoExtension)
    ext = build_extension(
        "base_active", sink=RecordingSink(), frame_source=StaticFrameSource(FrameTransform.identity())
    )
    assert isinstance(ext, BaseActiveExtension) and ext.ready
    with pytest.raises(UnsupportedConfigurationError):
        build_extension("torso")
