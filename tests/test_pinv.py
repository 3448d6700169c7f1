from __future__ import annotations

import numpy as np
import pytest

from twistctl.core.config import DampingMethod, PseudoInverseParams
from twistctl.core.errors import InvalidInputError, SingularMatrixError, UnsupportedConfigurationError
from twistctl.solvers.damping import ConstantDamping, DampingStrategy, NoDamping, build_damping_strategy
from twistctl.solvers.pinv import (
    PInvBySVD,
    PInvDirect,
    build_pinv_calculator,
    invert_singular_values,
)

RNG = np.random.default_rng(7)


class RecordingDamping(DampingStrategy):
    def __init__(self, lam: float) -> None:
        self.lam = lam
        self.calls: list[np.ndarray] = []

    def _damping_factor(self, singular_values, jacobian):
        self.calls.append(np.array(singular_values))
        return self.lam


@pytest.mark.parametrize("shape", [(6, 7), (6, 6), (3, 5), (6, 3)])
def test_svd_undamped_moore_penrose_consistency(shape):
    J = RNG.normal(size=shape)
    pinv = PInvBySVD().calculate(J)
    assert pinv.shape == (shape[1], shape[0])
    np.testing.assert_allclose(J @ pinv @ J, J, atol=1e-9)
    np.testing.assert_allclose(pinv, np.linalg.pinv(J), atol=1e-9)


def test_svd_undamped_truncates_zero_singular_value():
    J = np.array([[1.0, 0.0, 0.0], [0.0, 0.0, 0.0]])
    pinv = PInvBySVD().calculate(J)
    assert np.all(np.isfinite(pinv))
    np.testing.assert_allclose(pinv, [[1.0, 0.0], [0.0, 0.0], [0.0, 0.0]])


def test_svd_empty_jacobian_gives_zero_matrix():
    calc = PInvBySVD()
    J = np.zeros((6, 0))
    np.testing.assert_array_equal(calc.calculate(J), np.zeros((0, 6)))
    params = PseudoInverseParams()
    out = calc.calculate(J, params, build_damping_strategy(params))
    assert out.shape == (0, 6)


def test_quadratic_damping_zeroes_values_below_eps():
    sv = np.array([2.0, 0.5, 1e-4])
    inv = invert_singular_values(sv, 0.0, 1e-3)
    np.testing.assert_allclose(inv, [0.5, 2.0, 0.0])
    assert inv[2] == 0.0

    damped = invert_singular_values(sv, 0.1, 1e-3)
    np.testing.assert_allclose(damped[:2], sv[:2] / (sv[:2] ** 2 + 0.01))
    assert damped[2] == 0.0


def test_eps_compares_against_sigma_not_sigma_squared():
    # sigma = 0.01 >= eps = 1e-3 although sigma^2 = 1e-4 < eps
    inv = invert_singular_values(np.array([0.01]), 0.0, 1e-3)
    assert inv[0] == pytest.approx(100.0)


def test_numerical_filtering_lambda_only_affects_last_value():
    sv = np.array([3.0, 1.0, 0.2])
    base = invert_singular_values(sv, 0.1, 1e-6, numerical_filtering=True, beta=0.05)
    more_lambda = invert_singular_values(sv, 0.7, 1e-6, numerical_filtering=True, beta=0.05)
    more_beta = invert_singular_values(sv, 0.1, 1e-6, numerical_filtering=True, beta=0.3)

    np.testing.assert_array_equal(base[:-1], more_lambda[:-1])
    assert base[-1] != more_lambda[-1]
    assert np.all(base[:-1] != more_beta[:-1])
    np.testing.assert_allclose(base[:-1], sv[:-1] / (sv[:-1] ** 2 + 0.05**2))
    assert base[-1] == pytest.approx(0.2 / (0.04 + 0.05**2 + 0.1**2))


def test_numerical_filtering_zero_singular_value_without_regularisation():
    inv = invert_singular_values(np.array([1.0, 0.0]), 0.0, 1e-6, numerical_filtering=True, beta=0.0)
    np.testing.assert_array_equal(inv, [1.0, 0.0])


def test_svd_damped_calls_strategy_once_with_singular_values():
    J = RNG.normal(size=(6, 7))
    damping = RecordingDamping(0.05)
    params = PseudoInverseParams(damping_method=DampingMethod.CONSTANT)
    result = PInvBySVD().calculate_with_info(J, params, damping)
    pinv = result.pinv

    assert len(damping.calls) == 1
    np.testing.assert_allclose(damping.calls[0], np.linalg.svd(J, compute_uv=False))
    U, S, Vt = np.linalg.svd(J, full_matrices=False)
    expected = Vt.T @ np.diag(S / (S**2 + 0.05**2)) @ U.T
    np.testing.assert_allclose(pinv, expected, atol=1e-12)
    assert result.damping_factor == 0.05
    np.testing.assert_allclose(result.singular_values, S)


def test_svd_damped_with_numerical_filtering_only_last_direction_depends_on_lambda():
    J = np.diag([2.0, 1.0, 0.01])
    params = PseudoInverseParams(numerical_filtering=True, beta=0.01)
    low = PInvBySVD().calculate(J, params, ConstantDamping(0.0))
    high = PInvBySVD().calculate(J, params, ConstantDamping(0.5))
    np.testing.assert_allclose(low[:2, :2], high[:2, :2])
    assert high[2, 2] < low[2, 2]


def test_direct_square_matches_inverse():
    J = np.array([[2.0, 0.0, 1.0], [1.0, 3.0, 0.0], [0.0, 1.0, 4.0]])
    np.testing.assert_allclose(PInvDirect().calculate(J), np.linalg.inv(J), atol=1e-12)


def test_direct_right_inverse_identity():
    J = RNG.normal(size=(3, 6))
    pinv = PInvDirect().calculate(J)
    assert pinv.shape == (6, 3)
    np.testing.assert_allclose(J @ pinv, np.eye(3), atol=1e-10)


def test_direct_left_inverse_for_tall_jacobian():
    J = RNG.normal(size=(6, 4))
    pinv = PInvDirect().calculate(J)
    np.testing.assert_allclose(pinv @ J, np.eye(4), atol=1e-10)


def test_direct_damped_uses_placeholder_singular_values():
    J = RNG.normal(size=(3, 6))
    damping = RecordingDamping(0.2)
    pinv = PInvDirect().calculate(J, PseudoInverseParams(), damping)
    np.testing.assert_array_equal(damping.calls[0], np.zeros(1))
    expected = J.T @ np.linalg.inv(J @ J.T + 0.04 * np.eye(3))
    np.testing.assert_allclose(pinv, expected, atol=1e-12)


def test_direct_matches_svd_for_full_rank_damping():
    J = RNG.normal(size=(6, 7))
    params = PseudoInverseParams(eps_truncation=1e-12)
    damping = ConstantDamping(0.1)
    np.testing.assert_allclose(
        PInvDirect().calculate(J, params, damping),
        PInvBySVD().calculate(J, params, damping),
        atol=1e-9,
    )


def test_direct_rejects_svd_only_damping():
    params = PseudoInverseParams(damping_method=DampingMethod.LEAST_SINGULAR_VALUE)
    with pytest.raises(UnsupportedConfigurationError):
        PInvDirect().calculate(np.eye(3), params, build_damping_strategy(params))


def test_direct_singular_gram_matrix_raises():
    J = np.array([[1.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
    with pytest.raises(SingularMatrixError):
        PInvDirect().calculate(J)
    with pytest.raises(np.linalg.LinAlgError):
        PInvDirect().calculate(J, PseudoInverseParams(), NoDamping())


def test_direct_damping_makes_singular_jacobian_invertible():
    J = np.array([[1.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
    pinv = PInvDirect().calculate(J, PseudoInverseParams(), ConstantDamping(0.1))
    assert np.all(np.isfinite(pinv))


@pytest.mark.parametrize(
    "J",
    [np.zeros(3), np.full((2, 2), np.nan), np.zeros((7, 3))],
    ids=["vector", "nan", "too-many-rows"],
)
def test_invalid_jacobian_is_rejected(J):
    for calc in (PInvBySVD(), PInvDirect()):
        with pytest.raises(InvalidInputError):
            calc.calculate(J)


def test_damped_call_needs_params_and_strategy():
    with pytest.raises(InvalidInputError):
        PInvBySVD().calculate(np.eye(2), PseudoInverseParams(), None)


def test_damping_failure_propagates():
    class Broken(DampingStrategy):
        def _damping_factor(self, singular_values, jacobian):
            return -1.0

    with pytest.raises(InvalidInputError):
        PInvBySVD().calculate(np.eye(3), PseudoInverseParams(), Broken())


def test_build_pinv_calculator():
    assert isinstance(build_pinv_calculator("SVD"), PInvBySVD)
    assert isinstance(build_pinv_calculator("direct"), PInvDirect)
    with pytest.raises(UnsupportedConfigurationError):
        build_pinv_calculator("qr")


def test_failed_damped_call_leaves_calculator_reusable():
    class NanDamping(DampingStrategy):
        def _damping_factor(self, singular_values, jacobian):
            return float("nan")

    calc = PInvBySVD()
    params = PseudoInverseParams()
    first = calc.calculate_with_info(np.eye(3), params, ConstantDamping(0.3))
    assert first.damping_factor == 0.3
    with pytest.raises(InvalidInputError):
        calc.calculate_with_info(np.diag([5.0, 4.0]), params, NanDamping())
    assert not hasattr(calc, "last_damping_factor")
    assert not hasattr(calc, "last_singular_values")

    again = calc.calculate_with_info(np.diag([5.0, 4.0]), params, NoDamping())
    assert again.damping_factor == 0.0
    np.testing.assert_allclose(again.singular_values, [5.0, 4.0])
    np.testing.assert_allclose(again.pinv, np.diag([0.2, 0.25]))


def test_direct_result_has_no_singular_values():
    result = PInvDirect().calculate_with_info(np.eye(2), PseudoInverseParams(), ConstantDamping(0.0))
    assert result.singular_values is None
    assert result.damping_factor == 0.0
    np.testing.assert_allclose(result.pinv, np.eye(2))
