"""Tests for the SE(3) operations."""

import hypothesis
import jax
import jax.numpy as jnp
import jax.scipy.linalg
import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from jax_lgmath import DimensionError
from jax_lgmath.common import near_equal_lie_alg
from jax_lgmath.transforms import se3, so3

# Use hypothesis profile for CI
hypothesis.settings.register_profile("ci", max_examples=10, deadline=None)

PI = jnp.pi
SPECIAL_VECS = jnp.array([
    [0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
    [1.0, 0.0, 0.0, 0.0, 0.0, 0.0],
    [0.0, 1.0, 0.0, 0.0, 0.0, 0.0],
    [0.0, 0.0, 1.0, 0.0, 0.0, 0.0],
    [0.0, 0.0, 0.0, PI, 0.0, 0.0],
    [0.0, 0.0, 0.0, 0.0, PI, 0.0],
    [0.0, 0.0, 0.0, 0.0, 0.0, PI],
    [0.0, 0.0, 0.0, -PI, 0.0, 0.0],
    [0.0, 0.0, 0.0, 0.0, -PI, 0.0],
    [0.0, 0.0, 0.0, 0.0, 0.0, -PI],
    [0.0, 0.0, 0.0, 0.5 * PI, 0.0, 0.0],
    [0.0, 0.0, 0.0, 0.0, 0.5 * PI, 0.0],
    [0.0, 0.0, 0.0, 0.0, 0.0, 0.5 * PI],
])


def random_vecs(seed, n):
    return jax.random.uniform(jax.random.PRNGKey(seed), (n, 6), minval=-1.0, maxval=1.0)


def test_from_rotation_and_translation():
    """Test SE(3) construction from rotation and translation."""
    T = se3.from_rotation_and_translation(jnp.eye(3), jnp.array([1.0, 2.0, 3.0]))

    expected = jnp.array([[1.0, 0.0, 0.0, 1.0], [0.0, 1.0, 0.0, 2.0], [0.0, 0.0, 1.0, 3.0], [0.0, 0.0, 0.0, 1.0]])
    np.testing.assert_allclose(T, expected, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(se3.get_rotation(T), jnp.eye(3), atol=1e-12)
    np.testing.assert_allclose(se3.get_translation(T), jnp.array([1.0, 2.0, 3.0]), atol=1e-12)


def test_hat():
    """hat(xi) has the rotation generator on the left and rho on the right."""
    xi = jnp.array([1.0, 2.0, 3.0, 0.1, 0.2, 0.3])
    X = se3.hat(xi)

    np.testing.assert_allclose(X[:3, :3], so3.hat(xi[3:]), atol=1e-12)
    np.testing.assert_allclose(X[:3, 3], xi[:3], atol=1e-12)
    np.testing.assert_allclose(X[3], jnp.zeros(4), atol=1e-12)


def test_exp_identity():
    """Test SE(3) exp with zero vector gives identity."""
    np.testing.assert_array_equal(se3.exp(jnp.zeros(6)), jnp.eye(4))


def test_log_identity():
    """Test SE(3) log with identity matrix gives zero vector."""
    np.testing.assert_array_equal(se3.log(jnp.eye(4)), jnp.zeros(6))


def test_pure_translation():
    """Without rotation the translation block is rho itself."""
    T = se3.exp(jnp.array([1.0, 2.0, 3.0, 0.0, 0.0, 0.0]))
    np.testing.assert_allclose(se3.get_rotation(T), jnp.eye(3), atol=1e-12)
    np.testing.assert_allclose(se3.get_translation(T), jnp.array([1.0, 2.0, 3.0]), atol=1e-12)


def test_pure_rotation():
    """Without rho the rotation block is the SO(3) exponential."""
    T = se3.exp(jnp.array([0.0, 0.0, 0.0, 0.1, 0.2, 0.3]))
    np.testing.assert_allclose(se3.get_translation(T), jnp.zeros(3), atol=1e-12)
    np.testing.assert_allclose(se3.get_rotation(T), so3.exp(jnp.array([0.1, 0.2, 0.3])), atol=1e-12)


def test_exp_special_vecs_match_series():
    """Closed form and series agree at identity and at half turns."""
    np.testing.assert_allclose(se3.exp(SPECIAL_VECS), se3.exp(SPECIAL_VECS, num_terms=30), atol=1e-10)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None)
def test_exp_matches_series(seed):
    """Closed-form exp agrees with the 4x4 matrix exponential series."""
    xis = random_vecs(seed, 10)
    np.testing.assert_allclose(se3.exp(xis), se3.exp(xis, num_terms=20), atol=1e-10)


def test_log_exp_special_vecs():
    """log(exp(xi)) = xi, up to the axis flip at pi."""
    logs = se3.log(se3.exp(SPECIAL_VECS))
    assert jnp.all(jnp.isfinite(logs))
    for xi, xi_log in zip(SPECIAL_VECS, logs):
        assert near_equal_lie_alg(xi, xi_log, 1e-6), (xi, xi_log)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None)
def test_log_exp_roundtrip(seed):
    """Test SE(3) log(exp(xi)) = xi."""
    xis = random_vecs(seed, 10)
    np.testing.assert_allclose(se3.log(se3.exp(xis)), xis, atol=1e-10)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None)
def test_exp_log_roundtrip(seed):
    """Test SE(3) exp(log(T)) = T, including rotations past pi."""
    T = se3.exp(4.0 * random_vecs(seed, 10))
    np.testing.assert_allclose(se3.exp(se3.log(T)), T, atol=1e-9)


def test_adjoint_structure():
    """Test SE(3) adjoint computation."""
    T = se3.exp(jnp.array([0.1, 0.2, 0.3, 0.05, 0.1, 0.15]))
    Ad_T = se3.adjoint(T)

    assert Ad_T.shape == (6, 6)

    C = se3.get_rotation(T)
    r = se3.get_translation(T)

    np.testing.assert_allclose(Ad_T[:3, :3], C, atol=1e-12)
    np.testing.assert_allclose(Ad_T[3:, 3:], C, atol=1e-12)
    np.testing.assert_allclose(Ad_T[3:, :3], jnp.zeros((3, 3)), atol=1e-12)
    np.testing.assert_allclose(Ad_T[:3, 3:], so3.skew_symmetric(r) @ C, atol=1e-12)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None)
def test_adjoint_transports_twists(seed):
    """hat(Ad(T) xi) = T hat(xi) T^-1."""
    key1, key2 = jax.random.split(jax.random.PRNGKey(seed))
    T = se3.exp(jax.random.uniform(key1, (6,), minval=-1.0, maxval=1.0))
    xi = jax.random.uniform(key2, (6,), minval=-1.0, maxval=1.0)

    lhs = se3.hat(se3.adjoint(T) @ xi)
    rhs = T @ se3.hat(xi) @ jnp.linalg.inv(T)
    np.testing.assert_allclose(lhs, rhs, atol=1e-10)


def test_adjoint_of_exp_is_exp_of_curly_hat():
    """Ad(exp(xi)) = expm(curly_hat(xi))."""
    for xi in random_vecs(7, 5):
        np.testing.assert_allclose(
            se3.adjoint(se3.exp(xi)), jax.scipy.linalg.expm(se3.curly_hat(xi)), atol=1e-10
        )


def test_transform_point():
    """Point transform is plain 4x4 @ 4x1 multiplication."""
    T = se3.exp(random_vecs(11, 8))
    p = jax.random.uniform(jax.random.PRNGKey(12), (8, 4), minval=-1.0, maxval=1.0)

    expected = jnp.einsum("nij,nj->ni", T, p)
    np.testing.assert_allclose(se3.transform_point(T, p), expected, atol=1e-12)


def test_point_operators():
    """hat(xi) p = p^fs xi and p^T hat(xi) = xi^T p^sf."""
    xi = jnp.array([0.3, -0.1, 0.7, 0.2, -0.5, 0.4])
    p = jnp.array([1.0, -2.0, 0.5, 0.8])

    np.testing.assert_allclose(se3.hat(xi) @ p, se3.point_to_fs(p) @ xi, atol=1e-12)
    np.testing.assert_allclose(p @ se3.hat(xi), xi @ se3.point_to_sf(p), atol=1e-12)
    assert se3.point_to_fs(p).shape == (4, 6)
    assert se3.point_to_sf(p).shape == (6, 4)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None)
def test_left_jacobian_matches_series(seed):
    """Closed-form SE(3) Jacobian agrees with its power series."""
    xis = random_vecs(seed, 10)
    np.testing.assert_allclose(se3.left_jacobian(xis), se3.left_jacobian(xis, num_terms=25), atol=1e-10)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None)
def test_left_jacobian_inverse_matches_series(seed):
    """Closed-form inverse SE(3) Jacobian agrees with the Bernoulli series."""
    xis = random_vecs(seed, 10)
    np.testing.assert_allclose(
        se3.left_jacobian_inverse(xis), se3.left_jacobian_inverse(xis, num_terms=20), atol=1e-6
    )


def test_left_jacobian_inverse_is_inverse():
    """J @ J^-1 = I, including tiny rotation angles."""
    xis = jnp.concatenate([
        random_vecs(5, 4),
        jnp.array([[0.5, -0.2, 0.1, 1e-8, 0.0, -2e-8], [1.0, 2.0, 3.0, 0.0, 0.0, 0.0]]),
    ])
    product = se3.left_jacobian(xis) @ se3.left_jacobian_inverse(xis)
    np.testing.assert_allclose(product, jnp.broadcast_to(jnp.eye(6), product.shape), atol=1e-10)


@pytest.mark.parametrize("angle", [1e-8, 0.999e-2, 1.001e-2, 0.3])
def test_q_matrix_matches_series(angle):
    """The Q block agrees with the series around the small-angle switch."""
    axis = jnp.array([0.48, -0.6, 0.64])
    xi = jnp.concatenate([jnp.array([0.7, -0.4, 1.1]), angle * axis])

    Q_series = se3.left_jacobian(xi, num_terms=20)[:3, 3:]
    np.testing.assert_allclose(se3.q_matrix(xi), Q_series, atol=1e-10)


def test_dimension_errors():
    """Wrong trailing shapes raise DimensionError."""
    with pytest.raises(DimensionError):
        se3.exp(jnp.zeros(3))
    with pytest.raises(DimensionError):
        se3.log(jnp.eye(3))
    with pytest.raises(DimensionError):
        se3.transform_point(jnp.eye(4), jnp.zeros(3))
    with pytest.raises(DimensionError):
        se3.adjoint(jnp.zeros((6, 6)))


def test_batch_operations():
    """Test SE(3) operations work with batched inputs."""
    xis = random_vecs(123, 6).reshape(2, 3, 6)

    T = se3.exp(xis)
    assert T.shape == (2, 3, 4, 4)
    assert se3.log(T).shape == (2, 3, 6)
    assert se3.adjoint(T).shape == (2, 3, 6, 6)
    assert se3.left_jacobian(xis).shape == (2, 3, 6, 6)
    np.testing.assert_allclose(se3.log(T), xis, atol=1e-10)


def test_jit_compatibility():
    """Test SE(3) functions are JIT compatible."""

    @jax.jit
    def jitted_exp(xi):
        return se3.exp(xi)

    @jax.jit
    def jitted_log(T):
        return se3.log(T)

    xi = jnp.array([0.1, 0.2, 0.3, 0.05, 0.1, 0.15])
    np.testing.assert_allclose(jitted_log(jitted_exp(xi)), xi, atol=1e-12)

    jitted_series = jax.jit(se3.exp, static_argnames="num_terms")
    np.testing.assert_allclose(jitted_series(xi, num_terms=20), jitted_exp(xi), atol=1e-12)
