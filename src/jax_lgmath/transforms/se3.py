"""SE(3) and se(3) Lie group operations in JAX.

This module implements SE(3) rigid body transforms using homogeneous matrices
and 6D algebra vectors xi = [rho, phi] (translation part first). All functions
are pure, JIT-able, and operate on JAX arrays with arbitrary leading batch axes.
Rotation math is delegated to so3; this module adds the translation coupling.
"""


import jax
import jax.numpy as jnp

from ..constants import Q_SMALL_ANGLE_THRESHOLD
from . import so3
from .checks import as_matrix, as_vector
from .series import (
    exp_coefficients,
    jacobian_coefficients,
    jacobian_inverse_coefficients,
    matrix_power_series,
)

Array = jax.Array


def from_rotation_and_translation(C: Array, r: Array) -> Array:
    """
    Construct SE(3) transform from rotation and translation.

    Args:
        C: (..., 3, 3) rotation matrix
        r: (..., 3) translation vector (top-right block)

    Returns:
        (..., 4, 4) homogeneous transformation matrix
    """
    C = as_matrix(C, 3, "C")
    r = as_vector(r, 3, "r")

    # Ensure consistent batch shapes
    batch_shape = jnp.broadcast_shapes(r.shape[:-1], C.shape[:-2])
    r = jnp.broadcast_to(r, batch_shape + (3,))
    C = jnp.broadcast_to(C, batch_shape + (3, 3))

    T = jnp.zeros(batch_shape + (4, 4), dtype=jnp.result_type(C, r))
    T = T.at[..., :3, :3].set(C)
    T = T.at[..., :3, 3].set(r)
    T = T.at[..., 3, 3].set(1.0)

    return T


def get_rotation(T: Array) -> Array:
    """(..., 4, 4) transform -> (..., 3, 3) rotation block."""
    return as_matrix(T, 4, "T")[..., :3, :3]


def get_translation(T: Array) -> Array:
    """(..., 4, 4) transform -> (..., 3) top-right translation block."""
    return as_matrix(T, 4, "T")[..., :3, 3]


def hat(xi: Array) -> Array:
    """
    Lift an se(3) vector to its 4x4 matrix form.

    Args:
        xi: (..., 6) array [rho, phi]

    Returns:
        (..., 4, 4) array [[phi^, rho], [0, 0]]
    """
    xi = as_vector(xi, 6, "xi")
    rho, phi = xi[..., :3], xi[..., 3:]

    top = jnp.concatenate([so3.hat(phi), rho[..., None]], axis=-1)
    bottom = jnp.zeros(xi.shape[:-1] + (1, 4), dtype=xi.dtype)

    return jnp.concatenate([top, bottom], axis=-2)


def curly_hat(xi: Array) -> Array:
    """
    The 6x6 adjoint-algebra ("curly hat") form of an se(3) vector.

    Args:
        xi: (..., 6) array [rho, phi]

    Returns:
        (..., 6, 6) array [[phi^, rho^], [0, phi^]]
    """
    xi = as_vector(xi, 6, "xi")
    phi_hat = so3.hat(xi[..., 3:])
    rho_hat = so3.hat(xi[..., :3])

    top = jnp.concatenate([phi_hat, rho_hat], axis=-1)
    bottom = jnp.concatenate([jnp.zeros_like(phi_hat), phi_hat], axis=-1)

    return jnp.concatenate([top, bottom], axis=-2)


def point_to_fs(p: Array) -> Array:
    """
    Homogeneous point operator such that hat(xi) @ p == point_to_fs(p) @ xi.

    Args:
        p: (..., 4) homogeneous point [e, w]

    Returns:
        (..., 4, 6) array [[w I, -e^], [0, 0]]
    """
    p = as_vector(p, 4, "p")
    e, w = p[..., :3], p[..., 3]

    I = jnp.broadcast_to(jnp.eye(3, dtype=p.dtype), p.shape[:-1] + (3, 3))
    top = jnp.concatenate([w[..., None, None] * I, -so3.hat(e)], axis=-1)
    bottom = jnp.zeros(p.shape[:-1] + (1, 6), dtype=p.dtype)

    return jnp.concatenate([top, bottom], axis=-2)


def point_to_sf(p: Array) -> Array:
    """
    Homogeneous point operator such that p^T @ hat(xi) == xi^T @ point_to_sf(p).

    Args:
        p: (..., 4) homogeneous point [e, w]

    Returns:
        (..., 6, 4) array [[0, e], [-e^, 0]]
    """
    p = as_vector(p, 4, "p")
    e = p[..., :3]

    zeros_block = jnp.zeros(p.shape[:-1] + (3, 3), dtype=p.dtype)
    zeros_col = jnp.zeros(p.shape[:-1] + (3, 1), dtype=p.dtype)
    top = jnp.concatenate([zeros_block, e[..., None]], axis=-1)
    bottom = jnp.concatenate([-so3.hat(e), zeros_col], axis=-1)

    return jnp.concatenate([top, bottom], axis=-2)


def exp(xi: Array, num_terms: int = 0) -> Array:
    """
    SE(3) exponential map: convert algebra vector to transformation matrix.

    The rotation block is so3.exp(phi) and the translation block is
    so3.left_jacobian(phi) @ rho; the small-angle handling lives in so3.

    Args:
        xi: (..., 6) array [rho, phi]. The first 3 elements are the
            translational part, the last 3 the rotational part.
        num_terms: if positive, sum the 4x4 matrix exponential series with
            this many terms instead of using the closed form

    Returns:
        (..., 4, 4) array of transformation matrices.
    """
    xi = as_vector(xi, 6, "xi")

    if num_terms:
        return matrix_power_series(hat(xi), exp_coefficients(num_terms))

    rho, phi = xi[..., :3], xi[..., 3:]

    C = so3.exp(phi)
    J = so3.left_jacobian(phi)
    r = jnp.einsum("...ij,...j->...i", J, rho)

    return from_rotation_and_translation(C, r)


def log(T: Array) -> Array:
    """
    SE(3) logarithm map: convert transformation matrix to algebra vector.

    Args:
        T: (..., 4, 4) array of transformation matrices.

    Returns:
        (..., 6) array [rho, phi], with |phi| in [0, pi].
    """
    T = as_matrix(T, 4, "T")
    C, r = T[..., :3, :3], T[..., :3, 3]

    phi = so3.log(C)
    J_inv = so3.left_jacobian_inverse(phi)
    rho = jnp.einsum("...ij,...j->...i", J_inv, r)

    return jnp.concatenate([rho, phi], axis=-1)


def adjoint(T: Array) -> Array:
    """
    Compute the adjoint matrix of SE(3) transformation.

    The adjoint matrix is used to transform twists between coordinate frames.

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 6, 6) adjoint matrix
    """
    T = as_matrix(T, 4, "T")
    C = T[..., :3, :3]
    r = T[..., :3, 3]

    r_skew = so3.skew_symmetric(r)
    zeros = jnp.zeros_like(C)

    # Adjoint matrix is [[C, [r]_x C], [0, C]]
    top = jnp.concatenate([C, jnp.matmul(r_skew, C)], axis=-1)
    bottom = jnp.concatenate([zeros, C], axis=-1)

    return jnp.concatenate([top, bottom], axis=-2)


def transform_point(T: Array, p: Array) -> Array:
    """
    Apply SE(3) transformation to homogeneous point(s).

    Args:
        T: (..., 4, 4) transformation matrix
        p: (..., 4) homogeneous point(s)

    Returns:
        (..., 4) transformed point(s), T @ p
    """
    T = as_matrix(T, 4, "T")
    p = as_vector(p, 4, "p")
    return jnp.einsum("...ij,...j->...i", T, p)


def q_matrix(xi: Array, eps: float = Q_SMALL_ANGLE_THRESHOLD) -> Array:
    """
    Translation/rotation coupling block Q of the SE(3) left Jacobian.

        Q = 1/2 rho^
            + a (phi^ rho^ + rho^ phi^ + phi^ rho^ phi^)
            + b (phi^ phi^ rho^ + rho^ phi^ phi^ - 3 phi^ rho^ phi^)
            + c (phi^ rho^ phi^ phi^ + phi^ phi^ rho^ phi^)

        a = (theta - sin(theta)) / theta^3
        b = (theta^2 + 2 cos(theta) - 2) / (2 theta^4)
        c = (2 theta - 3 sin(theta) + theta cos(theta)) / (2 theta^5)

    Args:
        xi: (..., 6) array [rho, phi]
        eps: angle below which a, b and c use their Taylor expansions

    Returns:
        (..., 3, 3) Q matrix
    """
    xi = as_vector(xi, 6, "xi")
    rx = so3.hat(xi[..., :3])
    px = so3.hat(xi[..., 3:])

    theta_sq = jnp.sum(xi[..., 3:] ** 2, axis=-1)[..., None, None]
    small = theta_sq < eps * eps
    theta_sq_safe = jnp.where(small, 1.0, theta_sq)
    theta = jnp.sqrt(theta_sq_safe)
    sin_theta, cos_theta = jnp.sin(theta), jnp.cos(theta)

    a = jnp.where(
        small,
        1.0 / 6.0 - theta_sq / 120.0,
        (theta - sin_theta) / (theta_sq_safe * theta)
    )
    b = jnp.where(
        small,
        1.0 / 24.0 - theta_sq / 720.0,
        (theta_sq_safe + 2.0 * cos_theta - 2.0) / (2.0 * theta_sq_safe * theta_sq_safe)
    )
    c = jnp.where(
        small,
        1.0 / 120.0 - theta_sq / 2520.0,
        (2.0 * theta - 3.0 * sin_theta + theta * cos_theta) / (2.0 * theta_sq_safe * theta_sq_safe * theta)
    )

    pr = jnp.matmul(px, rx)
    rp = jnp.matmul(rx, px)
    prp = jnp.matmul(pr, px)

    return (
        0.5 * rx
        + a * (pr + rp + prp)
        + b * (jnp.matmul(px, pr) + jnp.matmul(rp, px) - 3.0 * prp)
        + c * (jnp.matmul(prp, px) + jnp.matmul(px, prp))
    )


def _block_upper_triangular(top_left: Array, top_right: Array, bottom_right: Array) -> Array:
    top = jnp.concatenate([top_left, top_right], axis=-1)
    bottom = jnp.concatenate([jnp.zeros_like(bottom_right), bottom_right], axis=-1)
    return jnp.concatenate([top, bottom], axis=-2)


def left_jacobian(xi: Array, num_terms: int = 0) -> Array:
    """
    Left Jacobian of SE(3), [[J, Q], [0, J]].

    Args:
        xi: (..., 6) array [rho, phi]
        num_terms: if positive, sum curly_hat(xi)^n / (n + 1)! instead

    Returns:
        (..., 6, 6) Jacobian
    """
    xi = as_vector(xi, 6, "xi")

    if num_terms:
        return matrix_power_series(curly_hat(xi), jacobian_coefficients(num_terms))

    J = so3.left_jacobian(xi[..., 3:])
    return _block_upper_triangular(J, q_matrix(xi), J)


def left_jacobian_inverse(xi: Array, num_terms: int = 0) -> Array:
    """
    Inverse of the SE(3) left Jacobian, [[J^-1, -J^-1 Q J^-1], [0, J^-1]].

    Args:
        xi: (..., 6) array [rho, phi]
        num_terms: if positive, sum B_n / n! curly_hat(xi)^n instead (at most 20)

    Returns:
        (..., 6, 6) inverse Jacobian
    """
    xi = as_vector(xi, 6, "xi")

    if num_terms:
        return matrix_power_series(curly_hat(xi), jacobian_inverse_coefficients(num_terms))

    J_inv = so3.left_jacobian_inverse(xi[..., 3:])
    coupling = -jnp.matmul(jnp.matmul(J_inv, q_matrix(xi)), J_inv)
    return _block_upper_triangular(J_inv, coupling, J_inv)
