"""SO(3) and so(3) Lie group operations in JAX.

This module implements the mathematical foundation for 3D rotations using
rotation matrices and axis-angle vectors: the exponential and logarithmic
maps, the left Jacobian and its inverse, and reprojection onto the group.
All functions are pure, JIT-able, and operate on JAX arrays with arbitrary
leading batch axes.

Every closed form has a removable singularity at theta = 0 (and the
logarithm a genuine one at theta = pi). The regimes are selected with
jnp.where and the unused branch is always fed a harmless argument, so
neither values nor gradients become NaN.
"""

import jax
import jax.numpy as jnp

from ..constants import NEAR_PI_THRESHOLD, REPROJECTION_TOLERANCE, SMALL_ANGLE_THRESHOLD
from .checks import as_matrix, as_vector
from .series import (
    exp_coefficients,
    jacobian_coefficients,
    jacobian_inverse_coefficients,
    matrix_power_series,
)

Array = jax.Array


def skew_symmetric(v: Array) -> Array:
    """
    Convert 3D vector to skew-symmetric matrix.

    Args:
        v: (..., 3) vector

    Returns:
        (..., 3, 3) skew-symmetric matrix
    """
    v = as_vector(v, 3, "v")
    zeros = jnp.zeros(v.shape[:-1], dtype=v.dtype)

    return jnp.stack([
        jnp.stack([zeros, -v[..., 2], v[..., 1]], axis=-1),
        jnp.stack([v[..., 2], zeros, -v[..., 0]], axis=-1),
        jnp.stack([-v[..., 1], v[..., 0], zeros], axis=-1)
    ], axis=-2)


hat = skew_symmetric


def vee(M: Array) -> Array:
    """
    Inverse of hat(), applied to the skew-symmetric part of M.

    Args:
        M: (..., 3, 3) matrix

    Returns:
        (..., 3) vector v with hat(v) = (M - M^T) / 2
    """
    M = as_matrix(M, 3, "M")
    return 0.5 * jnp.stack([
        M[..., 2, 1] - M[..., 1, 2],
        M[..., 0, 2] - M[..., 2, 0],
        M[..., 1, 0] - M[..., 0, 1]
    ], axis=-1)


def _identity_like(M: Array) -> Array:
    return jnp.broadcast_to(jnp.eye(3, dtype=M.dtype), M.shape)


def _angle(phi: Array, eps: float):
    """Squared angle, small-angle mask and a safe (never ~0) angle, shaped for (..., 3, 3) math."""
    theta_sq = jnp.sum(phi * phi, axis=-1)[..., None, None]
    small = theta_sq < eps * eps
    safe_theta_sq = jnp.where(small, 1.0, theta_sq)
    return theta_sq, small, safe_theta_sq, jnp.sqrt(safe_theta_sq)


def _one_minus_cos(theta: Array) -> Array:
    # 2 sin^2(theta / 2), no cancellation for small theta
    s = jnp.sin(0.5 * theta)
    return 2.0 * s * s


def exp(phi: Array, num_terms: int = 0, eps: float = SMALL_ANGLE_THRESHOLD) -> Array:
    """
    SO(3) exponential map: convert axis-angle vector to rotation matrix.

    Closed form:
        C = cos(theta) I + sin(theta)/theta [phi]x + (1 - cos(theta))/theta^2 phi phi^T

    Below eps the three coefficients are replaced by their Taylor expansions.

    Args:
        phi: (..., 3) array of axis-angle vectors
        num_terms: if positive, sum the matrix exponential series with this
            many terms instead of using the closed form
        eps: small-angle threshold

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    phi = as_vector(phi, 3, "phi")
    K = skew_symmetric(phi)

    if num_terms:
        return matrix_power_series(K, exp_coefficients(num_terms))

    theta_sq, small, _, theta = _angle(phi, eps)

    cos_theta = jnp.where(small, 1.0 - 0.5 * theta_sq, jnp.cos(theta))
    A = jnp.where(small, 1.0 - theta_sq / 6.0, jnp.sin(theta) / theta)
    B = jnp.where(small, 0.5 - theta_sq / 24.0, _one_minus_cos(theta) / (theta * theta))

    outer = phi[..., :, None] * phi[..., None, :]

    return cos_theta * _identity_like(K) + A * K + B * outer


def log(C: Array, eps: float = SMALL_ANGLE_THRESHOLD, near_pi_eps: float = NEAR_PI_THRESHOLD) -> Array:
    """
    SO(3) logarithm map: convert rotation matrix to axis-angle vector.

    The angle is theta = atan2(|vee(C)|, (tr(C) - 1) / 2), which keeps full
    precision near 0 and near pi in any floating dtype. Three regimes:

    * theta < eps: phi = (1 + theta^2 / 6) vee(C)
    * pi - theta < near_pi_eps: the axis is read off the symmetric part,
      (C + C^T)/2 = cos(theta) I + (1 - cos(theta)) a a^T, using the column
      with the largest diagonal entry. Its sign is taken from vee(C), which
      equals sin(theta) a; at theta = pi exactly both signs are valid.
    * otherwise: phi = theta / sin(theta) vee(C)

    The result has norm in [0, pi]. The input does not have to be orthonormal;
    every branch stays finite, which reproject() relies on.

    Args:
        C: (..., 3, 3) array of rotation matrices
        eps: small-angle threshold
        near_pi_eps: distance from pi below which the symmetric-part formula is used

    Returns:
        (..., 3) array of axis-angle vectors
    """
    C = as_matrix(C, 3, "C")
    I = _identity_like(C)

    trace = jnp.trace(C, axis1=-2, axis2=-1)
    cos_theta = jnp.clip((trace - 1.0) / 2.0, -1.0, 1.0)

    # sin(theta) * axis
    w = vee(C)
    w_sq = jnp.sum(w * w, axis=-1)
    nonzero = w_sq > 0.0
    sin_theta = jnp.where(nonzero, jnp.sqrt(jnp.where(nonzero, w_sq, 1.0)), 0.0)
    theta = jnp.arctan2(sin_theta, cos_theta)

    small = theta < eps
    near_pi = theta > jnp.pi - near_pi_eps
    generic = ~(small | near_pi)

    # theta ~ 0: theta^2 ~ 2 (1 - cos(theta))
    phi_small = (1.0 + (1.0 - cos_theta[..., None]) / 3.0) * w

    # generic
    theta_generic = jnp.where(generic, theta, 1.0)
    phi_generic = (theta_generic / jnp.sin(theta_generic))[..., None] * w

    # theta ~ pi
    safe_cos = jnp.where(near_pi, cos_theta, -1.0)
    theta_pi = jnp.where(near_pi, theta, jnp.pi)
    S = 0.5 * (C + jnp.swapaxes(C, -1, -2))
    aaT = (S - safe_cos[..., None, None] * I) / (1.0 - safe_cos)[..., None, None]
    diag = jnp.diagonal(aaT, axis1=-2, axis2=-1)
    k = jnp.argmax(diag, axis=-1)
    # column k of a a^T is a * a_k
    axis_pi = jnp.take_along_axis(aaT, k[..., None, None], axis=-1)[..., 0]
    axis_pi = axis_pi / jnp.maximum(jnp.linalg.norm(axis_pi, axis=-1, keepdims=True), jnp.finfo(C.dtype).tiny)
    sign = jnp.where(jnp.sum(axis_pi * w, axis=-1, keepdims=True) < 0.0, -1.0, 1.0)
    phi_pi = sign * theta_pi[..., None] * axis_pi

    return jnp.where(
        small[..., None],
        phi_small,
        jnp.where(near_pi[..., None], phi_pi, phi_generic)
    )


def left_jacobian(phi: Array, num_terms: int = 0, eps: float = SMALL_ANGLE_THRESHOLD) -> Array:
    """
    Left Jacobian of SO(3).

        J = I + (1 - cos(theta))/theta^2 [phi]x + (theta - sin(theta))/theta^3 [phi]x^2

    Args:
        phi: (..., 3) array of axis-angle vectors
        num_terms: if positive, sum [phi]x^n / (n + 1)! with this many terms
        eps: small-angle threshold

    Returns:
        (..., 3, 3) Jacobian
    """
    phi = as_vector(phi, 3, "phi")
    K = skew_symmetric(phi)

    if num_terms:
        return matrix_power_series(K, jacobian_coefficients(num_terms))

    theta_sq, small, theta_sq_safe, theta = _angle(phi, eps)

    A = jnp.where(small, 0.5 - theta_sq / 24.0, _one_minus_cos(theta) / theta_sq_safe)
    B = jnp.where(small, 1.0 / 6.0 - theta_sq / 120.0, (theta - jnp.sin(theta)) / (theta_sq_safe * theta))

    return _identity_like(K) + A * K + B * jnp.matmul(K, K)


def left_jacobian_inverse(phi: Array, num_terms: int = 0, eps: float = SMALL_ANGLE_THRESHOLD) -> Array:
    """
    Inverse of the left Jacobian of SO(3).

        J^-1 = I - 1/2 [phi]x + (1/theta^2) (1 - (theta/2) cot(theta/2)) [phi]x^2

    Singular at theta = 2 pi; the logarithm never produces angles above pi.

    Args:
        phi: (..., 3) array of axis-angle vectors
        num_terms: if positive, sum B_n / n! [phi]x^n with this many terms
            (at most 20)
        eps: small-angle threshold

    Returns:
        (..., 3, 3) inverse Jacobian
    """
    phi = as_vector(phi, 3, "phi")
    K = skew_symmetric(phi)

    if num_terms:
        return matrix_power_series(K, jacobian_inverse_coefficients(num_terms))

    theta_sq, small, theta_sq_safe, theta = _angle(phi, eps)

    half = 0.5 * theta
    D = jnp.where(
        small,
        1.0 / 12.0 + theta_sq / 720.0,
        (1.0 - half * jnp.cos(half) / jnp.sin(half)) / theta_sq_safe
    )

    return _identity_like(K) - 0.5 * K + D * jnp.matmul(K, K)


def reproject(C: Array, tol: float = REPROJECTION_TOLERANCE) -> Array:
    """
    Project a 3x3 matrix onto SO(3).

    Matrices that are already rotations (orthonormality and determinant
    errors within tol) are returned unchanged. Anything else is replaced by
    exp(log(C)), which keeps the rotation encoded in the skew-symmetric part
    and the trace of C; a matrix with no skew part and trace 3, such as the
    all-ones matrix, becomes the identity.

    Args:
        C: (..., 3, 3) matrix
        tol: tolerance below which C is considered valid

    Returns:
        (..., 3, 3) rotation matrix
    """
    C = as_matrix(C, 3, "C")

    CtC = jnp.matmul(jnp.swapaxes(C, -1, -2), C)
    ortho_err = jnp.max(jnp.abs(CtC - _identity_like(C)), axis=(-2, -1))
    det_err = jnp.abs(jnp.linalg.det(C) - 1.0)
    valid = (ortho_err <= tol) & (det_err <= tol)

    return jnp.where(valid[..., None, None], C, exp(log(C)))


def inverse(C: Array) -> Array:
    """
    Compute inverse of rotation matrix.

    For rotation matrices, the inverse is simply the transpose.

    Args:
        C: (..., 3, 3) rotation matrix

    Returns:
        (..., 3, 3) inverse rotation matrix
    """
    C = as_matrix(C, 3, "C")
    return jnp.swapaxes(C, -1, -2)


def apply(C: Array, v: Array) -> Array:
    """
    Apply rotation to vector(s).

    Args:
        C: (..., 3, 3) rotation matrix
        v: (..., 3) vector(s) to rotate

    Returns:
        (..., 3) rotated vector(s)
    """
    C = as_matrix(C, 3, "C")
    v = as_vector(v, 3, "v")
    return jnp.einsum('...ij,...j->...i', C, v)
