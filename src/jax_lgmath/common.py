"""Near-equality predicates for checking Lie group results.

These are NumPy-only helpers for tests and callers that need to compare
matrices or algebra vectors within a tolerance. Nothing in the transforms
package depends on them.
"""

import numpy as np


def near_equal(a, b, tol: float = 1e-6) -> bool:
    """True if a and b have the same shape and differ by at most tol everywhere."""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        return False
    return bool(np.all(np.abs(a - b) <= tol))


def wrap_angle(angle):
    """Wrap angle(s) to (-pi, pi]."""
    wrapped = np.mod(np.asarray(angle, dtype=float) + np.pi, 2.0 * np.pi) - np.pi
    return np.where(wrapped <= -np.pi, wrapped + 2.0 * np.pi, wrapped)


def near_equal_angle(a, b, tol: float = 1e-6) -> bool:
    """True if scalar angles a and b are equal modulo 2 pi."""
    return bool(np.all(np.abs(wrap_angle(np.asarray(a, dtype=float) - np.asarray(b, dtype=float))) <= tol))


def _canonical_axis_angle(phi: np.ndarray) -> np.ndarray:
    # Same rotation, angle wrapped into (-pi, pi] along the original axis
    theta = np.linalg.norm(phi)
    if theta == 0.0:
        return phi
    return phi / theta * wrap_angle(theta)


def near_equal_axis_angle(phi1, phi2, tol: float = 1e-6) -> bool:
    """
    True if two axis-angle vectors describe the same rotation.

    Vectors differing by a multiple of 2 pi along their axis are equal, and
    at an angle of pi the axis may be flipped.
    """
    phi1 = _canonical_axis_angle(np.asarray(phi1, dtype=float).reshape(3))
    phi2 = _canonical_axis_angle(np.asarray(phi2, dtype=float).reshape(3))

    if near_equal(phi1, phi2, tol):
        return True

    near_pi = (abs(np.linalg.norm(phi1) - np.pi) <= tol
               and abs(np.linalg.norm(phi2) - np.pi) <= tol)
    return near_pi and near_equal(phi1, -phi2, tol)


def near_equal_lie_alg(v1, v2, tol: float = 1e-6) -> bool:
    """
    Angle-aware comparison of so(3) (3-vector) or se(3) (6-vector [rho, phi])
    algebra vectors. Leading batch axes are compared element by element.
    """
    v1 = np.asarray(v1, dtype=float)
    v2 = np.asarray(v2, dtype=float)
    if v1.shape != v2.shape or v1.shape[-1] not in (3, 6):
        return False

    size = v1.shape[-1]
    for a, b in zip(v1.reshape(-1, size), v2.reshape(-1, size)):
        if size == 3:
            equal = near_equal_axis_angle(a, b, tol)
        else:
            equal = near_equal(a[:3], b[:3], tol) and near_equal_axis_angle(a[3:], b[3:], tol)
        if not equal:
            return False
    return True
