"""Numerical constants for the Lie group maps.

These thresholds select the computational path (Taylor series, closed form or
the near-pi axis recovery); they do not change the mathematical result. They
were chosen for IEEE 754 double precision, which the package enables on
import, and every function that branches on one accepts it as a keyword
argument.
"""

# Below this rotation angle the closed-form coefficients of exp, J and J^-1
# are replaced by their Taylor expansions. The closed forms are still accurate
# to ~1e-16 absolute at 1e-5 rad, so the switch point only has to sit below
# the range where (1 - cos(theta)) / theta^2 loses all of its digits.
SMALL_ANGLE_THRESHOLD = 1e-6

# When pi - theta drops below this, the rotation logarithm recovers the axis
# from the symmetric part of C instead of dividing by sin(theta). The generic
# formula is still good to ~1e-13 at this distance from pi.
NEAR_PI_THRESHOLD = 1e-3

# The SE(3) Q matrix has theta^5 in a denominator, so its coefficients lose
# precision much earlier than the SO(3) ones. At 1e-2 rad the closed form is
# still good to ~1e-8 relative and the two-term Taylor expansion to ~1e-12.
Q_SMALL_ANGLE_THRESHOLD = 1e-2

# A rotation block whose orthonormality / determinant error is within this
# tolerance is stored as-is instead of being reprojected.
REPROJECTION_TOLERANCE = 1e-9

# Bernoulli numbers B_0 .. B_20, used by the series form of the inverse
# left Jacobians.
BERNOULLI_NUMBERS = (
    1.0, -1.0 / 2.0, 1.0 / 6.0, 0.0, -1.0 / 30.0, 0.0, 1.0 / 42.0, 0.0,
    -1.0 / 30.0, 0.0, 5.0 / 66.0, 0.0, -691.0 / 2730.0, 0.0, 7.0 / 6.0, 0.0,
    -3617.0 / 510.0, 0.0, 43867.0 / 798.0, 0.0, -174611.0 / 330.0,
)
MAX_BERNOULLI_TERMS = len(BERNOULLI_NUMBERS) - 1
