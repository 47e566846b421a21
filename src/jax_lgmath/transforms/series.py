"""Truncated matrix power series.

The closed-form maps in so3 / se3 all have a power-series definition in the
hat (or curly-hat) matrix. Evaluating the series directly is slow and only
meant for cross-checking the closed forms, so the number of terms is always
chosen by the caller and is a static Python int.
"""

import logging
import math
from typing import Sequence

import jax
import jax.numpy as jnp

from ..constants import BERNOULLI_NUMBERS, MAX_BERNOULLI_TERMS

Array = jax.Array

logger = logging.getLogger(__name__)


def _check_num_terms(num_terms: int) -> int:
    num_terms = int(num_terms)
    if num_terms < 0:
        raise ValueError(f"num_terms must be non-negative, got {num_terms}")
    return num_terms


def exp_coefficients(num_terms: int) -> Sequence[float]:
    """1 / n! for n = 0..num_terms."""
    num_terms = _check_num_terms(num_terms)
    return [1.0 / math.factorial(n) for n in range(num_terms + 1)]


def jacobian_coefficients(num_terms: int) -> Sequence[float]:
    """1 / (n + 1)! for n = 0..num_terms (left Jacobian)."""
    num_terms = _check_num_terms(num_terms)
    return [1.0 / math.factorial(n + 1) for n in range(num_terms + 1)]


def jacobian_inverse_coefficients(num_terms: int) -> Sequence[float]:
    """B_n / n! for n = 0..num_terms (inverse left Jacobian)."""
    num_terms = _check_num_terms(num_terms)
    if num_terms > MAX_BERNOULLI_TERMS:
        raise ValueError(
            f"inverse Jacobian series supports at most {MAX_BERNOULLI_TERMS} terms, got {num_terms}"
        )
    return [BERNOULLI_NUMBERS[n] / math.factorial(n) for n in range(num_terms + 1)]


def matrix_power_series(X: Array, coefficients: Sequence[float]) -> Array:
    """
    Evaluate sum_n coefficients[n] * X^n.

    Args:
        X: (..., n, n) array
        coefficients: scalar coefficients, coefficients[0] multiplies the identity

    Returns:
        (..., n, n) array
    """
    logger.debug("Evaluating %d-term matrix power series on shape %s", len(coefficients) - 1, X.shape)
    I = jnp.broadcast_to(jnp.eye(X.shape[-1], dtype=X.dtype), X.shape)

    result = coefficients[0] * I
    power = I
    for c in coefficients[1:]:
        power = jnp.matmul(power, X)
        if c != 0.0:
            result = result + c * power

    return result
