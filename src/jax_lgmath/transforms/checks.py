"""Shape validation shared by the SO(3) / SE(3) modules and entities."""

import logging

import jax
import jax.numpy as jnp

from ..errors import DimensionError

Array = jax.Array

logger = logging.getLogger(__name__)


def _as_float(x) -> Array:
    x = jnp.asarray(x)
    if not jnp.issubdtype(x.dtype, jnp.inexact):
        x = x.astype(float)
    return x


def as_vector(x, size: int, name: str) -> Array:
    """Return *x* as a float array of shape (..., size) or raise DimensionError."""
    x = _as_float(x)
    if x.ndim < 1 or x.shape[-1] != size:
        logger.debug("Rejected %s with shape %s, expected (..., %d)", name, x.shape, size)
        raise DimensionError(name, (size,), x.shape)
    return x


def as_matrix(x, size: int, name: str) -> Array:
    """Return *x* as a float array of shape (..., size, size) or raise DimensionError."""
    x = _as_float(x)
    if x.ndim < 2 or x.shape[-2:] != (size, size):
        logger.debug("Rejected %s with shape %s, expected (..., %d, %d)", name, x.shape, size, size)
        raise DimensionError(name, (size, size), x.shape)
    return x
