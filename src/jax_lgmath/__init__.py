"""
JAX lgmath: Lie group math for rotations and rigid-body transforms.

This library provides numerically stable, JIT-compilable exponential and
logarithmic maps, Jacobians and group operations for SO(3) and SE(3) using JAX.
"""

import jax
jax.config.update("jax_enable_x64", True)

# Import core modules
from . import transforms
from .errors import DimensionError
from .transforms import Rotation, Transformation

__version__ = "0.1.0"
__all__ = ["transforms", "DimensionError", "Rotation", "Transformation"]
