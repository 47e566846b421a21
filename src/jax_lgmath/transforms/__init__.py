"""
JAX-based Lie group transforms for state estimation.

This module provides mathematically rigorous, JIT-compilable implementations of:
- SO(3) rotations (so3 module) and the Rotation entity
- SE(3) rigid body transforms (se3 module) and the Transformation entity

All functions are pure, stateless, and designed for high-performance computation.
"""

# Core Lie group modules
from . import so3
from . import se3
from .rotation import Rotation
from .transform import Transformation

__all__ = [
    "so3",
    "se3",
    "Rotation",
    "Transformation",
]
