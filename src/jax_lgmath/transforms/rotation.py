"""SO(3) rotation entity implemented with JAX."""

from __future__ import annotations

import jax
import jax.numpy as jnp
from flax import struct

from . import so3

Array = jax.Array


@struct.dataclass
class Rotation:
    """Immutable SO(3) rotation C_ba, usable under jit / grad / vmap.

    Rotation(C_ba=...) stores the matrix unchecked; use from_matrix or
    from_vec for outside data.

    Attributes:
        C_ba: (..., 3, 3) rotation matrix, always orthonormal with det 1
    """
    C_ba: Array = struct.field(default_factory=lambda: jnp.eye(3))

    # Constructors
    @classmethod
    def identity(cls) -> "Rotation":
        return cls()

    @classmethod
    def from_matrix(cls, matrix: Array) -> "Rotation":
        """Build from a (..., 3, 3) matrix, reprojected onto SO(3)."""
        return cls(C_ba=so3.reproject(matrix))

    @classmethod
    def from_vec(cls, phi: Array, num_terms: int = 0) -> "Rotation":
        """Build from a (..., 3) axis-angle vector through the exponential map."""
        return cls(C_ba=so3.exp(phi, num_terms=num_terms))

    # Accessors
    def matrix(self) -> Array:
        return self.C_ba

    def vec(self) -> Array:
        """Logarithmic map, (..., 3) axis-angle vector."""
        return so3.log(self.C_ba)

    # Group operations
    def inverse(self) -> "Rotation":
        return Rotation(C_ba=so3.inverse(self.C_ba))

    def compose(self, other: "Rotation") -> "Rotation":
        return Rotation(C_ba=jnp.matmul(self.C_ba, other.C_ba))

    def compose_inverse(self, other: "Rotation") -> "Rotation":
        return Rotation(C_ba=jnp.matmul(self.C_ba, so3.inverse(other.C_ba)))

    def rotate(self, v: Array) -> Array:
        """Rotate (..., 3) vector(s)."""
        return so3.apply(self.C_ba, v)

    def __mul__(self, other):
        if isinstance(other, Rotation):
            return self.compose(other)
        if jnp.ndim(other) == 0:
            return NotImplemented
        return self.rotate(other)

    def __truediv__(self, other):
        if not isinstance(other, Rotation):
            return NotImplemented
        return self.compose_inverse(other)
