"""SE(3) transformation entity implemented with JAX."""

from __future__ import annotations

import logging

import jax
import jax.numpy as jnp
from flax import struct

from . import se3, so3
from .checks import as_matrix, as_vector

Array = jax.Array

logger = logging.getLogger(__name__)


@struct.dataclass
class Transformation:
    """Immutable SE(3) transform T_ba, usable under jit / grad / vmap.

    The transform maps homogeneous points expressed in frame a into frame b:

        T_ba = [[C_ba, r_ab_inb],
                [0,    1       ]]

    Only C_ba and r_ab_inb are stored; r_ba_ina = -C_ba^T r_ab_inb is derived.

    The field initializer Transformation(C_ba=..., r_ab_inb=...) is the raw
    PyTree path used by jit / vmap and by the methods below. It stores its
    arguments as given, without shape checks or reprojection. Build values
    from outside data with from_matrix, from_rotation_translation or from_vec,
    which validate shapes and reproject the rotation block onto SO(3).

    Attributes:
        C_ba: (..., 3, 3) rotation from frame a to frame b
        r_ab_inb: (..., 3) translation, the top-right block of the matrix
    """
    C_ba: Array = struct.field(default_factory=lambda: jnp.eye(3))
    r_ab_inb: Array = struct.field(default_factory=lambda: jnp.zeros(3))

    # Constructors
    @classmethod
    def identity(cls) -> "Transformation":
        return cls()

    @classmethod
    def from_transformation(cls, other: "Transformation") -> "Transformation":
        return cls(C_ba=other.C_ba, r_ab_inb=other.r_ab_inb)

    @classmethod
    def from_matrix(cls, matrix: Array) -> "Transformation":
        """Build from a (..., 4, 4) matrix; the rotation block is reprojected."""
        matrix = as_matrix(matrix, 4, "matrix")
        return cls(C_ba=so3.reproject(matrix[..., :3, :3]), r_ab_inb=matrix[..., :3, 3])

    @classmethod
    def from_rotation_translation(cls, C_ba: Array, r_ba_ina: Array) -> "Transformation":
        """
        Build from a rotation block and the translation r_ba_ina.

        C_ba is reprojected before r_ab_inb = -C_ba r_ba_ina is formed, so the
        stored translation is consistent with the corrected rotation.
        """
        C_ba = so3.reproject(as_matrix(C_ba, 3, "C_ba"))
        r_ba_ina = as_vector(r_ba_ina, 3, "r_ba_ina")
        return cls(C_ba=C_ba, r_ab_inb=-jnp.einsum("...ij,...j->...i", C_ba, r_ba_ina))

    @classmethod
    def from_vec(cls, xi: Array, num_terms: int = 0) -> "Transformation":
        """
        Build through the exponential map.

        Args:
            xi: (..., 6) algebra vector [rho, phi]; any other length raises
                DimensionError
            num_terms: if positive, evaluate the exponential series with this
                many terms instead of the closed form
        """
        if num_terms:
            logger.debug("Constructing Transformation from a %d-term exponential series", num_terms)
        T = se3.exp(xi, num_terms=num_terms)
        return cls(C_ba=T[..., :3, :3], r_ab_inb=T[..., :3, 3])

    # Accessors
    def matrix(self) -> Array:
        return se3.from_rotation_and_translation(self.C_ba, self.r_ab_inb)

    def r_ba_ina(self) -> Array:
        return -jnp.einsum("...ji,...j->...i", self.C_ba, self.r_ab_inb)

    def vec(self) -> Array:
        """Logarithmic map, (..., 6) vector [rho, phi]."""
        return se3.log(self.matrix())

    # Group operations
    def inverse(self) -> "Transformation":
        """SE(3) inverse using the block structure: [[C^T, -C^T r], [0, 1]]."""
        C_inv = jnp.swapaxes(self.C_ba, -1, -2)
        r_inv = -jnp.einsum("...ij,...j->...i", C_inv, self.r_ab_inb)
        return Transformation(C_ba=C_inv, r_ab_inb=r_inv)

    def compose(self, other: "Transformation") -> "Transformation":
        """Self ∘ other (apply *other* first, then self)."""
        C = jnp.matmul(self.C_ba, other.C_ba)
        r = jnp.einsum("...ij,...j->...i", self.C_ba, other.r_ab_inb) + self.r_ab_inb
        return Transformation(C_ba=C, r_ab_inb=r)

    def compose_inverse(self, other: "Transformation") -> "Transformation":
        """Self ∘ other^-1."""
        return self.compose(other.inverse())

    def adjoint(self) -> Array:
        """(..., 6, 6) adjoint matrix."""
        return se3.adjoint(self.matrix())

    def transform_point(self, p: Array) -> Array:
        """Apply to (..., 4) homogeneous point(s)."""
        return se3.transform_point(self.matrix(), p)

    def reproject(self) -> "Transformation":
        return self.replace(C_ba=so3.reproject(self.C_ba))

    # Operator sugar. The in-place forms (*=, /=) fall back to these and
    # rebind the name, leaving every other reference to the old value intact.
    def __mul__(self, other):
        if isinstance(other, Transformation):
            return self.compose(other)
        if jnp.ndim(other) == 0:
            return NotImplemented
        return self.transform_point(other)

    def __truediv__(self, other):
        if not isinstance(other, Transformation):
            return NotImplemented
        return self.compose_inverse(other)
