"""Exceptions raised by jax_lgmath."""


class DimensionError(ValueError):
    """An algebra vector, point or matrix has the wrong trailing shape."""

    def __init__(self, name: str, expected, got):
        self.name = name
        self.expected = tuple(expected)
        self.got = tuple(got)
        super().__init__(
            f"{name} must have trailing shape {self.expected}, got shape {self.got}"
        )
