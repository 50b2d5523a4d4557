"""Exception and warning types raised by polytess."""


class InvalidArgumentError(ValueError):
    """Raised for missing or contradictory construction options."""


class DegenerateRingWarning(UserWarning):
    """Emitted when input rings or geometries are dropped as unusable."""
