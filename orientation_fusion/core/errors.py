"""Exceptions raised by the orientation fusion engine."""


class OrientationFusionError(Exception):
    """Base exception for orientation fusion errors."""
    pass


class InvalidReferenceOrientation(OrientationFusionError):
    """Gravity and magnetic field do not define a unique rotation.

    Raised for near-parallel vectors, a vanishing field, or an
    acceleration magnitude too far from gravity. Callers handling
    live sensor samples treat it as "skip this update".
    """
    pass


class InvalidConfiguration(OrientationFusionError, ValueError):
    """A filter parameter is outside its legal range."""
    pass
