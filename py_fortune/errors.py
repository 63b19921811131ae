"""Exceptions raised by diagram construction."""


class VoronoiError(Exception):
    """Base class for all py_fortune errors."""


class InvalidInputError(VoronoiError, ValueError):
    """The point sequence cannot be turned into a diagram.

    Raised for an empty sequence, a malformed array, non-finite values,
    coordinates outside the unit square, or duplicate points when the
    ``reject`` duplicate policy is active.
    """


class DegenerateConfigurationError(VoronoiError, ValueError):
    """Several input points were given but they all coincide."""


class InvariantViolationError(VoronoiError, RuntimeError):
    """An internal invariant of the sweep or the clipper was broken.

    This signals a programming error and is never caught by the library.
    """
