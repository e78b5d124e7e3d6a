"""
Exception hierarchy for deltakit

Every error is raised synchronously by the call that introduced the bad
input, before any state is mutated. Each class also derives from the
closest built-in exception so callers can catch either.
"""


class DeltaError(Exception):
    """Base class for all deltakit errors"""


class InvalidArgumentError(DeltaError, ValueError):
    """A negative, out-of-range or otherwise unusable argument"""


class InvalidParameterError(InvalidArgumentError):
    """Construction parameters outside their valid range"""


class HashIndexError(InvalidArgumentError, IndexError):
    """Requested hash function index is outside the precomputed family"""


class MissingValueError(DeltaError, TypeError):
    """None was given where a value is required"""


class InvalidStateError(DeltaError, ValueError):
    """The operation would produce a structurally meaningless result"""


class EmptyDistributionError(InvalidStateError):
    """A distribution needs at least one category with positive weight"""


class InsufficientDataError(InvalidStateError):
    """Not enough observations to fit a distribution"""


class NoVarianceError(InvalidStateError):
    """Observations have zero variance, so sigma would be zero"""


class IncompatibleOperandsError(DeltaError, ValueError):
    """Merge between structures with different shapes or kinds"""


class CapacityError(DeltaError, ValueError):
    """A pre-seeded bit buffer does not fit the derived capacity"""


class DecodingError(DeltaError, ValueError):
    """A serialized payload is malformed"""


def require(value, name: str = "value"):
    """
    Return value, raising MissingValueError if it is None

    Args:
        value: Value to check
        name: Name used in the error message

    Returns:
        The value unchanged
    """
    if value is None:
        raise MissingValueError(f"{name} must not be None")
    return value
