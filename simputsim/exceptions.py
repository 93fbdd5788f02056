"""Error taxonomy of the photon generation engine.

Configuration errors are raised and abort the current request. Running out of
a light curve is not an error for the caller: the sampling functions return
None in that case, and LightCurveRangeError only travels between the indexer
and the sampler.
"""

__all__ = ['SimputError', 'SimputConfigError', 'CacheCapacityError', 'LightCurveRangeError']


class SimputError(Exception):
    """Base class for all errors raised by simputsim."""


class SimputConfigError(SimputError):
    """Missing instrument response, malformed input data or unknown units."""


class CacheCapacityError(SimputConfigError):
    """Raised when a non-evicting cache store is full.

    Attributes:
        kind (str): name of the store that overflowed
        capacity (int): maximum number of entries of the store
    """

    def __init__(self, kind, capacity):
        self.kind = kind
        self.capacity = capacity
        super().__init__(f"too many {kind} in the internal storage (capacity {capacity})")


class LightCurveRangeError(SimputError, ValueError):
    """The requested time lies outside the interval covered by a light curve."""
