"""Public API for the :mod:`~symseries.algorithms` package."""

from .polynomial import (MultiplierConfig, SeriesMultiplier,
                         TruncationPolicy, multiply, pow_series, use_config)
from .utils.exceptions import (DimensionMismatchError,
                               IncompatibleSymbolSetError,
                               SerializationFormatError, SymseriesError,
                               UnsupportedCapabilityError)

__all__ = [
    "MultiplierConfig",
    "SeriesMultiplier",
    "TruncationPolicy",
    "multiply",
    "pow_series",
    "use_config",
    "SymseriesError",
    "IncompatibleSymbolSetError",
    "DimensionMismatchError",
    "SerializationFormatError",
    "UnsupportedCapabilityError",
]
