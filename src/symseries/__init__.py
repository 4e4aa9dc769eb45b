"""Sparse multivariate series with a deterministic parallel multiplier.

>>> from symseries import Series
>>> x, y = Series.symbol("x"), Series.symbol("y")
>>> len((1 + x + y) ** 3)
10
"""

from .algorithms.polynomial import (CoefficientKind, Monomial,
                                    MultiplierConfig, SeriesMultiplier,
                                    SymbolSet, Term, TermContainer,
                                    TruncationPolicy, get_config, multiply,
                                    pow_series, register_kind, use_config)
from .algorithms.utils.exceptions import (DimensionMismatchError,
                                          IncompatibleSymbolSetError,
                                          SerializationFormatError,
                                          SymseriesError,
                                          UnsupportedCapabilityError)
from .system import Series
from .utils.io import (Compression, DataFormat, dumps, is_serializable,
                       load_series, loads, save_series)

__version__ = "0.1.0"

__all__ = [
    "Series",
    "SymbolSet",
    "Monomial",
    "Term",
    "TermContainer",
    "CoefficientKind",
    "register_kind",
    "TruncationPolicy",
    "MultiplierConfig",
    "get_config",
    "use_config",
    "SeriesMultiplier",
    "multiply",
    "pow_series",
    "SymseriesError",
    "IncompatibleSymbolSetError",
    "DimensionMismatchError",
    "SerializationFormatError",
    "UnsupportedCapabilityError",
    "DataFormat",
    "Compression",
    "dumps",
    "loads",
    "save_series",
    "load_series",
    "is_serializable",
]
