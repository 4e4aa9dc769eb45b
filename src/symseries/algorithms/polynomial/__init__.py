"""Public API for the :mod:`~symseries.algorithms.polynomial` package."""

from .coefficients import CoefficientKind, register_kind
from .config import MultiplierConfig, get_config, use_config
from .container import Term, TermContainer
from .monomial import Monomial
from .multiplier import SeriesMultiplier, multiply
from .power import pow_series
from .symbols import SymbolSet
from .truncation import TruncationPolicy

__all__ = [
    "CoefficientKind",
    "register_kind",
    "MultiplierConfig",
    "get_config",
    "use_config",
    "Term",
    "TermContainer",
    "Monomial",
    "SeriesMultiplier",
    "multiply",
    "pow_series",
    "SymbolSet",
    "TruncationPolicy",
]
