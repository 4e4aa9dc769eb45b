from .common import Compression
from .series import (FORMAT_VERSION, DataFormat, dumps, is_serializable,
                     load_series, loads, save_series)

__all__ = [
    "Compression",
    "DataFormat",
    "FORMAT_VERSION",
    "dumps",
    "loads",
    "save_series",
    "load_series",
    "is_serializable",
]
