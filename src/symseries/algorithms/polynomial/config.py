"""Provide the configuration object consumed by the series multiplier.

The configuration is an immutable value passed to the multiplier at call time.
Code that uses the arithmetic operators of :class:`~symseries.system.series.Series`
can scope a configuration with :func:`use_config`:

>>> with use_config(n_threads=4):
...     h = f * g
"""

from __future__ import annotations

import contextvars
import os
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator, Optional

from symseries.algorithms.utils.config import (DEFAULT_N_THREADS,
                                               DENSE_MAX_SIZE, DENSE_MIN_FILL,
                                               MAX_BLOCKS, MIN_BLOCK_SIZE)


@dataclass(frozen=True)
class MultiplierConfig:
    """Tuning parameters of the series multiplier.

    None of these parameters changes the value of a product.

    Parameters
    ----------
    n_threads : int, default=0
        Requested worker count. ``0`` selects the library default
        (``DEFAULT_N_THREADS``). The effective count is bounded by the number
        of available CPUs and by the number of work blocks, which is at most
        ``max_blocks``: raise ``max_blocks`` together with ``n_threads`` to use
        more than ``MAX_BLOCKS`` workers.
    min_block_size : int, default=MIN_BLOCK_SIZE
        Smallest number of terms of the larger operand per work block.
    max_blocks : int, default=MAX_BLOCKS
        Largest number of work blocks, hence of busy workers.
    dense_max_size : int, default=DENSE_MAX_SIZE
        Largest product code range accumulated in a dense array.
    dense_min_fill : float, default=DENSE_MIN_FILL
        Smallest ratio of candidate pairs to dense slots for the dense path.
    """
    n_threads: int = 0
    min_block_size: int = MIN_BLOCK_SIZE
    max_blocks: int = MAX_BLOCKS
    dense_max_size: int = DENSE_MAX_SIZE
    dense_min_fill: float = DENSE_MIN_FILL

    def __post_init__(self):
        self._validate()

    def _validate(self) -> None:
        """Validate the configuration."""
        if self.n_threads < 0:
            raise ValueError(f"Invalid n_threads: {self.n_threads}. Must be >= 0.")
        if self.min_block_size < 1:
            raise ValueError(f"Invalid min_block_size: {self.min_block_size}. Must be >= 1.")
        if self.max_blocks < 1:
            raise ValueError(f"Invalid max_blocks: {self.max_blocks}. Must be >= 1.")
        if self.dense_max_size < 0:
            raise ValueError(f"Invalid dense_max_size: {self.dense_max_size}. Must be >= 0.")
        if self.dense_min_fill < 0:
            raise ValueError(f"Invalid dense_min_fill: {self.dense_min_fill}. Must be >= 0.")


_DEFAULT_CONFIG = MultiplierConfig()
_CURRENT: contextvars.ContextVar[MultiplierConfig] = contextvars.ContextVar(
    "symseries_multiplier_config", default=_DEFAULT_CONFIG
)


def get_config() -> MultiplierConfig:
    """Return the configuration active in the current context."""
    return _CURRENT.get()


@contextmanager
def use_config(config: Optional[MultiplierConfig] = None, **overrides) -> Iterator[MultiplierConfig]:
    """Activate a configuration for the duration of a ``with`` block.

    Parameters
    ----------
    config : MultiplierConfig, optional
        Base configuration. Defaults to the currently active one.
    **overrides
        Fields replaced on top of ``config``.
    """
    cfg = get_config() if config is None else config
    if overrides:
        cfg = replace(cfg, **overrides)
    token = _CURRENT.set(cfg)
    try:
        yield cfg
    finally:
        _CURRENT.reset(token)


def resolve_n_threads(config: MultiplierConfig) -> int:
    """Effective worker count requested by ``config``."""
    n = config.n_threads or DEFAULT_N_THREADS
    return max(1, min(n, os.cpu_count() or 1))
