"""Public API for the :mod:`~symseries.system` package.

>>> from symseries.system import Series
"""

from .series import Series

__all__ = ["Series"]
