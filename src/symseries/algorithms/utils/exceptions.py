"""
Custom exceptions for the symseries package.
"""

class SymseriesError(Exception):
    """Base exception for symseries errors.
    
    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class IncompatibleSymbolSetError(SymseriesError):
    """Raised when the symbol sets of two operands cannot be reconciled.
    
    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class DimensionMismatchError(SymseriesError, ValueError):
    """Raised when a monomial key does not match the size of its symbol set.
    
    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class SerializationFormatError(SymseriesError, ValueError):
    """Raised when a serialized series is too new or structurally malformed.
    
    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class UnsupportedCapabilityError(SymseriesError, TypeError):
    """Raised when a coefficient kind lacks a required capability.
    
    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)
