from __future__ import annotations


class BondCalculatorError(Exception):
    """Base class for all bond calculator errors."""


class InvalidInput(BondCalculatorError, ValueError):
    """Out-of-range or non-finite numeric parameter."""


class IncompleteState(BondCalculatorError, RuntimeError):
    """Operation attempted before a valid price has been computed."""


class StorageError(BondCalculatorError, RuntimeError):
    """Persistence read/write failure."""
