"""Exceptions raised by the Stonks Discord Bot."""


class StonksError(Exception):
    """Base class for bot errors."""


class DataUnavailable(StonksError):
    """Raised when a symbol has no usable price history."""

    def __init__(self, symbol: str, reason: str):
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"{symbol}: {reason}")


class PersistenceFailure(StonksError):
    """Raised when the alert state could not be written."""


class PermissionDenied(StonksError):
    """Raised when a command requires a privilege the caller lacks."""


class MalformedInput(StonksError):
    """Raised when a command is missing or has an invalid argument."""
