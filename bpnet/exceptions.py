"""
exceptions.py
~~~~~~~~~~~~~

Error types raised by the bpnet package.

Every error derives from NetworkError so callers can catch the whole
family at once. Argument errors also derive from ValueError (and index
errors from IndexError) so they behave like the built-in equivalents.
"""

from typing import Optional


class NetworkError(Exception):
    """Base class for all bpnet errors."""


class InvalidArgumentError(NetworkError, ValueError):
    """An argument does not fit the network it was passed to."""


class InvalidIndexError(InvalidArgumentError, IndexError):
    """A row or column index lies outside a weight matrix."""


class ShapeMismatchError(InvalidArgumentError):
    """A replacement weight matrix does not have the expected shape."""


class PropagationOrderError(NetworkError, RuntimeError):
    """A backward pass was requested without a matching forward pass."""


class ConvergenceError(NetworkError):
    """
    Training reached its epoch limit without meeting the error threshold.

    Attributes:
        epochs: Number of epochs that were run
        error: Total error of the last epoch
    """

    def __init__(self, epochs: int, error: float):
        super().__init__(
            f"Training did not converge after {epochs} epoch(s); "
            f"last epoch error was {error}"
        )
        self.epochs = epochs
        self.error = error


class MalformedStateError(NetworkError):
    """
    A persisted network state could not be used to load weights.

    Attributes:
        cause: The underlying exception, if any
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class StateIOError(NetworkError):
    """
    Reading or writing a persisted network state failed.

    Attributes:
        path: The file that was being accessed
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
