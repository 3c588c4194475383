"""
activation.py
~~~~~~~~~~~~~

Activation functions applied by network nodes.

Every function exposes its value and its derivative. The derivative is
taken at the function's *output*, not its input: a node only keeps the
output of its last forward pass, and for the functions below the
derivative is cheap to express in terms of that output. New functions
must follow the same convention or the backward pass goes wrong silently.
"""

import math
from typing import Dict

from bpnet.exceptions import InvalidArgumentError


class ActivationFunction:
    """Stateless activation function. Instances are immutable and shareable."""

    name = 'activation'

    __slots__ = ()

    def evaluate(self, x: float) -> float:
        """Return the function value at ``x``."""
        raise NotImplementedError

    def derivative_from_output(self, y: float) -> float:
        """Return the derivative at the point whose output is ``y``."""
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Identity(ActivationFunction):
    """f(x) = x. Used by every input node."""

    name = 'identity'

    __slots__ = ()

    def evaluate(self, x: float) -> float:
        return x

    def derivative_from_output(self, y: float) -> float:
        return 1.0


class Sigmoid(ActivationFunction):
    """
    Logistic function f(x) = 1 / (1 + e^-x).

    The derivative at output y is y * (1 - y).
    """

    name = 'sigmoid'

    __slots__ = ()

    def evaluate(self, x: float) -> float:
        # Only ever exponentiate a non-positive number
        if x >= 0:
            return 1.0 / (1.0 + math.exp(-x))
        z = math.exp(x)
        return z / (1.0 + z)

    def derivative_from_output(self, y: float) -> float:
        return y * (1.0 - y)


class Tanh(ActivationFunction):
    """Hyperbolic tangent. The derivative at output y is 1 - y^2."""

    name = 'tanh'

    __slots__ = ()

    def evaluate(self, x: float) -> float:
        return math.tanh(x)

    def derivative_from_output(self, y: float) -> float:
        return 1.0 - y * y


IDENTITY = Identity()
SIGMOID = Sigmoid()
TANH = Tanh()

_REGISTRY: Dict[str, ActivationFunction] = {
    fn.name: fn for fn in (IDENTITY, SIGMOID, TANH)
}


def get_activation(name: str) -> ActivationFunction:
    """
    Look up a shared activation function by name.

    Args:
        name: One of 'identity', 'sigmoid' or 'tanh' (case-insensitive)

    Returns:
        The shared ActivationFunction instance

    Raises:
        InvalidArgumentError: If the name is unknown
    """
    try:
        return _REGISTRY[name.lower()]
    except (KeyError, AttributeError):
        raise InvalidArgumentError(
            f"Unknown activation function {name!r}; "
            f"expected one of {sorted(_REGISTRY)}"
        ) from None


__all__ = [
    'ActivationFunction', 'Identity', 'Sigmoid', 'Tanh',
    'IDENTITY', 'SIGMOID', 'TANH', 'get_activation',
]
