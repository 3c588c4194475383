"""
bpnet package
~~~~~~~~~~~~~

Three-layer feed-forward neural network trained by backpropagation.
Contains the activation functions, nodes, weight matrices, the network
itself and plain-text persistence of its weights.
"""

from bpnet.activation import (
    IDENTITY,
    SIGMOID,
    TANH,
    ActivationFunction,
    Identity,
    Sigmoid,
    Tanh,
    get_activation,
)
from bpnet.exceptions import (
    ConvergenceError,
    InvalidArgumentError,
    InvalidIndexError,
    MalformedStateError,
    NetworkError,
    PropagationOrderError,
    ShapeMismatchError,
    StateIOError,
)
from bpnet.network import ActivationSnapshot, Network
from bpnet.node import Node
from bpnet.weights import WeightMatrix

__version__ = "1.0.0"
