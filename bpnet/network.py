"""
network.py
~~~~~~~~~~

A three-layer feed-forward neural network trained by backpropagation.

The network is an input layer of identity nodes, a hidden layer and an
output layer, joined by two weight matrices. Internally the layers and
matrices are kept as ordered lists and the passes loop over them, but the
topology is fixed at three layers when the network is built.

A forward pass returns an ActivationSnapshot recording what every node
saw. A backward pass consumes exactly one snapshot, which keeps a backward
pass from running against the node state of some other pattern.

Example:
    >>> net = Network(2, 2, 1, activation='sigmoid', rng=1)
    >>> output = net.feed_forward([1.0, 0.0])
    >>> error = net.back_propagate([1.0])
"""

import time
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from bpnet import config
from bpnet import persistence
from bpnet.activation import IDENTITY, SIGMOID, ActivationFunction, get_activation
from bpnet.exceptions import (
    ConvergenceError,
    InvalidArgumentError,
    MalformedStateError,
    PropagationOrderError,
)
from bpnet.node import Node
from bpnet.weights import RandomSource, WeightMatrix, make_rng

# Configure module logger
logger = logging.getLogger(__name__)

ActivationSpec = Union[ActivationFunction, str]
EpochCallback = Callable[[Dict[str, Any]], None]

# Sentinel: take the epoch cap from the environment
_CONFIGURED = object()


def _resolve_activation(activation: ActivationSpec) -> ActivationFunction:
    if isinstance(activation, ActivationFunction):
        return activation
    if isinstance(activation, str):
        return get_activation(activation)
    raise InvalidArgumentError(
        f"Activation must be an ActivationFunction or a name, "
        f"got {type(activation).__name__}"
    )


def _as_vector(values: Sequence[float], size: int, label: str) -> np.ndarray:
    """Convert ``values`` to a float vector of length ``size``."""
    try:
        vector = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"{label} must be numeric: {e}") from e

    if vector.ndim != 1 or vector.shape[0] != size:
        raise InvalidArgumentError(
            f"{label} size {vector.size} does not equal layer size {size}"
        )
    return vector


class ActivationSnapshot:
    """
    The node inputs and outputs recorded by one forward pass.

    Attributes:
        layer_inputs: One array per layer with each node's input
        layer_outputs: One array per layer with each node's output
        consumed: Whether a backward pass has used this snapshot
    """

    def __init__(
        self,
        layer_inputs: List[np.ndarray],
        layer_outputs: List[np.ndarray]
    ):
        self.layer_inputs = layer_inputs
        self.layer_outputs = layer_outputs
        self.consumed = False

    @property
    def layer_sizes(self) -> Tuple[int, ...]:
        return tuple(len(outputs) for outputs in self.layer_outputs)

    @property
    def output(self) -> np.ndarray:
        """The network output of the recorded pass."""
        return self.layer_outputs[-1].copy()

    def __repr__(self) -> str:
        return (
            f"ActivationSnapshot(layer_sizes={self.layer_sizes}, "
            f"consumed={self.consumed})"
        )


class Network:
    """
    Input, hidden and output layers trained by backpropagation.

    ``learning_rate`` scales every weight update: ``w += learning_rate *
    error * source_output``. No velocity is carried between updates.
    """

    def __init__(
        self,
        input_size: int,
        hidden_size: int,
        output_size: int,
        activation: ActivationSpec = SIGMOID,
        learning_rate: float = config.DEFAULT_LEARNING_RATE,
        output_activation: Optional[ActivationSpec] = None,
        rng: RandomSource = None
    ):
        """
        Build the network with random weights in [0, 1).

        Args:
            input_size: Number of input nodes
            hidden_size: Number of hidden nodes
            output_size: Number of output nodes
            activation: Activation of the hidden layer, and of the output
                layer unless ``output_activation`` is given. The input
                layer always uses the identity.
            learning_rate: Scalar applied to every weight update
            output_activation: Activation of the output layer
            rng: A numpy Generator, an integer seed, or None. Both weight
                matrices draw from it, input-to-hidden first.

        Raises:
            InvalidArgumentError: If a size is not a positive integer or
                an activation name is unknown, or learning_rate is not a
                number
        """
        sizes = (input_size, hidden_size, output_size)
        for name, size in zip(('input_size', 'hidden_size', 'output_size'), sizes):
            if (isinstance(size, bool)
                    or not isinstance(size, (int, np.integer))
                    or size < 1):
                raise InvalidArgumentError(
                    f"{name} must be a positive integer, got {size!r}"
                )
        self._sizes = tuple(int(size) for size in sizes)

        hidden_fn = _resolve_activation(activation)
        if output_activation is None:
            output_fn = hidden_fn
        else:
            output_fn = _resolve_activation(output_activation)

        try:
            self.learning_rate = float(learning_rate)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(
                f"learning_rate must be a number, got {learning_rate!r}"
            ) from e

        layer_functions = (IDENTITY, hidden_fn, output_fn)
        self._layers: List[List[Node]] = [
            [Node(fn) for _ in range(size)]
            for fn, size in zip(layer_functions, self._sizes)
        ]

        generator = make_rng(rng)
        self._weights: List[WeightMatrix] = [
            WeightMatrix(source, dest, generator)
            for source, dest in zip(self._sizes[:-1], self._sizes[1:])
        ]

        self._pending: Optional[ActivationSnapshot] = None

        logger.debug(
            f"Created network {self._sizes} with {hidden_fn.name}/"
            f"{output_fn.name} activation, learning_rate={self.learning_rate}"
        )

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def input_size(self) -> int:
        return self._sizes[0]

    @property
    def hidden_size(self) -> int:
        return self._sizes[1]

    @property
    def output_size(self) -> int:
        return self._sizes[2]

    @property
    def layer_sizes(self) -> Tuple[int, ...]:
        return self._sizes

    @property
    def weight_count(self) -> int:
        """Total number of connection weights."""
        return sum(m.source_size * m.dest_size for m in self._weights)

    @property
    def layers(self) -> List[List[Node]]:
        """The node layers, input first. The lists are copies."""
        return [list(layer) for layer in self._layers]

    @property
    def weights(self) -> Tuple[WeightMatrix, ...]:
        """The weight matrices, input-to-hidden first."""
        return tuple(self._weights)

    @property
    def input2hidden(self) -> WeightMatrix:
        return self._weights[0]

    @property
    def hidden2output(self) -> WeightMatrix:
        return self._weights[1]

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def forward(self, inputs: Sequence[float]) -> ActivationSnapshot:
        """
        Run a forward pass and record it.

        Each layer's nodes are evaluated on their summed input, and each
        output is scaled by the weights to the next layer and added into
        that layer's sums.

        Args:
            inputs: One value per input node

        Returns:
            The snapshot of the pass. It becomes the pending snapshot
            that ``back_propagate`` uses by default.

        Raises:
            InvalidArgumentError: If ``inputs`` does not match input_size
        """
        signals = _as_vector(inputs, self.input_size, 'Input')

        for layer, matrix in zip(self._layers, self._weights):
            sums = [0.0] * matrix.dest_size
            for x, node in enumerate(layer):
                output = node.forward(signals[x])
                for y in range(matrix.dest_size):
                    sums[y] += matrix.weighted_output(output, x, y)
            signals = sums

        for x, node in enumerate(self._layers[-1]):
            node.forward(signals[x])

        snapshot = ActivationSnapshot(
            [np.array([n.last_input for n in layer]) for layer in self._layers],
            [np.array([n.last_output for n in layer]) for layer in self._layers]
        )
        self._pending = snapshot
        return snapshot

    def feed_forward(self, inputs: Sequence[float]) -> np.ndarray:
        """Run a forward pass and return the output vector."""
        return self.forward(inputs).output

    def back_propagate(
        self,
        targets: Sequence[float],
        snapshot: Optional[ActivationSnapshot] = None
    ) -> float:
        """
        Compute node errors for one pattern and update every weight.

        Output errors come first. Then, for each source node of a weight
        matrix, each weight is read for the backward error sum before it
        is updated. The input layer has no error term; its outgoing
        weights are only updated.

        Args:
            targets: Expected output, one value per output node
            snapshot: The forward pass to learn from. Defaults to the
                pending snapshot of the latest forward pass.

        Returns:
            Sum of the absolute errors of the output and hidden nodes

        Raises:
            InvalidArgumentError: If ``targets`` does not match
                output_size, or the snapshot belongs to a network of
                another shape
            PropagationOrderError: If there is no unconsumed snapshot
        """
        expected = _as_vector(targets, self.output_size, 'Target')

        if snapshot is None:
            snapshot = self._pending
            if snapshot is None:
                raise PropagationOrderError(
                    "No forward pass to back propagate; call forward() "
                    "or feed_forward() first"
                )
        elif snapshot.consumed:
            raise PropagationOrderError(
                "Snapshot has already been back propagated"
            )
        elif snapshot.layer_sizes != self._sizes:
            raise InvalidArgumentError(
                f"Snapshot of layer sizes {snapshot.layer_sizes} does not "
                f"belong to a network of layer sizes {self._sizes}"
            )

        self._restore(snapshot)

        total_error = 0.0
        errors = []
        for x, node in enumerate(self._layers[-1]):
            error = node.backward_error(expected[x] - node.last_output)
            errors.append(error)
            total_error += abs(error)

        for index in range(len(self._weights) - 1, -1, -1):
            matrix = self._weights[index]
            source_errors = []
            for x, node in enumerate(self._layers[index]):
                signal = 0.0
                for y, error in enumerate(errors):
                    if index > 0:
                        signal += error * matrix.get_weight(x, y)
                    matrix.update_weight(
                        x, y, error, self.learning_rate, node.last_output
                    )
                if index > 0:
                    source_error = node.backward_error(signal)
                    source_errors.append(source_error)
                    total_error += abs(source_error)
            errors = source_errors

        snapshot.consumed = True
        if snapshot is self._pending:
            self._pending = None

        return float(total_error)

    def _restore(self, snapshot: ActivationSnapshot) -> None:
        """Load a snapshot's recorded state back into the nodes."""
        for layer, inputs, outputs in zip(
            self._layers, snapshot.layer_inputs, snapshot.layer_outputs
        ):
            for node, last_input, last_output in zip(layer, inputs, outputs):
                node.restore(last_input, last_output)

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train(
        self,
        inputs: Sequence[Sequence[float]],
        targets: Sequence[Sequence[float]],
        threshold: float,
        max_epochs: Any = _CONFIGURED,
        callback: Optional[EpochCallback] = None
    ) -> int:
        """
        Train until an epoch's total error is at or below ``threshold``.

        Each epoch runs a forward and a backward pass for every pattern,
        in order, and sums the backward pass errors.

        Args:
            inputs: Input vectors, one per pattern
            targets: Target vectors, one per pattern
            threshold: Epoch error at or below which training stops
            max_epochs: Epoch cap. Defaults to ``config.get_max_epochs()``;
                None trains until convergence however long it takes.
            callback: Called after each epoch with a dict holding
                'epoch', 'error' and 'elapsed_time'

        Returns:
            Number of epochs run

        Raises:
            InvalidArgumentError: If the pattern counts differ, a vector
                has the wrong length, or ``max_epochs`` is not positive
            ConvergenceError: If ``max_epochs`` is reached first
        """
        if len(inputs) != len(targets):
            raise InvalidArgumentError(
                f"Number of inputs ({len(inputs)}) must equal number of "
                f"targets ({len(targets)}). Cannot train."
            )

        if max_epochs is _CONFIGURED:
            max_epochs = config.get_max_epochs()
        if max_epochs is not None and max_epochs < 1:
            raise InvalidArgumentError(
                f"max_epochs must be positive or None, got {max_epochs}"
            )

        logger.info(
            f"Training network {self._sizes} on {len(inputs)} pattern(s): "
            f"threshold={threshold}, max_epochs={max_epochs}, "
            f"learning_rate={self.learning_rate}"
        )

        start_time = time.time()
        epochs = 0
        while True:
            error = 0.0
            for pattern, target in zip(inputs, targets):
                self.feed_forward(pattern)
                error += self.back_propagate(target)
            epochs += 1

            logger.debug(f"Epoch {epochs}: error {error:.6f}")

            if callback is not None:
                callback({
                    'epoch': epochs,
                    'error': error,
                    'elapsed_time': time.time() - start_time
                })

            if error <= threshold:
                logger.info(
                    f"Converged after {epochs} epoch(s) with error {error:.6f}"
                )
                return epochs

            if max_epochs is not None and epochs >= max_epochs:
                logger.warning(
                    f"Stopped after {epochs} epoch(s) without converging; "
                    f"error {error:.6f} > threshold {threshold}"
                )
                raise ConvergenceError(epochs, error)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def get_flat_weights(self) -> List[float]:
        """
        Return every weight as one list.

        The input-to-hidden weights come first, then the hidden-to-output
        weights, each in row-major order (source node outer).
        """
        flat: List[float] = []
        for matrix in self._weights:
            flat.extend(float(w) for w in matrix.get_all_weights().ravel())
        return flat

    def set_flat_weights(self, values: Sequence[float]) -> None:
        """
        Replace every weight from a list laid out like get_flat_weights().

        Args:
            values: Exactly ``weight_count`` numbers

        Raises:
            MalformedStateError: If the count is wrong or a value is not
                numeric. The weights are left unchanged.
        """
        try:
            flat = np.asarray(values, dtype=float)
        except (TypeError, ValueError) as e:
            raise MalformedStateError(
                f"Weights must be numeric: {e}", cause=e
            ) from e

        if flat.ndim != 1 or flat.size != self.weight_count:
            raise MalformedStateError(
                f"Number of weights ({flat.size}) does not correspond to "
                f"number of weights in the network ({self.weight_count}). "
                f"Could not load weights."
            )

        offset = 0
        replacements = []
        for matrix in self._weights:
            count = matrix.source_size * matrix.dest_size
            replacements.append(flat[offset:offset + count].reshape(matrix.shape))
            offset += count

        for matrix, replacement in zip(self._weights, replacements):
            matrix.set_all_weights(replacement)

    def save(self, path: str = config.DEFAULT_STATE_FILE) -> None:
        """
        Write the layer sizes and weights to a text file.

        Raises:
            StateIOError: If the file cannot be written
        """
        persistence.save_state(path, self._sizes, self.get_flat_weights())

    def load(self, path: str = config.DEFAULT_STATE_FILE) -> None:
        """
        Read weights saved by save() into this network.

        The file's layer sizes must equal this network's. On any failure
        the weights are left unchanged.

        Raises:
            StateIOError: If the file cannot be read
            MalformedStateError: If the file does not fit this network
        """
        weights = persistence.load_state(path, self._sizes)
        self.set_flat_weights(weights)
        logger.info(f"Loaded {len(weights)} weight(s) from {path}")

    def __repr__(self) -> str:
        return (
            f"Network({self.input_size}, {self.hidden_size}, "
            f"{self.output_size}, learning_rate={self.learning_rate})"
        )


__all__ = ['Network', 'ActivationSnapshot']
