"""
node.py
~~~~~~~

A single computation unit of the network.
"""

from bpnet.activation import ActivationFunction


class Node:
    """
    Applies an activation function and remembers its last pass.

    ``last_input`` and ``last_output`` are overwritten by every forward
    pass and ``last_error`` by every backward pass. A backward pass reads
    ``last_output``, so it is only meaningful right after the forward pass
    for the same pattern.
    """

    __slots__ = ('activation', 'last_input', 'last_output', 'last_error')

    def __init__(self, activation: ActivationFunction):
        self.activation = activation
        self.last_input = 0.0
        self.last_output = 0.0
        self.last_error = 0.0

    def forward(self, x: float) -> float:
        """Evaluate the activation at ``x`` and record input and output."""
        self.last_input = float(x)
        self.last_output = self.activation.evaluate(self.last_input)
        return self.last_output

    def backward_error(self, signal: float) -> float:
        """
        Compute this node's error term from the signal flowing back into it.

        Args:
            signal: For an output node, target minus output. For a hidden
                node, the weighted sum of the errors of the next layer.

        Returns:
            The derivative at the last output times ``signal``
        """
        self.last_error = (
            self.activation.derivative_from_output(self.last_output) * signal
        )
        return self.last_error

    def restore(self, last_input: float, last_output: float) -> None:
        """Reload the state of an earlier forward pass."""
        self.last_input = float(last_input)
        self.last_output = float(last_output)

    def __repr__(self) -> str:
        return (
            f"Node({self.activation!r}, last_input={self.last_input}, "
            f"last_output={self.last_output}, last_error={self.last_error})"
        )
