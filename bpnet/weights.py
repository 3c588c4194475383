"""
weights.py
~~~~~~~~~~

Dense connection weights between two adjacent layers.
"""

import logging
from typing import Sequence, Tuple, Union

import numpy as np

from bpnet.exceptions import InvalidIndexError, ShapeMismatchError

# Configure module logger
logger = logging.getLogger(__name__)

RandomSource = Union[None, int, np.random.Generator]


class WeightMatrix:
    """
    A ``source_size x dest_size`` matrix of connection weights.

    Entry ``[i][j]`` connects node ``i`` of the source layer to node ``j``
    of the destination layer. The dimensions are fixed at construction.
    """

    def __init__(
        self,
        source_size: int,
        dest_size: int,
        rng: RandomSource = None
    ):
        """
        Create the matrix with uniform random weights in [0, 1).

        Args:
            source_size: Number of nodes in the source layer
            dest_size: Number of nodes in the destination layer
            rng: A numpy Generator, an integer seed, or None for fresh
                entropy
        """
        self._source_size = int(source_size)
        self._dest_size = int(dest_size)
        generator = make_rng(rng)
        self._weights = generator.random((self._source_size, self._dest_size))

    @property
    def source_size(self) -> int:
        return self._source_size

    @property
    def dest_size(self) -> int:
        return self._dest_size

    @property
    def shape(self) -> Tuple[int, int]:
        return (self._source_size, self._dest_size)

    def _check_index(self, i: int, j: int) -> None:
        for name, index in (('Row', i), ('Column', j)):
            if isinstance(index, bool) or not isinstance(index, (int, np.integer)):
                raise InvalidIndexError(
                    f"{name} index must be an integer, got {index!r}"
                )
        if not 0 <= i < self._source_size:
            raise InvalidIndexError(
                f"Row index {i} out of range [0, {self._source_size})"
            )
        if not 0 <= j < self._dest_size:
            raise InvalidIndexError(
                f"Column index {j} out of range [0, {self._dest_size})"
            )

    def weighted_output(self, value: float, i: int, j: int) -> float:
        """Return ``value`` scaled by the weight between ``i`` and ``j``."""
        self._check_index(i, j)
        return value * float(self._weights[i, j])

    def update_weight(
        self,
        i: int,
        j: int,
        error: float,
        rate: float,
        source_output: float
    ) -> float:
        """
        Move one weight along its error gradient.

        Applies ``w[i][j] += rate * error * source_output``. No state is
        carried between calls.

        Args:
            i: Source node index
            j: Destination node index
            error: Error term of the destination node
            rate: Learning rate
            source_output: Last output of the source node

        Returns:
            The updated weight

        Raises:
            InvalidIndexError: If ``i`` or ``j`` is out of range
        """
        self._check_index(i, j)
        self._weights[i, j] += rate * error * source_output
        return float(self._weights[i, j])

    def get_weight(self, i: int, j: int) -> float:
        self._check_index(i, j)
        return float(self._weights[i, j])

    def get_all_weights(self) -> np.ndarray:
        """Return a copy of the whole matrix."""
        return self._weights.copy()

    def set_all_weights(self, matrix: Union[np.ndarray, Sequence[Sequence[float]]]) -> None:
        """
        Replace every weight at once.

        Args:
            matrix: Nested sequence or array of shape
                ``source_size x dest_size``. It is copied.

        Raises:
            ShapeMismatchError: If the shape differs or rows are ragged
        """
        try:
            replacement = np.array(matrix, dtype=float)
        except (ValueError, TypeError) as e:
            raise ShapeMismatchError(
                f"Weights must be a {self._source_size}x{self._dest_size} "
                f"numeric matrix: {e}"
            ) from e

        if replacement.shape != self.shape:
            raise ShapeMismatchError(
                f"Expected weights of shape {self.shape}, "
                f"got {replacement.shape}"
            )

        self._weights = replacement
        logger.debug(f"Replaced all weights of {self.shape} matrix")

    def __repr__(self) -> str:
        return f"WeightMatrix({self._source_size}, {self._dest_size})"


def make_rng(rng: RandomSource = None) -> np.random.Generator:
    """Turn a seed, a Generator or None into a Generator."""
    return np.random.default_rng(rng)


__all__ = ['WeightMatrix', 'RandomSource', 'make_rng']
