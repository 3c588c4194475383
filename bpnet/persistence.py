"""
persistence.py
~~~~~~~~~~~~~~

Plain-text persistence for network weights.

A saved state lists the layer sizes and then every weight, one token per
line, with single-letter markers in between:

    N
    <number of layers>
    L
    <size of each layer>
    N
    <number of weights>
    W
    <each weight>

Loading is strict: the markers must appear in that order, every count must
match the network being loaded and no tokens may follow the weights.
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator, IO, Iterator, List, Sequence

from bpnet.exceptions import MalformedStateError, StateIOError

# Configure module logger
logger = logging.getLogger(__name__)

COUNT_MARKER = 'N'
LAYER_MARKER = 'L'
WEIGHT_MARKER = 'W'


class _TokenReader:
    """Reads whitespace-separated tokens in order, with typed accessors."""

    def __init__(self, text: str):
        self._tokens: Iterator[str] = iter(text.split())

    def _next(self, what: str) -> str:
        try:
            return next(self._tokens)
        except StopIteration:
            raise MalformedStateError(
                f"Cannot use state to load weights. Missing {what}."
            ) from None

    def expect_marker(self, marker: str) -> None:
        token = self._next(f"'{marker}' marker")
        if token != marker:
            raise MalformedStateError(
                f"Cannot use state to load weights. Bad format: expected "
                f"'{marker}' marker, found {token!r}."
            )

    def _next_number(self, what: str) -> str:
        token = self._next(what)
        if '_' in token:
            raise MalformedStateError(
                f"Cannot use state to load weights. Cannot read {what} "
                f"from {token!r}."
            )
        return token

    def next_int(self, what: str) -> int:
        token = self._next_number(what)
        try:
            return int(token)
        except ValueError as e:
            raise MalformedStateError(
                f"Cannot use state to load weights. Cannot read {what} "
                f"from {token!r}.",
                cause=e
            ) from e

    def next_float(self, what: str) -> float:
        token = self._next_number(what)
        try:
            return float(token)
        except ValueError as e:
            raise MalformedStateError(
                f"Cannot use state to load weights. Cannot read {what} "
                f"from {token!r}.",
                cause=e
            ) from e

    def expect_end(self) -> None:
        leftover = next(self._tokens, None)
        if leftover is not None:
            raise MalformedStateError(
                f"Cannot use state to load weights. Unexpected token "
                f"{leftover!r} after the last weight."
            )


def format_state(layer_sizes: Sequence[int], weights: Sequence[float]) -> str:
    """
    Render layer sizes and weights in the text state format.

    Weights are written with ``repr`` so they read back exactly.

    Args:
        layer_sizes: Number of nodes per layer, input first
        weights: Flattened weights

    Returns:
        The state text, one token per line, ending with a newline
    """
    lines = [COUNT_MARKER, str(len(layer_sizes)), LAYER_MARKER]
    lines.extend(str(int(size)) for size in layer_sizes)
    lines.extend([COUNT_MARKER, str(len(weights)), WEIGHT_MARKER])
    lines.extend(repr(float(weight)) for weight in weights)
    return '\n'.join(lines) + '\n'


def parse_state(text: str, layer_sizes: Sequence[int]) -> List[float]:
    """
    Parse state text and check it against the expected layer sizes.

    Args:
        text: State text as produced by format_state()
        layer_sizes: Layer sizes of the network that will receive the
            weights

    Returns:
        The weights, in file order

    Raises:
        MalformedStateError: If a marker is missing or wrong, a count is
            unreadable, the layer sizes differ from ``layer_sizes``, there
            are fewer weights than declared, or tokens follow the weights
    """
    reader = _TokenReader(text)

    reader.expect_marker(COUNT_MARKER)
    num_layers = reader.next_int('number of layers')
    if num_layers != len(layer_sizes):
        raise MalformedStateError(
            f"Cannot use state to load weights. Number of layers in state "
            f"({num_layers}) does not match that of the network "
            f"({len(layer_sizes)})."
        )

    reader.expect_marker(LAYER_MARKER)
    stored_sizes = [
        reader.next_int(f'size of layer {index + 1}')
        for index in range(num_layers)
    ]
    for index, (stored, expected) in enumerate(zip(stored_sizes, layer_sizes)):
        if stored != expected:
            raise MalformedStateError(
                f"Cannot use state to load weights. The number of nodes in "
                f"layer {index + 1} ({stored}) does not equal the number of "
                f"nodes in the network ({expected})."
            )

    reader.expect_marker(COUNT_MARKER)
    num_weights = reader.next_int('number of weights')
    if num_weights < 0:
        raise MalformedStateError(
            f"Cannot use state to load weights. Negative number of weights "
            f"({num_weights})."
        )

    reader.expect_marker(WEIGHT_MARKER)
    weights = [
        reader.next_float(f'weight {index + 1} of {num_weights}')
        for index in range(num_weights)
    ]
    reader.expect_end()

    return weights


@contextmanager
def _open_state(path: str, mode: str) -> Generator[IO[str], None, None]:
    """
    Context manager for state files.

    Yields:
        The open text file

    Raises:
        StateIOError: If opening, reading or writing fails
    """
    try:
        with open(path, mode, encoding='utf-8') as handle:
            yield handle
    except OSError as e:
        logger.error(f"I/O error on state file '{path}': {e}")
        raise StateIOError(
            f"Could not access state file '{path}': {e}", path=path
        ) from e


def save_state(
    path: str,
    layer_sizes: Sequence[int],
    weights: Sequence[float]
) -> None:
    """
    Write layer sizes and weights to a text file.

    Lines end with the platform line separator.

    Args:
        path: Destination file; parent directories are created
        layer_sizes: Number of nodes per layer, input first
        weights: Flattened weights

    Raises:
        StateIOError: If the file cannot be written
    """
    text = format_state(layer_sizes, weights)

    directory = os.path.dirname(path)
    if directory and not os.path.exists(directory):
        try:
            os.makedirs(directory)
        except OSError as e:
            raise StateIOError(
                f"Could not create directory '{directory}': {e}", path=path
            ) from e

    with _open_state(path, 'w') as handle:
        handle.write(text)

    logger.info(
        f"Saved state with layer sizes {list(layer_sizes)} and "
        f"{len(weights)} weight(s) to '{path}'"
    )


def load_state(path: str, layer_sizes: Sequence[int]) -> List[float]:
    """
    Read weights from a text file written by save_state().

    Args:
        path: Source file
        layer_sizes: Layer sizes the file must declare

    Returns:
        The weights, in file order

    Raises:
        StateIOError: If the file cannot be read
        MalformedStateError: If the content does not fit ``layer_sizes``
    """
    with _open_state(path, 'r') as handle:
        try:
            text = handle.read()
        except UnicodeDecodeError as e:
            logger.warning(f"Rejected state file '{path}': not UTF-8 text")
            raise MalformedStateError(
                f"Cannot use state to load weights. '{path}' is not "
                f"UTF-8 text: {e}",
                cause=e
            ) from e

    try:
        weights = parse_state(text, layer_sizes)
    except MalformedStateError as e:
        logger.warning(f"Rejected state file '{path}': {e}")
        raise

    logger.debug(f"Read {len(weights)} weight(s) from '{path}'")
    return weights


__all__ = [
    'format_state', 'parse_state', 'save_state', 'load_state',
    'COUNT_MARKER', 'LAYER_MARKER', 'WEIGHT_MARKER',
]
