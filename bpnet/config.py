"""
config.py
~~~~~~~~~

Environment-driven settings and logging setup.

Settings are read from the environment each time they are requested, so
tests and callers can change them with ``os.environ`` at any point.
"""

import os
import logging
from typing import Optional

from bpnet.exceptions import InvalidArgumentError

# Scalar applied to every weight update
DEFAULT_LEARNING_RATE = 0.5

# Epoch cap used by Network.train when the environment sets none
DEFAULT_MAX_EPOCHS = 100000

DEFAULT_STATE_FILE = 'BPNeuralNetworkProperties.txt'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: Optional[str] = None) -> None:
    """
    Set up logging for applications built on bpnet.

    The library itself never calls this; entry points such as the demo do.

    Args:
        level: Log level name. Falls back to the LOG_LEVEL environment
            variable, then to INFO.
    """
    log_level_str = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    logging.getLogger('bpnet').setLevel(log_level)

    # matplotlib is chatty at DEBUG
    logging.getLogger('matplotlib').setLevel(logging.WARNING)


def get_max_epochs() -> Optional[int]:
    """
    Return the default epoch cap for training.

    Reads BPNET_MAX_EPOCHS. ``0`` or ``none`` disables the cap.

    Returns:
        The cap, or None for unbounded training

    Raises:
        InvalidArgumentError: If the variable is not an integer
    """
    raw = os.getenv('BPNET_MAX_EPOCHS')
    if raw is None or not raw.strip():
        return DEFAULT_MAX_EPOCHS

    raw = raw.strip()
    if raw.lower() == 'none':
        return None

    try:
        value = int(raw)
    except ValueError:
        raise InvalidArgumentError(
            f"BPNET_MAX_EPOCHS must be an integer, got {raw!r}"
        ) from None

    if value < 0:
        raise InvalidArgumentError(
            f"BPNET_MAX_EPOCHS must be non-negative, got {value}"
        )
    return value or None
