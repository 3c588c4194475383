"""
conftest.py
~~~~~~~~~~~

Shared fixtures for the bpnet test suite.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from bpnet.activation import IDENTITY, SIGMOID
from bpnet.network import Network

EXAMPLE_INPUT2HIDDEN = [[0.2, 0.3], [0.4, 0.5]]
EXAMPLE_HIDDEN2OUTPUT = [[0.9, 0.8], [0.7, 0.6]]


@pytest.fixture
def identity_network():
    """A 2-2-2 identity network with the example weights."""
    net = Network(2, 2, 2, IDENTITY, learning_rate=0.1, rng=0)
    net.input2hidden.set_all_weights(EXAMPLE_INPUT2HIDDEN)
    net.hidden2output.set_all_weights(EXAMPLE_HIDDEN2OUTPUT)
    return net


@pytest.fixture
def sigmoid_network():
    """A seeded 3-4-2 sigmoid network."""
    return Network(3, 4, 2, SIGMOID, learning_rate=0.5, rng=42)


@pytest.fixture
def state_dir(tmp_path):
    """Create a temporary directory for state files."""
    directory = tmp_path / "states"
    directory.mkdir()
    return str(directory)
