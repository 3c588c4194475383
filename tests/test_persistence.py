"""
test_persistence.py
~~~~~~~~~~~~~~~~~~~

Unit tests for plain-text weight persistence.
"""

import os

import pytest

from bpnet.exceptions import MalformedStateError, StateIOError
from bpnet.network import Network
from bpnet.persistence import format_state, load_state, parse_state, save_state

EXAMPLE_STATE_LINES = [
    'N', '3',
    'L', '2', '2', '2',
    'N', '8',
    'W', '0.2', '0.3', '0.4', '0.5', '0.9', '0.8', '0.7', '0.6',
]


def _state_text(lines):
    return '\n'.join(lines) + '\n'


def _write(directory, name, lines):
    path = os.path.join(directory, name)
    with open(path, 'w') as handle:
        handle.write(_state_text(lines))
    return path


@pytest.mark.unit
class TestStateFormat:
    """Test rendering and parsing of the text format."""

    def test_format_state_layout(self):
        text = format_state([2, 2, 2], [0.2, 0.3, 0.4, 0.5, 0.9, 0.8, 0.7, 0.6])
        assert text == _state_text(EXAMPLE_STATE_LINES)

    def test_parse_state(self):
        weights = parse_state(_state_text(EXAMPLE_STATE_LINES), (2, 2, 2))
        assert weights == [0.2, 0.3, 0.4, 0.5, 0.9, 0.8, 0.7, 0.6]

    def test_parse_ignores_whitespace_layout(self):
        """Tokens are read positionally, regardless of line breaks."""
        text = ' '.join(EXAMPLE_STATE_LINES) + '\r\n'
        assert len(parse_state(text, (2, 2, 2))) == 8

    def test_floats_round_trip_exactly(self):
        weights = [0.1 + 0.2, 1e-300, -123456.789012345, 2.0 / 3.0]
        text = format_state([1, 2, 2], weights)
        assert parse_state(text, [1, 2, 2]) == weights

    def test_missing_weight_marker(self):
        lines = [token for token in EXAMPLE_STATE_LINES if token != 'W']
        with pytest.raises(MalformedStateError):
            parse_state(_state_text(lines), (2, 2, 2))

    def test_wrong_leading_marker(self):
        lines = ['X'] + EXAMPLE_STATE_LINES[1:]
        with pytest.raises(MalformedStateError) as exc_info:
            parse_state(_state_text(lines), (2, 2, 2))
        assert "'N'" in str(exc_info.value)

    def test_layer_count_mismatch(self):
        lines = ['N', '2', 'L', '2', '2', 'N', '4', 'W', '1', '2', '3', '4']
        with pytest.raises(MalformedStateError) as exc_info:
            parse_state(_state_text(lines), (2, 2, 2))
        assert "Number of layers" in str(exc_info.value)

    def test_layer_size_mismatch(self):
        lines = list(EXAMPLE_STATE_LINES)
        lines[4] = '3'
        with pytest.raises(MalformedStateError) as exc_info:
            parse_state(_state_text(lines), (2, 2, 2))
        assert "layer 2" in str(exc_info.value)

    def test_fewer_weights_than_declared(self):
        lines = EXAMPLE_STATE_LINES[:-2]
        with pytest.raises(MalformedStateError) as exc_info:
            parse_state(_state_text(lines), (2, 2, 2))
        assert "Missing weight 7 of 8" in str(exc_info.value)

    def test_more_weights_than_declared(self):
        lines = EXAMPLE_STATE_LINES + ['0.5']
        with pytest.raises(MalformedStateError):
            parse_state(_state_text(lines), (2, 2, 2))

    def test_non_numeric_weight(self):
        lines = list(EXAMPLE_STATE_LINES)
        lines[-1] = 'heavy'
        with pytest.raises(MalformedStateError) as exc_info:
            parse_state(_state_text(lines), (2, 2, 2))
        assert isinstance(exc_info.value.cause, ValueError)

    @pytest.mark.parametrize("token", ['2.5', 'three', ''])
    def test_unreadable_layer_count(self, token):
        lines = ['N', token] + EXAMPLE_STATE_LINES[2:]
        with pytest.raises(MalformedStateError):
            parse_state(_state_text(lines), (2, 2, 2))

    @pytest.mark.parametrize("position, token", [(-1, '1_0'), (7, '0_8'), (1, '3_')])
    def test_rejects_underscore_digit_groups(self, position, token):
        lines = list(EXAMPLE_STATE_LINES)
        lines[position] = token
        with pytest.raises(MalformedStateError):
            parse_state(_state_text(lines), (2, 2, 2))

    def test_empty_text(self):
        with pytest.raises(MalformedStateError):
            parse_state('', (2, 2, 2))


@pytest.mark.unit
class TestStateFiles:
    """Test reading and writing state files."""

    def test_save_state_creates_file(self, state_dir):
        path = os.path.join(state_dir, 'out.txt')
        save_state(path, [2, 2, 2], [0.2, 0.3, 0.4, 0.5, 0.9, 0.8, 0.7, 0.6])

        assert os.path.exists(path)
        with open(path) as handle:
            assert handle.read().split('\n')[:-1] == EXAMPLE_STATE_LINES

    def test_save_state_creates_directories(self, state_dir):
        path = os.path.join(state_dir, 'nested', 'deeper', 'out.txt')
        save_state(path, [1, 1, 1], [0.5, 0.5])
        assert os.path.exists(path)

    def test_load_state(self, state_dir):
        path = _write(state_dir, 'in.txt', EXAMPLE_STATE_LINES)
        assert load_state(path, [2, 2, 2]) == [0.2, 0.3, 0.4, 0.5, 0.9, 0.8, 0.7, 0.6]

    def test_load_missing_file(self, state_dir):
        path = os.path.join(state_dir, 'nonexistent.txt')
        with pytest.raises(StateIOError) as exc_info:
            load_state(path, [2, 2, 2])

        assert exc_info.value.path == path
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_save_to_directory_fails(self, state_dir):
        with pytest.raises(StateIOError):
            save_state(state_dir, [1, 1, 1], [0.5, 0.5])


@pytest.mark.integration
class TestNetworkPersistence:
    """Integration tests for saving and loading networks."""

    def test_save_load_round_trip(self, sigmoid_network, state_dir):
        """A fresh network of the same shape gets identical weights."""
        path = os.path.join(state_dir, 'network.txt')
        sigmoid_network.save(path)

        fresh = Network(3, 4, 2, rng=99)
        assert fresh.get_flat_weights() != sigmoid_network.get_flat_weights()

        fresh.load(path)

        assert fresh.get_flat_weights() == sigmoid_network.get_flat_weights()
        assert (fresh.feed_forward([0.1, 0.2, 0.3])
                == pytest.approx(sigmoid_network.feed_forward([0.1, 0.2, 0.3])))

    def test_save_load_train_cycle(self, sigmoid_network, state_dir):
        """Test complete cycle: save, load, train, save again."""
        path = os.path.join(state_dir, 'cycle.txt')
        sigmoid_network.save(path)

        loaded = Network(3, 4, 2, rng=1)
        loaded.load(path)
        loaded.train([[1.0, 0.0, 1.0]], [[0.2, 0.8]], threshold=100.0)
        loaded.save(path)

        final = Network(3, 4, 2, rng=2)
        final.load(path)
        assert final.get_flat_weights() == loaded.get_flat_weights()
        assert final.get_flat_weights() != sigmoid_network.get_flat_weights()

    def test_default_path(self, sigmoid_network, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        sigmoid_network.save()
        assert (tmp_path / 'BPNeuralNetworkProperties.txt').exists()

        fresh = Network(3, 4, 2, rng=7)
        fresh.load()
        assert fresh.get_flat_weights() == sigmoid_network.get_flat_weights()

    @pytest.mark.parametrize("lines", [
        [token for token in EXAMPLE_STATE_LINES if token != 'W'],
        EXAMPLE_STATE_LINES[:-1],
        ['N', '3', 'L', '2', '3', '2', 'N', '12', 'W'] + ['0.1'] * 12,
        ['N', '3', 'L', '2', '2', '2', 'N', '7', 'W'] + ['0.1'] * 7,
        ['N', '2', 'L', '2', '2', 'N', '4', 'W', '1', '2', '3', '4'],
    ], ids=['missing-marker', 'short', 'layer-sizes', 'weight-count', 'layer-count'])
    def test_malformed_file_leaves_weights_unchanged(
        self,
        identity_network,
        state_dir,
        lines
    ):
        path = _write(state_dir, 'bad.txt', lines)
        before = identity_network.get_flat_weights()

        with pytest.raises(MalformedStateError):
            identity_network.load(path)

        assert identity_network.get_flat_weights() == before

    def test_non_utf8_file_leaves_weights_unchanged(self, identity_network, state_dir):
        path = os.path.join(state_dir, 'binary.txt')
        with open(path, 'wb') as handle:
            handle.write(b'N 3 L 2 2 2 N 8 W \xff\xfe')
        before = identity_network.get_flat_weights()

        with pytest.raises(MalformedStateError) as exc_info:
            identity_network.load(path)

        assert isinstance(exc_info.value.cause, UnicodeDecodeError)
        assert identity_network.get_flat_weights() == before

    def test_missing_file_leaves_weights_unchanged(self, identity_network, state_dir):
        before = identity_network.get_flat_weights()
        with pytest.raises(StateIOError):
            identity_network.load(os.path.join(state_dir, 'missing.txt'))
        assert identity_network.get_flat_weights() == before

    def test_multiple_networks_coexist(self, state_dir):
        """Networks of different shapes only accept their own files."""
        small = Network(2, 2, 2, rng=1)
        large = Network(4, 5, 3, rng=2)
        small.save(os.path.join(state_dir, 'small.txt'))
        large.save(os.path.join(state_dir, 'large.txt'))

        with pytest.raises(MalformedStateError):
            Network(2, 2, 2).load(os.path.join(state_dir, 'large.txt'))

        reloaded = Network(4, 5, 3)
        reloaded.load(os.path.join(state_dir, 'large.txt'))
        assert reloaded.get_flat_weights() == large.get_flat_weights()
