#!/usr/bin/env python3
"""
Demonstration of a small bpnet network.

Builds a 2-2-2 sigmoid network, assigns fixed example weights, saves them
to a text file and prints the network output for the input [1, 1].
Optionally trains the network towards the target [0.5, 0.5] and plots the
error of every epoch.

Usage:
    bpnet-demo [--output Out.txt] [--train] [--plot errors.png]
"""

import sys
import logging
import argparse
from typing import Dict, List, Optional, Sequence

# Use non-GUI backend for matplotlib
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from bpnet import config
from bpnet.activation import SIGMOID
from bpnet.exceptions import ConvergenceError, NetworkError
from bpnet.network import Network

logger = logging.getLogger(__name__)

EXAMPLE_INPUT = [1.0, 1.0]
EXAMPLE_TARGET = [0.5, 0.5]
EXAMPLE_INPUT2HIDDEN = [[0.2, 0.3], [0.4, 0.5]]
EXAMPLE_HIDDEN2OUTPUT = [[0.9, 0.8], [0.7, 0.6]]


def build_example_network(
    learning_rate: float = config.DEFAULT_LEARNING_RATE
) -> Network:
    """Create the 2-2-2 sigmoid network with the example weights."""
    net = Network(2, 2, 2, SIGMOID, learning_rate=learning_rate)
    net.input2hidden.set_all_weights(EXAMPLE_INPUT2HIDDEN)
    net.hidden2output.set_all_weights(EXAMPLE_HIDDEN2OUTPUT)
    return net


def plot_error_curve(errors: Sequence[float], path: str) -> None:
    """
    Save a PNG plot of the error of each epoch.

    Args:
        errors: Epoch errors, first epoch first
        path: Output file
    """
    plt.figure(figsize=(6, 4))
    plt.plot(range(1, len(errors) + 1), errors)
    plt.xlabel('Epoch')
    plt.ylabel('Total error')
    plt.title('Training error')
    plt.grid(True)
    plt.savefig(path, format='png', bbox_inches='tight')
    plt.close()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Run a forward pass through a 2-2-2 example network.'
    )
    parser.add_argument('--output', type=str, default='Out.txt',
                        help='file the example weights are saved to (default: Out.txt)')
    parser.add_argument('--train', action='store_true',
                        help=f'train towards the target {EXAMPLE_TARGET} after the forward pass')
    parser.add_argument('--threshold', type=float, default=0.001,
                        help='epoch error at which training stops (default: 0.001)')
    parser.add_argument('--max-epochs', type=int, default=None, metavar='N',
                        help='epoch cap (default: BPNET_MAX_EPOCHS or 100000)')
    parser.add_argument('--learning-rate', type=float,
                        default=config.DEFAULT_LEARNING_RATE, metavar='LR',
                        help=f'learning rate (default: {config.DEFAULT_LEARNING_RATE})')
    parser.add_argument('--plot', type=str, default=None, metavar='PATH',
                        help='save the training error curve as PNG')
    parser.add_argument('--log-level', type=str, default=None,
                        help='log level (default: LOG_LEVEL or INFO)')
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run the demonstration.

    Returns:
        0 on success, 1 if saving, training or plotting failed
    """
    args = parse_args(argv)
    config.configure_logging(args.log_level)

    print("=" * 60)
    print("bpnet demo: 2-2-2 sigmoid network")
    print("=" * 60)

    try:
        net = build_example_network(args.learning_rate)
        net.save(args.output)
        print(f"Saved example weights to {args.output}")

        print(f"\nOutput for input {EXAMPLE_INPUT}:")
        for value in net.feed_forward(EXAMPLE_INPUT):
            print(value)

        if not args.train:
            return 0

        errors: List[float] = []

        def on_epoch_complete(data: Dict[str, float]) -> None:
            errors.append(data['error'])

        train_kwargs = {'callback': on_epoch_complete}
        if args.max_epochs is not None:
            train_kwargs['max_epochs'] = args.max_epochs

        try:
            epochs = net.train([EXAMPLE_INPUT], [EXAMPLE_TARGET],
                               args.threshold, **train_kwargs)
        except ConvergenceError as e:
            logger.error(str(e))
            return 1
        finally:
            if args.plot and errors:
                plot_error_curve(errors, args.plot)
                print(f"Saved error curve to {args.plot}")

        print(f"\nConverged after {epochs} epoch(s). Output for input {EXAMPLE_INPUT}:")
        for value in net.feed_forward(EXAMPLE_INPUT):
            print(value)

    except NetworkError as e:
        logger.error(f"Demo failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"Could not write plot: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
