"""
Convenience constructors for the built-in model families.

Each helper accepts either a `FreshSpec`/`RestoreSpec` or a raw options
mapping (see `spec_from_options`) and returns a `TrainableModel` wired with
the matching topology.
"""

from __future__ import annotations

from typing import Any, Mapping, Union

from .._config import ModelSpec
from ._feedforward import FeedForwardTopology
from ._recurrent import RecurrentTopology
from ._trainable import TrainableModel

Spec = Union[ModelSpec, Mapping[str, Any]]


def create_dnn(spec: Spec) -> TrainableModel:
    """Feed-forward network with tanh hidden activations."""
    return TrainableModel(spec, FeedForwardTopology, activation="tanh")


def create_relu_dnn(spec: Spec) -> TrainableModel:
    """Feed-forward network with relu hidden activations."""
    return TrainableModel(spec, FeedForwardTopology, activation="relu")


def create_rnn(spec: Spec) -> TrainableModel:
    """Recurrent network with relu hidden activations."""
    return TrainableModel(spec, RecurrentTopology, activation="relu")
