"""
NumPy-backed implementations: tensor, tape, initializers, configuration and
the trainable model core with its topologies.
"""

from ._config import (
    Architecture,
    FreshSpec,
    ModelSpec,
    RestoreSpec,
    TrainingOptions,
    spec_from_options,
)
from ._tape import Tape
from ._tensor import Tensor
from .models import (
    FeedForwardTopology,
    History,
    InnerState,
    RecurrentTopology,
    TrainableModel,
    create_dnn,
    create_relu_dnn,
    create_rnn,
)
from .utils.weight_initializer import WeightInitializer, random_tensor

__all__ = [
    "Architecture",
    "FeedForwardTopology",
    "FreshSpec",
    "History",
    "InnerState",
    "ModelSpec",
    "RecurrentTopology",
    "RestoreSpec",
    "Tape",
    "Tensor",
    "TrainableModel",
    "TrainingOptions",
    "WeightInitializer",
    "create_dnn",
    "create_relu_dnn",
    "create_rnn",
    "random_tensor",
    "spec_from_options",
]
