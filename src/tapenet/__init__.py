"""
tapenet: a small reverse-mode autodiff toolkit with feed-forward and
recurrent models trained by clipped gradient descent.
"""

from .domain import (
    MalformedModelError,
    PrecedingForwardPassRequiredError,
    ShapeError,
    TensorIndexError,
    TrainabilityDisabledError,
)
from .infrastructure import (
    Architecture,
    FeedForwardTopology,
    FreshSpec,
    History,
    InnerState,
    ModelSpec,
    RecurrentTopology,
    RestoreSpec,
    Tape,
    Tensor,
    TrainableModel,
    TrainingOptions,
    WeightInitializer,
    create_dnn,
    create_relu_dnn,
    create_rnn,
    random_tensor,
    spec_from_options,
)

__version__ = "1.0.0"

__all__ = [
    "Architecture",
    "FeedForwardTopology",
    "FreshSpec",
    "History",
    "InnerState",
    "MalformedModelError",
    "ModelSpec",
    "PrecedingForwardPassRequiredError",
    "RecurrentTopology",
    "RestoreSpec",
    "ShapeError",
    "Tape",
    "Tensor",
    "TensorIndexError",
    "TrainabilityDisabledError",
    "TrainableModel",
    "TrainingOptions",
    "WeightInitializer",
    "create_dnn",
    "create_relu_dnn",
    "create_rnn",
    "random_tensor",
    "spec_from_options",
]
