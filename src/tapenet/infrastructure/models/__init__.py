from ._factories import create_dnn, create_relu_dnn, create_rnn
from ._feedforward import FeedForwardTopology
from ._history import History
from ._recurrent import RecurrentTopology
from ._trainable import InnerState, TrainableModel

__all__ = [
    "FeedForwardTopology",
    "History",
    "InnerState",
    "RecurrentTopology",
    "TrainableModel",
    "create_dnn",
    "create_relu_dnn",
    "create_rnn",
]
