"""
Backend-agnostic contracts: tensor, tape and topology protocols plus the
engine's exception taxonomy.
"""

from ._errors import (
    MalformedModelError,
    PrecedingForwardPassRequiredError,
    ShapeError,
    TensorIndexError,
    TrainabilityDisabledError,
)
from ._tape import ITape
from ._tensor import ITensor
from ._topology import ITopology

__all__ = [
    "ITape",
    "ITensor",
    "ITopology",
    "MalformedModelError",
    "PrecedingForwardPassRequiredError",
    "ShapeError",
    "TensorIndexError",
    "TrainabilityDisabledError",
]
