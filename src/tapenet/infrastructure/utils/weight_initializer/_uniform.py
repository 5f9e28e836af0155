"""
Uniform weight initializer.

Registers ``uniform``: values are drawn independently from
``U(mu - std, mu + std)``, i.e. `std` is the half-width of the range.
This is the default policy for every model.
"""

from typing import Optional

import numpy as np

from ._base import WeightInitializer
from ..._tensor import Tensor
from ....domain.utils._weight_initialization import _check_spread


@WeightInitializer.register_initializer("uniform")
def uniform(
    tensor: Tensor,
    *,
    mu: float = 0.0,
    std: float = 0.1,
    rng: Optional[np.random.Generator] = None,
) -> Tensor:
    """
    Fill `tensor` from ``U(mu - std, mu + std)``.

    Parameters
    ----------
    tensor:
        The tensor to initialize in-place.
    mu:
        Center of the range.
    std:
        Half-width of the range.
    rng:
        Optional NumPy generator; the global random state is used otherwise.

    Returns
    -------
    Tensor
        The initialized tensor (same object).
    """
    mu, std = _check_spread(mu, std)
    source = rng if rng is not None else np.random
    w = source.uniform(mu - std, mu + std, size=tensor.size)
    tensor.load_from(w)
    return tensor
