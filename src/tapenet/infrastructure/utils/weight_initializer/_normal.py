"""
Truncated normal weight initializer.

Registers ``truncated_normal``: values are drawn from ``N(mu, std)`` and any
sample falling outside ``[mu - 2 std, mu + 2 std]`` is redrawn, which keeps
the distribution symmetric and bounded.
"""

from typing import Optional

import numpy as np

from ._base import WeightInitializer
from ..._tensor import Tensor
from ....domain.utils._weight_initialization import _check_spread

TRUNCATION = 2.0


@WeightInitializer.register_initializer("truncated_normal")
def truncated_normal(
    tensor: Tensor,
    *,
    mu: float = 0.0,
    std: float = 0.1,
    rng: Optional[np.random.Generator] = None,
) -> Tensor:
    """
    Fill `tensor` from a normal distribution truncated at two deviations.

    Parameters
    ----------
    tensor:
        The tensor to initialize in-place.
    mu:
        Mean of the distribution.
    std:
        Standard deviation before truncation.
    rng:
        Optional NumPy generator; the global random state is used otherwise.

    Returns
    -------
    Tensor
        The initialized tensor (same object).
    """
    mu, std = _check_spread(mu, std)
    source = rng if rng is not None else np.random
    bound = TRUNCATION * std

    w = source.normal(mu, std, size=tensor.size)
    outside = np.abs(w - mu) > bound
    # Accept probability is ~95%, so this settles in a handful of rounds.
    while outside.any():
        w[outside] = source.normal(mu, std, size=int(outside.sum()))
        outside = np.abs(w - mu) > bound

    tensor.load_from(w)
    return tensor
