"""
Abstract interfaces and utilities for weight initialization.

This module defines the abstract base class for weight initializers used
for trainable parameters, along with the shared validation applied to the
``(mu, std)`` parameterization every policy accepts.

The concrete implementation and registry logic live in the infrastructure
layer. This module exists in the domain layer to define contracts without
binding to any specific backend.
"""

from typing import Callable, Dict, TypeVar
from abc import ABC

from .._tensor import ITensor


T = TypeVar("T", bound=Callable[..., ITensor])


class _WeightInitializer(ABC):
    """
    Abstract base class for weight initializer dispatchers.

    Design notes
    ------------
    - Initializers are identified by string names.
    - Each initializer is a callable that fills a tensor's values in-place
      from a distribution parameterized by a center `mu` and a spread `std`,
      and returns it.
    - Every registered policy must be symmetric around `mu` and bounded.
    """

    INITIALIZERS: Dict[str, Callable] = {}

    def __init__(self, initializer_name: str) -> None:
        """
        Construct a weight initializer dispatcher.

        Parameters
        ----------
        initializer_name:
            The string key identifying a registered initializer.
        """
        ...

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Register a weight initializer under a given name.

        Returns
        -------
        Callable
            A decorator that registers the initializer function.
        """
        ...

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return the names of all registered initializers, sorted."""
        ...

    @classmethod
    def get(cls, name: str) -> Callable[..., ITensor]:
        """Get a registered initializer callable by name."""
        ...

    def __call__(self, tensor: ITensor, *args, **kwargs) -> ITensor:
        """Apply the initializer to a tensor and return it."""
        ...


def _check_spread(mu: float, std: float) -> tuple[float, float]:
    """
    Validate and normalize a ``(mu, std)`` pair.

    Parameters
    ----------
    mu:
        Center of the distribution.
    std:
        Spread of the distribution. Must be non-negative.

    Returns
    -------
    tuple[float, float]
        The pair coerced to floats.

    Raises
    ------
    ValueError
        If `std` is negative or either value is not finite.
    """
    mu = float(mu)
    std = float(std)
    if mu != mu or std != std or mu in (float("inf"), float("-inf")):
        raise ValueError(f"mu and std must be finite, got mu={mu}, std={std}")
    if std < 0.0 or std == float("inf"):
        raise ValueError(f"std must be a finite non-negative number, got {std}")
    return mu, std
