"""
Weight initializer registry and dispatch utilities.

This module defines the concrete `WeightInitializer` used by the
infrastructure layer to fill trainable `Tensor` instances from a bounded,
symmetric random distribution parameterized by a center `mu` and a spread
`std`.

Design
------
- Initializers are registered by string name via a decorator-based registry.
- Each initializer is a callable ``f(tensor, *, mu, std, rng=None)`` that
  mutates the tensor's values *in-place* and returns it.
- The dispatcher resolves an initializer by name at construction time and
  invokes it via `__call__`.

Usage example
-------------
Registering an initializer:

    @WeightInitializer.register_initializer("uniform")
    def uniform(tensor: Tensor, *, mu: float, std: float, rng=None) -> Tensor:
        ...

Applying an initializer:

    init = WeightInitializer("uniform")
    init(weight_tensor, mu=0.0, std=0.1)

Notes
-----
- Registration keys must be unique unless explicitly overwritten.
- Initializers only ever touch weight matrices. Biases and activations
  start at exact zero.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, Optional, TypeVar

import numpy as np

from ....domain.utils._weight_initialization import _WeightInitializer
from ..._tensor import Tensor

T = TypeVar("T", bound=Callable[..., Tensor])

DEFAULT_POLICY = "uniform"


class WeightInitializer(_WeightInitializer):
    """
    Registry-backed weight initializer dispatcher.

    Usage
    -----
    Register:
        @WeightInitializer.register_initializer("uniform")
        def uniform(tensor: Tensor, *, mu, std, rng=None) -> Tensor: ...

    Dispatch:
        init = WeightInitializer("uniform")
        init(tensor, mu=0.0, std=0.08)
    """

    INITIALIZERS: ClassVar[Dict[str, Callable[..., Tensor]]] = {}

    def __init__(self, initializer_name: str) -> None:
        try:
            self._initializer: Callable[..., Tensor] = self.INITIALIZERS[
                initializer_name
            ]
        except KeyError as e:
            available = ", ".join(sorted(self.INITIALIZERS)) or "<none>"
            raise ValueError(
                f"Unsupported initializer name: {initializer_name!r}. "
                f"Available: {available}"
            ) from e
        self.name = initializer_name

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Decorator to register a weight initializer under `name`.

        Parameters
        ----------
        name:
            Registry key used to retrieve the initializer later.
        overwrite:
            If False (default), raises if `name` is already registered.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Initializer name must be a non-empty string")

        def decorator(func: T) -> T:
            if not overwrite and name in cls.INITIALIZERS:
                raise ValueError(f"Initializer already registered: {name!r}")
            cls.INITIALIZERS[name] = func
            return func

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered initializer names (sorted)."""
        return tuple(sorted(cls.INITIALIZERS))

    @classmethod
    def get(cls, name: str) -> Callable[..., Tensor]:
        """Get a registered initializer callable by name."""
        return cls.INITIALIZERS[name]

    def __call__(self, tensor: Tensor, *args: Any, **kwargs: Any) -> Tensor:
        return self._initializer(tensor, *args, **kwargs)


def random_tensor(
    rows: int,
    cols: int,
    mu: float,
    std: float,
    *,
    policy: str = DEFAULT_POLICY,
    rng: Optional[np.random.Generator] = None,
) -> Tensor:
    """
    Allocate a parameter tensor and fill it with random values.

    Parameters
    ----------
    rows, cols:
        Shape of the tensor.
    mu, std:
        Center and spread forwarded to the initializer.
    policy:
        Registered initializer name. Defaults to ``"uniform"``.
    rng:
        Optional NumPy generator. When omitted, the global NumPy random state
        is used.

    Returns
    -------
    Tensor
        A new tensor with random values and an all-zero gradient.
    """
    init = WeightInitializer(policy)
    return init(Tensor(rows, cols), mu=mu, std=std, rng=rng)
