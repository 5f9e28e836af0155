"""
Tensor interface definitions.

This module defines the domain-level interface for the dense 2-D buffers the
engine operates on. A tensor carries two flat buffers of identical length:
its `values` and a parallel `gradient` buffer that reverse-mode replay
accumulates into.

Notes
-----
The protocol is structural so that tests and alternative backends can
provide their own tensor-like objects as long as they expose the same
surface.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable


@runtime_checkable
class ITensor(Protocol):
    """
    Tensor interface.

    Invariants
    ----------
    - ``len(values) == len(gradient) == rows * cols`` at all times.
    - Buffers are never resized after construction.
    - `gradient` is only ever overwritten by output-error injection and
      accumulated into (``+=``) by backward replay.
    """

    rows: int
    cols: int

    @property
    def values(self) -> Any:
        """Flat buffer of element values (length ``rows * cols``)."""
        ...

    @property
    def gradient(self) -> Any:
        """Flat gradient buffer, same length as `values`."""
        ...

    @property
    def shape(self) -> tuple[int, int]:
        """Return ``(rows, cols)``."""
        ...

    def load_from(self, sequence: Sequence[float]) -> None:
        """
        Copy an ordered numeric sequence of length ``rows * cols`` into `values`.
        """
        ...

    def update(self, learning_rate: float) -> None:
        """
        Apply one gradient-descent step and reset the gradient buffer.

        For every index: ``values[i] -= learning_rate * gradient[i]``, then
        ``gradient[i] = 0``.
        """
        ...

    def zero_grad(self) -> None:
        """Reset every gradient entry to zero."""
        ...
