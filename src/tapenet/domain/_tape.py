"""
Tape interface definitions.

The tape is the reverse-mode differentiation recorder. Primitive operations
compute their forward value immediately and, while recording, push a
closure that later accumulates local derivatives into the operands'
gradient buffers. Replay happens in strict last-in, first-out order.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ._tensor import ITensor


@runtime_checkable
class ITape(Protocol):
    """
    Domain-level interface for the operation recorder.

    The tape is explicitly passed to every topology call; there is no
    ambient or global tape.
    """

    def add(self, a: ITensor, b: ITensor) -> ITensor:
        """Elementwise sum of two tensors of identical shape."""
        ...

    def mul(self, a: ITensor, b: ITensor) -> ITensor:
        """Matrix product ``a @ b``."""
        ...

    def relu(self, a: ITensor) -> ITensor:
        """Elementwise ``max(0, a)``."""
        ...

    def tanh(self, a: ITensor) -> ITensor:
        """Elementwise hyperbolic tangent."""
        ...

    def set_recording(self, recording: bool) -> None:
        """
        Enable or disable recording.

        Disabling also discards any closures recorded for the current pass.
        """
        ...

    def is_recording(self) -> bool:
        """Return whether new operations append backward closures."""
        ...

    def backward(self) -> None:
        """Pop and execute every recorded closure in reverse order."""
        ...

    def reset(self) -> None:
        """Discard recorded closures without executing them."""
        ...
