"""
Reverse-mode differentiation tape.

This module provides `Tape`, the recorder/replayer at the heart of tapenet.
Every primitive (`add`, `mul`, `relu`, `tanh`) computes its forward value
eagerly into a freshly allocated `Tensor`. While the tape is recording, the
primitive also pushes a backward closure that, when replayed, reads the
output's gradient and accumulates the local derivative into the gradients
of its inputs.

Replay order
------------
`backward()` pops closures strictly last-in, first-out. Because an output is
always recorded before any operation that consumes it, LIFO replay
guarantees that an output's gradient is complete (every consumer has
contributed) before the closure that produced it runs.

Local derivative rules
----------------------
=========  ==========================  ==========================================
primitive  forward                     backward accumulation
=========  ==========================  ==========================================
add(A,B)   out = A + B                 A.grad += out.grad; B.grad += out.grad
mul(A,B)   out = A @ B                 A.grad += out.grad @ B.T; B.grad += A.T @ out.grad
relu(A)    out = max(0, A)             A.grad += out.grad where A > 0
tanh(A)    out = tanh(A)               A.grad += out.grad * (1 - out^2)
=========  ==========================  ==========================================

Notes
-----
- The tape is not reentrant: one forward pass records into one stack.
- Shape checks run before anything is allocated or recorded.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List

import numpy as np

from ..domain._errors import ShapeError
from ..domain._tensor import ITensor
from ._tensor import Tensor

logger = logging.getLogger(__name__)

BackwardFn = Callable[[], None]


class Tape:
    """
    Operation recorder for reverse-mode automatic differentiation.

    Parameters
    ----------
    recording : bool, optional
        Initial recording flag. Defaults to True.

    Notes
    -----
    When `recording` is False, primitives still compute correct forward
    values but record nothing.
    """

    def __init__(self, recording: bool = True) -> None:
        self._recording = bool(recording)
        self._stack: List[BackwardFn] = []

    def __len__(self) -> int:
        return len(self._stack)

    def __repr__(self) -> str:
        return f"Tape(recording={self._recording}, recorded={len(self._stack)})"

    # ------------------------------------------------------------------
    # Mode control
    # ------------------------------------------------------------------
    def is_recording(self) -> bool:
        return self._recording

    def set_recording(self, recording: bool) -> None:
        """
        Enable or disable recording.

        Switching recording off discards every closure recorded so far.
        Switching it on has no other side effect.
        """
        recording = bool(recording)
        if not recording:
            self._stack.clear()
        self._recording = recording

    def reset(self) -> None:
        """Discard recorded closures without executing them."""
        self._stack.clear()

    @contextmanager
    def paused(self) -> Iterator["Tape"]:
        """
        Suspend recording for the duration of a `with` block.

        Unlike `set_recording(False)`, closures recorded before the block
        are kept, so a pending forward pass can still be trained on.
        """
        previous = self._recording
        self._recording = False
        try:
            yield self
        finally:
            self._recording = previous

    def _record(self, fn: BackwardFn) -> None:
        if self._recording:
            self._stack.append(fn)

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------
    def backward(self) -> None:
        """
        Execute every recorded closure in reverse order of recording.

        The stack is detached before replay starts, so the tape is empty
        afterwards even if a closure raises. Gradients accumulated before
        the failing closure are left in place.
        """
        stack, self._stack = self._stack, []
        logger.debug("Replaying %d recorded operations", len(stack))
        for fn in reversed(stack):
            fn()

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------
    def add(self, a: ITensor, b: ITensor) -> Tensor:
        """
        Elementwise sum of two tensors with identical shape.

        Raises
        ------
        ShapeError
            If ``a.shape != b.shape``.
        """
        if a.rows != b.rows or a.cols != b.cols:
            raise ShapeError(
                "add", "operands must have identical shapes", a.shape, b.shape
            )

        out = Tensor(a.rows, a.cols)
        np.add(a.values, b.values, out=out.values)

        def backward() -> None:
            np.add(a.gradient, out.gradient, out=a.gradient)
            np.add(b.gradient, out.gradient, out=b.gradient)

        self._record(backward)
        return out

    def mul(self, a: ITensor, b: ITensor) -> Tensor:
        """
        Matrix product ``a @ b``.

        Parameters
        ----------
        a : ITensor
            Left operand, shape ``(r, k)``.
        b : ITensor
            Right operand, shape ``(k, m)``. The models only ever pass
            column vectors (``m == 1``).

        Raises
        ------
        ShapeError
            If ``a.cols != b.rows``.
        """
        if a.cols != b.rows:
            raise ShapeError(
                "mul", "inner dimensions must agree", a.shape, b.shape
            )

        out = Tensor(a.rows, b.cols)
        lhs = a.values.reshape(a.rows, a.cols)
        rhs = b.values.reshape(b.rows, b.cols)
        np.matmul(lhs, rhs, out=out.values.reshape(out.rows, out.cols))

        def backward() -> None:
            grad = out.gradient.reshape(out.rows, out.cols)
            grad_a = grad @ rhs.T
            grad_b = lhs.T @ grad
            np.add(a.gradient, grad_a.reshape(-1), out=a.gradient)
            np.add(b.gradient, grad_b.reshape(-1), out=b.gradient)

        self._record(backward)
        return out

    def relu(self, a: ITensor) -> Tensor:
        """Elementwise rectifier ``max(0, a)``."""
        out = Tensor(a.rows, a.cols)
        np.maximum(a.values, 0.0, out=out.values)

        def backward() -> None:
            np.add(a.gradient, np.where(a.values > 0.0, out.gradient, 0.0), out=a.gradient)

        self._record(backward)
        return out

    def tanh(self, a: ITensor) -> Tensor:
        """Elementwise hyperbolic tangent."""
        out = Tensor(a.rows, a.cols)
        np.tanh(a.values, out=out.values)

        def backward() -> None:
            np.add(a.gradient, out.gradient * (1.0 - out.values * out.values), out=a.gradient)

        self._record(backward)
        return out
