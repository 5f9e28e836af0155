"""
Engine exceptions for tapenet.

This module defines the exception taxonomy shared by the tensor, tape and
model layers. Every error is fatal from the engine's point of view: nothing
is retried internally, and recovery (for example skipping a bad training
example) is left to the caller.

Taxonomy
--------
- `ShapeError`: operand dimensions violate a primitive's contract.
- `TensorIndexError`: out-of-range element access on a Tensor.
- `PrecedingForwardPassRequiredError`: a training step was requested
  before a forward pass produced an output.
- `TrainabilityDisabledError`: a training step was requested while the
  tape is not recording.
- `MalformedModelError`: a serialized weight payload does not match the
  declared architecture.
"""

from __future__ import annotations

from typing import Optional, Sequence


class ShapeError(ValueError):
    """
    Raised when operand dimensions violate an operation's contract.

    Attributes
    ----------
    op : str
        Name of the operation that rejected its operands (e.g. "add", "mul").
    shapes : tuple[tuple[int, ...], ...]
        Shapes of the offending operands, in argument order.
    """

    def __init__(self, op: str, message: str, *shapes: Sequence[int]) -> None:
        """
        Initialize the ShapeError.

        Parameters
        ----------
        op : str
            The operation name.
        message : str
            Human-readable description of the violated constraint.
        *shapes : Sequence[int]
            Shapes of the operands involved.
        """
        self.op = op
        self.shapes = tuple(tuple(int(d) for d in s) for s in shapes)
        if self.shapes:
            rendered = ", ".join(f"{s}" for s in self.shapes)
            message = f"{message} (shapes: {rendered})"
        super().__init__(f"{op}: {message}")


class TensorIndexError(IndexError):
    """
    Raised when an element index lies outside ``[0, rows * cols)``.

    Attributes
    ----------
    index : int
        The flat index that was requested.
    size : int
        Number of elements in the tensor.
    """

    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"Index {index} out of range for tensor of size {size}.")
        self.index = index
        self.size = size


class PrecedingForwardPassRequiredError(RuntimeError):
    """
    Raised when `backward()` is called without a preceding forward pass.

    The training step injects the error signal into the output of the most
    recent forward pass; without one there is nothing to differentiate.
    """

    def __init__(self, model: str) -> None:
        super().__init__(
            f"[{model}] Please execute `forward()` before calling `backward()`."
        )
        self.model = model


class TrainabilityDisabledError(RuntimeError):
    """
    Raised when a training step is requested while the tape is not recording.
    """

    def __init__(self, model: str) -> None:
        super().__init__(f"[{model}] Trainability is not enabled.")
        self.model = model


class MalformedModelError(ValueError):
    """
    Raised when a serialized weight payload cannot be restored.

    Attributes
    ----------
    path : str
        Dotted location of the offending entry within the payload
        (e.g. "hidden.weights[1]"), or an empty string for the root.
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path or ""
        if self.path:
            message = f"{self.path}: {message}"
        super().__init__(message)
