"""
NumPy-backed dense 2-D tensor with a parallel gradient buffer.

This module provides the concrete `Tensor` used throughout tapenet. A tensor
is a ``rows x cols`` matrix stored as a flat, row-major `float64` buffer,
plus a second buffer of identical length holding the gradient of the loss
with respect to each element.

Design notes
------------
- Both buffers are allocated once in `__init__` and never resized; all
  mutation is in-place so that closures recorded on a tape keep observing
  the same storage.
- `gradient` is written in exactly two ways: the training step overwrites
  output entries with the clipped error, and tape replay accumulates into
  operand entries with ``+=``.
- There is no broadcasting anywhere; every shape check is exact.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence, Union

import numpy as np
from typing_extensions import Self

from ..domain._errors import MalformedModelError, ShapeError, TensorIndexError

Number = Union[int, float]


class Tensor:
    """
    Dense ``rows x cols`` matrix with a gradient buffer of the same shape.

    Parameters
    ----------
    rows : int
        Number of rows. Must be positive.
    cols : int
        Number of columns. Must be positive.

    Attributes
    ----------
    rows : int
        Number of rows.
    cols : int
        Number of columns.

    Notes
    -----
    Freshly constructed tensors hold zeros in both buffers. Parameters are
    populated afterwards by an initializer or by deserialization.
    """

    __slots__ = ("rows", "cols", "_values", "_gradient")

    def __init__(self, rows: int, cols: int) -> None:
        if isinstance(rows, bool) or isinstance(cols, bool):
            raise ShapeError("Tensor", "dimensions must be integers", (rows, cols))
        rows = int(rows)
        cols = int(cols)
        if rows <= 0 or cols <= 0:
            raise ShapeError("Tensor", "dimensions must be positive", (rows, cols))
        self.rows = rows
        self.cols = cols
        self._values = np.zeros(rows * cols, dtype=np.float64)
        self._gradient = np.zeros(rows * cols, dtype=np.float64)

    # ------------------------------------------------------------------
    # Buffers and shape
    # ------------------------------------------------------------------
    @property
    def values(self) -> np.ndarray:
        """Flat row-major value buffer (length ``rows * cols``)."""
        return self._values

    @property
    def gradient(self) -> np.ndarray:
        """Flat gradient buffer (same length as `values`)."""
        return self._gradient

    @property
    def shape(self) -> tuple[int, int]:
        return (self.rows, self.cols)

    @property
    def size(self) -> int:
        return self.rows * self.cols

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"Tensor(rows={self.rows}, cols={self.cols})"

    # ------------------------------------------------------------------
    # Element access
    # ------------------------------------------------------------------
    def _flat_index(self, *index: int) -> int:
        """
        Resolve a flat ``(i,)`` or 2-D ``(row, col)`` index to a flat offset.

        Raises
        ------
        TensorIndexError
            If the resolved offset lies outside ``[0, rows * cols)`` or if a
            row/column component is out of range on its own.
        TypeError
            If the wrong number of index components is supplied.
        """
        if len(index) == 1:
            i = int(index[0])
        elif len(index) == 2:
            row, col = int(index[0]), int(index[1])
            if not (0 <= row < self.rows and 0 <= col < self.cols):
                raise TensorIndexError(row * self.cols + col, self.size)
            i = row * self.cols + col
        else:
            raise TypeError(
                f"Expected a flat index or (row, col), got {len(index)} components."
            )
        if not 0 <= i < self.size:
            raise TensorIndexError(i, self.size)
        return i

    def get(self, *index: int) -> float:
        """
        Read one element by flat index or by ``(row, col)``.

        Examples
        --------
        >>> t = Tensor(2, 2)
        >>> t.set(1, 0, 3.0)
        >>> t.get(2)
        3.0
        """
        return float(self._values[self._flat_index(*index)])

    def set(self, *args: Number) -> None:
        """
        Write one element: ``set(index, value)`` or ``set(row, col, value)``.
        """
        if len(args) < 2:
            raise TypeError("set() expects (index, value) or (row, col, value).")
        *index, value = args
        self._values[self._flat_index(*index)] = float(value)

    def load_from(self, sequence: Union[Sequence[Number], np.ndarray]) -> None:
        """
        Copy an ordered numeric sequence into `values`.

        Parameters
        ----------
        sequence : Sequence[Number] | np.ndarray
            Exactly ``rows * cols`` numbers in row-major order.

        Raises
        ------
        ShapeError
            If the sequence length differs from ``rows * cols``.
        """
        arr = np.asarray(sequence, dtype=np.float64).reshape(-1)
        if arr.size != self.size:
            raise ShapeError(
                "load_from",
                f"expected {self.size} values, got {arr.size}",
                self.shape,
            )
        self._values[:] = arr

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def update(self, learning_rate: float) -> None:
        """
        Apply one gradient-descent step, then reset the gradient buffer.

        ``values[i] -= learning_rate * gradient[i]`` for every ``i``, followed
        by ``gradient[i] = 0``. Calling this twice without an intervening
        backward replay is a no-op the second time.
        """
        self._values -= float(learning_rate) * self._gradient
        self._gradient.fill(0.0)

    def zero_grad(self) -> None:
        """Reset every gradient entry to zero."""
        self._gradient.fill(0.0)

    # ------------------------------------------------------------------
    # Conversion helpers
    # ------------------------------------------------------------------
    @classmethod
    def column(cls, sequence: Union[Sequence[Number], np.ndarray]) -> Self:
        """Build a ``n x 1`` column vector from a 1-D sequence."""
        arr = np.asarray(sequence, dtype=np.float64).reshape(-1)
        if arr.size == 0:
            raise ShapeError("column", "cannot build an empty column vector", (0, 1))
        out = cls(arr.size, 1)
        out.load_from(arr)
        return out

    @classmethod
    def from_numpy(cls, arr: np.ndarray) -> Self:
        """Build a tensor from a 2-D array (1-D arrays become column vectors)."""
        arr = np.asarray(arr, dtype=np.float64)
        if arr.ndim == 1:
            return cls.column(arr)
        if arr.ndim != 2:
            raise ShapeError("from_numpy", "expected a 1-D or 2-D array", arr.shape)
        out = cls(arr.shape[0], arr.shape[1])
        out.load_from(arr)
        return out

    def to_numpy(self) -> np.ndarray:
        """Return a ``(rows, cols)`` copy of the values."""
        return self._values.reshape(self.rows, self.cols).copy()

    def to_json(self) -> Dict[str, Any]:
        """
        Serialize the values as ``{"rows", "cols", "values"}``.

        Gradients are transient and are not serialized.
        """
        return {
            "rows": int(self.rows),
            "cols": int(self.cols),
            "values": [float(v) for v in self._values],
        }

    @classmethod
    def from_json(cls, payload: Any, *, path: str = "") -> Self:
        """
        Reconstruct a tensor from the output of `to_json`.

        Parameters
        ----------
        payload : Any
            Mapping with ``rows``, ``cols`` and ``values``.
        path : str, optional
            Location of this payload inside a larger structure, used to make
            error messages point at the offending entry.

        Raises
        ------
        MalformedModelError
            If a field is missing, has the wrong type, or the value count does
            not equal ``rows * cols``.
        """
        rows, cols, values = cls.check_json(payload, path=path)
        out = cls(rows, cols)
        out.load_from(values)
        return out

    @staticmethod
    def check_json(payload: Any, *, path: str = "") -> tuple[int, int, np.ndarray]:
        """
        Validate a serialized tensor without allocating one.

        Returns
        -------
        tuple[int, int, np.ndarray]
            ``(rows, cols, values)`` with `values` as a flat float64 array.
        """
        if not isinstance(payload, dict):
            raise MalformedModelError(
                f"expected a tensor object, got {type(payload).__name__}", path
            )
        for key in ("rows", "cols", "values"):
            if key not in payload:
                raise MalformedModelError(f"missing field {key!r}", path)

        rows, cols = payload["rows"], payload["cols"]
        for name, dim in (("rows", rows), ("cols", cols)):
            if isinstance(dim, bool) or not isinstance(dim, int) or dim <= 0:
                raise MalformedModelError(
                    f"{name} must be a positive integer, got {dim!r}", path
                )

        try:
            values = np.asarray(payload["values"], dtype=np.float64).reshape(-1)
        except (TypeError, ValueError) as e:
            raise MalformedModelError(f"values are not numeric: {e}", path) from e
        if values.size != rows * cols:
            raise MalformedModelError(
                f"expected {rows * cols} values for a {rows}x{cols} tensor, "
                f"got {values.size}",
                path,
            )
        return rows, cols, values
