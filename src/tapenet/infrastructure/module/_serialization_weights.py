"""
Validation helpers for serialized-weights payloads.

A payload mirrors a topology's parameter tensors, for example:

    {
      "hidden": {"weights": [T, ...], "biases": [T, ...]},
      "decoder": {"weight": T, "bias": T}
    }

where each ``T`` is ``{"rows", "cols", "values"}``.

Restoration is all-or-nothing: topologies call `check_tensor` /
`check_tensor_list` for every entry first, and only allocate tensors with
`build_tensors` once the whole payload has been validated.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Tuple

import numpy as np

from ...domain._errors import MalformedModelError
from .._tensor import Tensor

Shape = Tuple[int, int]
Checked = Tuple[Shape, np.ndarray]


def get_section(payload: Any, key: str, path: str = "") -> Mapping[str, Any]:
    """
    Return ``payload[key]`` if it is a mapping.

    Raises
    ------
    MalformedModelError
        If `payload` is not a mapping or the section is missing/not a mapping.
    """
    where = f"{path}.{key}" if path else key
    if not isinstance(payload, Mapping):
        raise MalformedModelError("expected an object", path)
    if key not in payload:
        raise MalformedModelError("missing section", where)
    section = payload[key]
    if not isinstance(section, Mapping):
        raise MalformedModelError("expected an object", where)
    return section


def check_tensor(payload: Any, path: str, expected: Shape) -> Checked:
    """
    Validate one serialized tensor against an expected shape.

    Returns
    -------
    Checked
        ``(shape, values)`` ready for `build_tensors`.
    """
    rows, cols, values = Tensor.check_json(payload, path=path)
    if (rows, cols) != tuple(expected):
        raise MalformedModelError(
            f"expected shape {tuple(expected)}, got {(rows, cols)}", path
        )
    return (rows, cols), values


def check_tensor_list(
    section: Mapping[str, Any], key: str, path: str, expected: Sequence[Shape]
) -> List[Checked]:
    """
    Validate ``section[key]`` as a list of tensors with the expected shapes.
    """
    where = f"{path}.{key}"
    if key not in section:
        raise MalformedModelError("missing field", where)
    items = section[key]
    if not isinstance(items, (list, tuple)):
        raise MalformedModelError("expected a list of tensors", where)
    if len(items) != len(expected):
        raise MalformedModelError(
            f"expected {len(expected)} tensors, got {len(items)}", where
        )
    return [
        check_tensor(item, f"{where}[{i}]", shape)
        for i, (item, shape) in enumerate(zip(items, expected))
    ]


def check_field(section: Mapping[str, Any], key: str, path: str, expected: Shape) -> Checked:
    """Validate the single tensor stored at ``section[key]``."""
    where = f"{path}.{key}"
    if key not in section:
        raise MalformedModelError("missing field", where)
    return check_tensor(section[key], where, expected)


def build_tensors(checked: Sequence[Checked]) -> List[Tensor]:
    """Allocate tensors from already-validated entries."""
    out: List[Tensor] = []
    for (rows, cols), values in checked:
        t = Tensor(rows, cols)
        t.load_from(values)
        out.append(t)
    return out


def tensors_to_payload(tensors: Sequence[Tensor]) -> List[Dict[str, Any]]:
    return [t.to_json() for t in tensors]
