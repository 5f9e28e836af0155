"""
Topology interface definitions.

A topology is the model-family specific wiring that arranges parameter
tensors into layers (and, for recurrent models, time steps) and invokes tape
primitives in the right order. The training-step algorithm itself is generic
and lives in the trainable model core; topologies only describe the forward
computation and which tensors are trainable.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from ._tape import ITape
from ._tensor import ITensor


@runtime_checkable
class ITopology(Protocol):
    """
    Capability contract consumed by the trainable model core.

    Notes
    -----
    `__call__` maps ``(inputs, previous_state, tape)`` to
    ``(output, new_state)``. Feed-forward topologies ignore
    `previous_state` and report their hidden activations as state.
    """

    def __call__(
        self,
        inputs: ITensor,
        previous_state: Optional[List[ITensor]],
        tape: ITape,
    ) -> Tuple[ITensor, List[ITensor]]:
        """Run one forward pass through the topology."""
        ...

    def parameters(self) -> List[ITensor]:
        """Return every trainable tensor, in update order."""
        ...

    def state_payload(self) -> Dict[str, Any]:
        """Return the nested serialized-weights structure."""
        ...
