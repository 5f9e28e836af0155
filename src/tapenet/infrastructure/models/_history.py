"""
Training history utilities.

`History` records per-epoch metrics produced by `TrainableModel.fit`, in the
manner of Keras' `History` object. It has no dependency on tensors or on
the tape.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Union


Number = Union[int, float]


@dataclass
class History:
    """
    Container for per-epoch training metrics.

    Attributes
    ----------
    history : Dict[str, List[float]]
        Mapping from metric name to a list of per-epoch values, ordered by
        epoch index.
    epoch : List[int]
        Zero-based epoch indices corresponding to entries in `history`.
    """

    history: Dict[str, List[float]] = field(default_factory=dict)
    epoch: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.epoch)

    def append_epoch(self, epoch_idx: int, logs: Mapping[str, Number]) -> None:
        """
        Append aggregated metrics for a completed epoch.

        Values are coerced to `float` before storage.
        """
        self.epoch.append(int(epoch_idx))
        for k, v in logs.items():
            self.history.setdefault(k, []).append(float(v))

    def last(self) -> Dict[str, float]:
        """Return metrics from the most recent epoch."""
        return {k: float(vs[-1]) for k, vs in self.history.items() if vs}

    def extend(self, other: "History") -> None:
        """
        Append another run's epochs, renumbering them after this history's.
        """
        offset = len(self.epoch)
        for i, idx in enumerate(other.epoch):
            self.append_epoch(
                offset + idx, {k: vs[i] for k, vs in other.history.items()}
            )
