"""
Generic trainable model.

This module defines `TrainableModel`, the single model core shared by every
network family. It is parameterized by a topology (feed-forward, recurrent,
...) that only knows how to wire tape primitives; everything else lives
here:

- ownership of the `Tape` (created at construction, reset after each step)
- the forward pass and the retained "last output"
- the training step: error injection, backward replay, parameter update,
  tape reset
- loss evaluation with recording disabled
- a small per-sample `fit` loop returning a `History`
- JSON checkpointing (`to_json`, `save_json`, `load_json`)

Training step
-------------
1. `forward()` with recording on produces the output tensor, retained as the
   last output.
2. For each output component the raw error ``output - target`` is compared to
   the deadband; errors at or below it inject nothing, others are clamped to
   ``[-loss_clamp, loss_clamp]`` and written into the output gradient.
3. The tape replays its closures in reverse order.
4. Every parameter tensor applies ``values -= alpha * gradient`` and resets
   its gradient.
5. The tape is cleared.

All preconditions are checked before any buffer is mutated, so a failing
call leaves every parameter untouched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type, Union

import numpy as np

from ...domain._errors import (
    MalformedModelError,
    PrecedingForwardPassRequiredError,
    ShapeError,
    TrainabilityDisabledError,
)
from .._config import (
    Architecture,
    ModelSpec,
    RestoreSpec,
    TrainingOptions,
    spec_from_options,
)
from .._tape import Tape
from .._tensor import Tensor
from ..module._serialization_core import topology_from_config, topology_to_config
from ._feedforward import FeedForwardTopology
from ._history import History

logger = logging.getLogger(__name__)

CHECKPOINT_FORMAT = "tapenet.json.v1"

ArrayLike = Union[Sequence[float], np.ndarray]


@dataclass
class InnerState:
    """
    Result of one forward pass.

    Attributes
    ----------
    hidden_activation_state : List[Tensor]
        Per-layer hidden activations. Recurrent callers pass this back as
        `previous_state` on the next step.
    output : np.ndarray
        Copy of the output values as a 1-D array.
    """

    hidden_activation_state: List[Tensor]
    output: np.ndarray


class TrainableModel:
    """
    Model core parameterized by a topology.

    Parameters
    ----------
    spec : ModelSpec | Mapping[str, Any]
        A `FreshSpec`, a `RestoreSpec`, or a raw options mapping parsed by
        `spec_from_options`.
    topology_cls : type, optional
        Topology class exposing ``initialize`` and ``from_payload``
        classmethods. Defaults to `FeedForwardTopology`.
    **topology_options : Any
        Extra keyword arguments forwarded to the topology (e.g.
        ``activation="relu"``).

    Attributes
    ----------
    architecture : Architecture
    training : TrainingOptions
    tape : Tape
        Owned by the model; starts with recording enabled.
    topology : Any
        The wiring and the parameter tensors.

    Notes
    -----
    Instances are not thread-safe. One forward pass may be in flight at a
    time and a training step must complete before the next forward pass.
    """

    def __init__(
        self,
        spec: Union[ModelSpec, Mapping[str, Any]],
        topology_cls: Optional[Type[Any]] = None,
        **topology_options: Any,
    ) -> None:
        spec = spec_from_options(spec)
        topology_cls = topology_cls or FeedForwardTopology

        self.architecture: Architecture = spec.architecture
        self.training: TrainingOptions = spec.training
        self.tape = Tape(recording=True)
        self._last_output: Optional[Tensor] = None

        if isinstance(spec, RestoreSpec):
            self.topology = topology_cls.from_payload(
                spec.architecture, spec.weights, **topology_options
            )
            logger.debug(
                "Restored %s with hidden units %s",
                topology_cls.__name__,
                list(spec.architecture.hidden_units),
            )
        else:
            rng = np.random.default_rng(spec.seed) if spec.seed is not None else None
            self.topology = topology_cls.initialize(
                spec.architecture,
                mu=spec.mu,
                std=spec.std,
                policy=spec.initializer,
                rng=rng,
                **topology_options,
            )
            logger.debug(
                "Initialized %s with hidden units %s (policy=%s)",
                topology_cls.__name__,
                list(spec.architecture.hidden_units),
                spec.initializer,
            )

    def __repr__(self) -> str:
        arch = self.architecture
        return (
            f"{type(self).__name__}({type(self.topology).__name__}, "
            f"input_size={arch.input_size}, hidden_units={list(arch.hidden_units)}, "
            f"output_size={arch.output_size})"
        )

    @property
    def name(self) -> str:
        return type(self.topology).__name__

    @property
    def last_output(self) -> Optional[Tensor]:
        """Output tensor of the most recent un-consumed forward pass."""
        return self._last_output

    def parameters(self) -> List[Tensor]:
        """Every trainable tensor, in update order."""
        return self.topology.parameters()

    # ------------------------------------------------------------------
    # Trainability
    # ------------------------------------------------------------------
    def is_trainable(self) -> bool:
        return self.tape.is_recording()

    def set_trainability(self, is_trainable: bool) -> None:
        """
        Enable or disable recording for subsequent forward passes.

        Any closures recorded so far are discarded, together with the last
        output, so the previous forward pass can no longer be trained on.
        """
        self.tape.reset()
        self._last_output = None
        self.tape.set_recording(is_trainable)

    # ------------------------------------------------------------------
    # Forward
    # ------------------------------------------------------------------
    def _to_input(self, inputs: ArrayLike) -> Tensor:
        vector = np.asarray(inputs, dtype=np.float64).reshape(-1)
        if vector.size != self.architecture.input_size:
            raise ShapeError(
                "forward",
                f"expected {self.architecture.input_size} inputs, got {vector.size}",
            )
        return Tensor.column(vector)

    def forward(
        self,
        inputs: ArrayLike,
        previous_state: Optional[Sequence[Tensor]] = None,
    ) -> InnerState:
        """
        Run one forward pass.

        Parameters
        ----------
        inputs : ArrayLike
            ``input_size`` numbers.
        previous_state : Optional[Sequence[Tensor]]
            Hidden state emitted by the previous call. Only recurrent
            topologies read it; omitting it is equivalent to passing zeros.

        Returns
        -------
        InnerState
            The new hidden state and a copy of the output values.
        """
        x = self._to_input(inputs)
        state = list(previous_state) if previous_state is not None else None
        output, hidden = self.topology(x, state, self.tape)
        self._last_output = output
        return InnerState(hidden_activation_state=hidden, output=output.values.copy())

    def predict(
        self,
        inputs: ArrayLike,
        previous_state: Optional[Sequence[Tensor]] = None,
    ) -> np.ndarray:
        """
        Forward pass returning only the output values.

        Nothing is recorded and the pending forward pass, if any, is kept.
        """
        x = self._to_input(inputs)
        state = list(previous_state) if previous_state is not None else None
        with self.tape.paused():
            output, _ = self.topology(x, state, self.tape)
        return output.values.copy()

    # ------------------------------------------------------------------
    # Training step
    # ------------------------------------------------------------------
    def _to_target(self, expected: ArrayLike) -> np.ndarray:
        target = np.asarray(expected, dtype=np.float64).reshape(-1)
        if target.size != self.architecture.output_size:
            raise ShapeError(
                "backward",
                f"expected {self.architecture.output_size} targets, got {target.size}",
            )
        return target

    def backward(self, expected: ArrayLike, alpha: Optional[float] = None) -> None:
        """
        Train on the output of the preceding forward pass.

        Parameters
        ----------
        expected : ArrayLike
            Target for the previous input, ``output_size`` numbers.
        alpha : Optional[float]
            Learning rate for this step; defaults to ``training.alpha``.

        Raises
        ------
        TrainabilityDisabledError
            If the tape is not recording.
        PrecedingForwardPassRequiredError
            If no forward pass has produced an output since the last step.
        ShapeError
            If `expected` has the wrong length.
        ValueError
            If `alpha` is not positive.
        """
        if not self.tape.is_recording():
            raise TrainabilityDisabledError(self.name)
        if self._last_output is None:
            raise PrecedingForwardPassRequiredError(self.name)
        target = self._to_target(expected)
        alpha = self.training.alpha if alpha is None else float(alpha)
        if not alpha > 0.0:
            raise ValueError(f"alpha must be > 0, got {alpha}")

        self._inject_output_error(self._last_output, target)
        self.tape.backward()
        self._update_parameters(alpha)
        self.tape.reset()
        self._last_output = None

    def _inject_output_error(self, output: Tensor, target: np.ndarray) -> None:
        clamp = self.training.loss_clamp
        deadband = self.training.loss_deadband
        diff = output.values - target
        signal = np.abs(diff) > deadband
        output.gradient[signal] = np.clip(diff[signal], -clamp, clamp)

    def _update_parameters(self, alpha: float) -> None:
        for p in self.topology.parameters():
            p.update(alpha)

    def train_on_sample(
        self,
        inputs: ArrayLike,
        expected: ArrayLike,
        *,
        alpha: Optional[float] = None,
        previous_state: Optional[Sequence[Tensor]] = None,
    ) -> Tuple[float, List[Tensor]]:
        """
        Forward pass followed by one training step.

        Returns
        -------
        Tuple[float, List[Tensor]]
            Sum of squared errors before the update, and the emitted hidden
            state.
        """
        target = self._to_target(expected)
        state = self.forward(inputs, previous_state)
        self.backward(target, alpha)
        loss = float(np.sum((state.output - target) ** 2))
        return loss, state.hidden_activation_state

    # ------------------------------------------------------------------
    # Loss evaluation
    # ------------------------------------------------------------------
    def _evaluate(
        self,
        inputs: ArrayLike,
        previous_state: Optional[Sequence[Tensor]],
    ) -> np.ndarray:
        was_trainable = self.tape.is_recording()
        self.set_trainability(False)
        try:
            return self.forward(inputs, previous_state).output
        finally:
            self.set_trainability(was_trainable)

    def get_squared_loss_for(
        self,
        inputs: ArrayLike,
        expected: ArrayLike,
        previous_state: Optional[Sequence[Tensor]] = None,
    ) -> float:
        """
        Square of the summed signed error, evaluated without recording.

        Notes
        -----
        Errors of opposite sign cancel before squaring. Use `squared_error`
        for the per-component sum of squares. The pending forward pass, if
        any, is discarded.
        """
        target = self._to_target(expected)
        loss_sum = float(np.sum(self._evaluate(inputs, previous_state) - target))
        return loss_sum * loss_sum

    def squared_error(
        self,
        inputs: ArrayLike,
        expected: ArrayLike,
        previous_state: Optional[Sequence[Tensor]] = None,
    ) -> float:
        """Sum of squared component errors, evaluated without recording."""
        target = self._to_target(expected)
        return float(np.sum((self._evaluate(inputs, previous_state) - target) ** 2))

    # ------------------------------------------------------------------
    # Training loop
    # ------------------------------------------------------------------
    def fit(
        self,
        x: Sequence[ArrayLike],
        y: Sequence[ArrayLike],
        *,
        epochs: int = 1,
        shuffle: bool = True,
        alpha: Optional[float] = None,
        verbose: int = 0,
        rng: Optional[np.random.Generator] = None,
    ) -> History:
        """
        Train sample by sample for a fixed number of epochs.

        Parameters
        ----------
        x, y : Sequence[ArrayLike]
            Inputs and targets of equal length.
        epochs : int, optional
            Number of passes over the data. Default is 1.
        shuffle : bool, optional
            Shuffle sample order each epoch. Ignored by stateful (recurrent)
            topologies, which treat the data as one sequence and carry the
            hidden state from sample to sample, restarting from zeros at the
            beginning of every epoch.
        alpha : Optional[float]
            Learning rate override.
        verbose : int, optional
            If non-zero, prints an epoch summary line.
        rng : Optional[np.random.Generator]
            Generator used for shuffling; the global state is used otherwise.

        Returns
        -------
        History
            Per-epoch mean ``"loss"`` (sum of squared errors before each
            update).
        """
        if epochs < 1:
            raise ValueError("epochs must be >= 1")
        n = len(x)
        if len(y) != n:
            raise ValueError(
                f"x and y must have same length, got len(x)={n}, len(y)={len(y)}"
            )
        if n == 0:
            raise ValueError("fit() requires at least one sample")
        if not self.tape.is_recording():
            raise TrainabilityDisabledError(self.name)

        stateful = bool(getattr(self.topology, "stateful", False))
        source = rng if rng is not None else np.random
        hist = History()

        for epoch_idx in range(epochs):
            order = np.arange(n)
            if shuffle and not stateful:
                order = source.permutation(n)

            state: Optional[List[Tensor]] = None
            total = 0.0
            for i in order:
                loss, hidden = self.train_on_sample(
                    x[i], y[i], alpha=alpha, previous_state=state
                )
                total += loss
                if stateful:
                    state = hidden

            epoch_logs = {"loss": total / n}
            hist.append_epoch(epoch_idx, epoch_logs)
            logger.info("epoch %d/%d loss=%.6f", epoch_idx + 1, epochs, epoch_logs["loss"])

            if verbose:
                print(f"Epoch {epoch_idx + 1}/{epochs} - loss: {epoch_logs['loss']:.6f} - seen: {n}")

        return hist

    # ------------------------------------------------------------------
    # Checkpointing
    # ------------------------------------------------------------------
    def to_json(self) -> Dict[str, Any]:
        """
        Serialize architecture, training options and weights.

        Format
        ------
        {
          "format": "tapenet.json.v1",
          "topology": {"type": "FeedForwardTopology", "config": {...}},
          "architecture": {...},
          "training": {...},
          "weights": {"hidden": {...}, "decoder": {...}}
        }
        """
        return {
            "format": CHECKPOINT_FORMAT,
            "topology": topology_to_config(self.topology),
            "architecture": self.architecture.get_config(),
            "training": self.training.get_config(),
            "weights": self.topology.state_payload(),
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "TrainableModel":
        """
        Rebuild a model from the output of `to_json`.

        Raises
        ------
        MalformedModelError
            If the payload is not a checkpoint, names an unknown topology,
            or its weights disagree with its architecture.
        """
        if not isinstance(payload, Mapping):
            raise MalformedModelError("checkpoint must be an object")
        fmt = payload.get("format")
        if fmt != CHECKPOINT_FORMAT:
            raise MalformedModelError(f"Unsupported checkpoint format: {fmt!r}")
        for key in ("topology", "architecture", "weights"):
            if key not in payload:
                raise MalformedModelError("missing section", key)

        topology_cls, options = topology_from_config(payload["topology"])
        try:
            architecture = Architecture.from_config(payload["architecture"])
        except (TypeError, ValueError) as e:
            raise MalformedModelError(str(e), "architecture") from e
        try:
            training = TrainingOptions.from_config(payload.get("training"))
        except (TypeError, ValueError) as e:
            raise MalformedModelError(str(e), "training") from e

        spec = RestoreSpec(
            architecture=architecture, weights=payload["weights"], training=training
        )
        return cls(spec, topology_cls, **options)

    def save_json(self, path: Union[str, Path]) -> None:
        """Write `to_json()` to `path`, creating parent directories."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_json(), indent=2, sort_keys=True), encoding="utf-8")

    @classmethod
    def load_json(cls, path: Union[str, Path]) -> "TrainableModel":
        """Load a model saved by `save_json`."""
        p = Path(path)
        payload = json.loads(p.read_text(encoding="utf-8"))
        return cls.from_json(payload)
