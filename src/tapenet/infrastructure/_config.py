"""
Model construction specifications.

This module turns loosely-typed construction options into validated,
immutable specifications. A model is built from exactly one of two variants:

- `FreshSpec`: a new architecture whose weights are drawn by an initializer.
- `RestoreSpec`: an architecture plus a serialized-weights payload.

`ModelSpec` is the tagged union of the two. Options are validated once, at
parse time, so the model core never has to probe for optional fields.

Accepted option keys
--------------------
Both ``snake_case`` and the legacy ``camelCase`` spellings are accepted:

    {
      "architecture": {"input_size" | "inputSize": int,
                       "hidden_units" | "hiddenUnits": [int, ...],
                       "output_size" | "outputSize": int},
      "training": {"alpha": float,
                   "loss_clamp" | "lossClamp": float,
                   "loss_deadband" | "loss": float},
      "mu": float, "std": float, "initializer": str, "seed": int,
      "weights": {...}            # selects RestoreSpec
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

DEFAULT_ALPHA = 0.01
DEFAULT_LOSS_CLAMP = 1.0
DEFAULT_LOSS_DEADBAND = 1e-6


def _pick(opts: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the value of the first key present in `opts`."""
    for key in keys:
        if key in opts and opts[key] is not None:
            return opts[key]
    return default


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def _number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    return float(value)


@dataclass(frozen=True)
class Architecture:
    """
    Layer sizes of a model.

    Attributes
    ----------
    input_size : int
        Length of the input column vector.
    hidden_units : Tuple[int, ...]
        Ordered sizes of the hidden layers. At least one layer is required.
    output_size : int
        Length of the output column vector.
    """

    input_size: int
    hidden_units: Tuple[int, ...]
    output_size: int

    def __post_init__(self) -> None:
        _positive_int("input_size", self.input_size)
        _positive_int("output_size", self.output_size)
        units = tuple(self.hidden_units)
        if not units:
            raise ValueError("hidden_units must contain at least one layer")
        for i, u in enumerate(units):
            _positive_int(f"hidden_units[{i}]", u)
        object.__setattr__(self, "hidden_units", units)

    def preceding_size(self, layer: int) -> int:
        """Size of the vector feeding hidden layer `layer`."""
        return self.input_size if layer == 0 else self.hidden_units[layer - 1]

    def get_config(self) -> Dict[str, Any]:
        return {
            "input_size": int(self.input_size),
            "hidden_units": [int(u) for u in self.hidden_units],
            "output_size": int(self.output_size),
        }

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "Architecture":
        if not isinstance(cfg, Mapping):
            raise ValueError("architecture must be a mapping")
        input_size = _pick(cfg, "input_size", "inputSize")
        hidden_units = _pick(cfg, "hidden_units", "hiddenUnits")
        output_size = _pick(cfg, "output_size", "outputSize")
        if input_size is None or hidden_units is None or output_size is None:
            raise ValueError(
                "architecture requires input_size, hidden_units and output_size"
            )
        if isinstance(hidden_units, (str, bytes)) or not hasattr(
            hidden_units, "__iter__"
        ):
            raise ValueError("hidden_units must be a sequence of integers")
        return cls(
            input_size=input_size,
            hidden_units=tuple(hidden_units),
            output_size=output_size,
        )


@dataclass(frozen=True)
class TrainingOptions:
    """
    Hyperparameters of the training step.

    Attributes
    ----------
    alpha : float
        Learning rate applied by `Tensor.update`. Must be positive.
    loss_clamp : float
        Injected errors are clamped to ``[-loss_clamp, +loss_clamp]``.
    loss_deadband : float
        Output errors with magnitude at or below this threshold inject no
        gradient.
    """

    alpha: float = DEFAULT_ALPHA
    loss_clamp: float = DEFAULT_LOSS_CLAMP
    loss_deadband: float = DEFAULT_LOSS_DEADBAND

    def __post_init__(self) -> None:
        alpha = _number("alpha", self.alpha)
        clamp = _number("loss_clamp", self.loss_clamp)
        deadband = _number("loss_deadband", self.loss_deadband)
        if alpha <= 0.0:
            raise ValueError(f"alpha must be > 0, got {alpha}")
        if clamp < 0.0:
            raise ValueError(f"loss_clamp must be >= 0, got {clamp}")
        if deadband < 0.0:
            raise ValueError(f"loss_deadband must be >= 0, got {deadband}")
        object.__setattr__(self, "alpha", alpha)
        object.__setattr__(self, "loss_clamp", clamp)
        object.__setattr__(self, "loss_deadband", deadband)

    def get_config(self) -> Dict[str, Any]:
        return {
            "alpha": self.alpha,
            "loss_clamp": self.loss_clamp,
            "loss_deadband": self.loss_deadband,
        }

    @classmethod
    def from_config(cls, cfg: Optional[Mapping[str, Any]]) -> "TrainingOptions":
        if cfg is None:
            return cls()
        if not isinstance(cfg, Mapping):
            raise ValueError("training must be a mapping")
        return cls(
            alpha=_pick(cfg, "alpha", default=DEFAULT_ALPHA),
            loss_clamp=_pick(cfg, "loss_clamp", "lossClamp", default=DEFAULT_LOSS_CLAMP),
            loss_deadband=_pick(
                cfg, "loss_deadband", "loss", default=DEFAULT_LOSS_DEADBAND
            ),
        )


@dataclass(frozen=True)
class FreshSpec:
    """
    Specification for a newly initialized model.

    Attributes
    ----------
    architecture : Architecture
    training : TrainingOptions
    mu : float
        Center of the weight distribution.
    std : Optional[float]
        Spread of the weight distribution; None selects the topology default.
    initializer : str
        Registered initializer policy name.
    seed : Optional[int]
        Seed for a dedicated NumPy generator; None uses the global state.
    """

    architecture: Architecture
    training: TrainingOptions = field(default_factory=TrainingOptions)
    mu: float = 0.0
    std: Optional[float] = None
    initializer: str = "uniform"
    seed: Optional[int] = None


@dataclass(frozen=True)
class RestoreSpec:
    """
    Specification for a model restored from serialized weights.

    Attributes
    ----------
    architecture : Architecture
    training : TrainingOptions
    weights : Mapping[str, Any]
        Nested serialized-weights structure (``hidden``/``decoder``).
        It is validated against `architecture` by the topology before any
        tensor is created.
    """

    architecture: Architecture
    weights: Mapping[str, Any]
    training: TrainingOptions = field(default_factory=TrainingOptions)


ModelSpec = Union[FreshSpec, RestoreSpec]


def spec_from_options(opts: Union[ModelSpec, Mapping[str, Any]]) -> ModelSpec:
    """
    Parse construction options into a `FreshSpec` or `RestoreSpec`.

    Parameters
    ----------
    opts : ModelSpec | Mapping[str, Any]
        Already-built specs are returned unchanged. Mappings are parsed; the
        presence of a ``weights`` entry selects `RestoreSpec`.

    Returns
    -------
    ModelSpec

    Raises
    ------
    ValueError
        If the architecture is missing or any value is out of range.
    TypeError
        If `opts` is neither a spec nor a mapping, or a number has the wrong
        type.
    """
    if isinstance(opts, (FreshSpec, RestoreSpec)):
        return opts
    if not isinstance(opts, Mapping):
        raise TypeError(
            f"Expected a model spec or an options mapping, got {type(opts).__name__}"
        )
    if "architecture" not in opts:
        raise ValueError("options must define an 'architecture'")

    architecture = Architecture.from_config(opts["architecture"])
    training = TrainingOptions.from_config(opts.get("training"))

    if opts.get("weights") is not None:
        return RestoreSpec(
            architecture=architecture, weights=opts["weights"], training=training
        )

    std = opts.get("std")
    seed = opts.get("seed")
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        raise TypeError(f"seed must be an integer, got {type(seed).__name__}")
    initializer = opts.get("initializer", "uniform")
    if not isinstance(initializer, str):
        raise TypeError("initializer must be a policy name")
    return FreshSpec(
        architecture=architecture,
        training=training,
        mu=_number("mu", opts.get("mu", 0.0)),
        std=None if std is None else _number("std", std),
        initializer=initializer,
        seed=seed,
    )
