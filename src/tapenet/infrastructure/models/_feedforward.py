"""
Feed-forward topology.

Wires a stack of ``(weight, bias)`` pairs and a decoder pair onto a tape:

    h_0 = act(W_0 @ x + b_0)
    h_i = act(W_i @ h_{i-1} + b_i)
    y   = W_d @ h_last + b_d

`act` is ``tanh`` (the classic DNN) or ``relu``.

Parameters are laid out as::

    hidden.weights[i]  (hidden_units[i] x preceding_size(i))
    hidden.biases[i]   (hidden_units[i] x 1)
    decoder.weight     (output_size x hidden_units[-1])
    decoder.bias       (output_size x 1)
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ...domain._tape import ITape
from ...domain._tensor import ITensor
from .._config import Architecture
from .._tensor import Tensor
from ..module._serialization_core import register_topology
from ..module._serialization_weights import (
    build_tensors,
    check_field,
    check_tensor_list,
    get_section,
    tensors_to_payload,
)
from ..utils.weight_initializer import DEFAULT_POLICY, random_tensor

ACTIVATIONS = ("tanh", "relu")


def check_activation(activation: str) -> str:
    if activation not in ACTIVATIONS:
        raise ValueError(
            f"Unsupported activation {activation!r}. Available: {', '.join(ACTIVATIONS)}"
        )
    return activation


def check_topology_config(cfg: Mapping[str, Any]) -> None:
    """
    Validate the options stored in a checkpoint topology node.

    Raises
    ------
    ValueError
        On an unknown option or an unsupported activation.
    """
    unknown = sorted(set(cfg) - {"activation"})
    if unknown:
        raise ValueError(f"Unknown topology options: {', '.join(map(str, unknown))}")
    if "activation" in cfg:
        check_activation(cfg["activation"])


def compute_output(
    tape: ITape, weight: ITensor, bias: ITensor, hidden: Sequence[ITensor]
) -> ITensor:
    """Decoder layer: ``add(mul(weight, hidden[-1]), bias)``."""
    return tape.add(tape.mul(weight, hidden[-1]), bias)


def decoder_shapes(architecture: Architecture) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    out = architecture.output_size
    return (out, architecture.hidden_units[-1]), (out, 1)


@register_topology()
class FeedForwardTopology:
    """
    Stack of fully connected layers followed by a linear decoder.

    Parameters
    ----------
    architecture : Architecture
        Layer sizes.
    hidden_weights, hidden_biases : Sequence[Tensor]
        One entry per hidden layer.
    decoder_weight, decoder_bias : Tensor
        Output layer parameters.
    activation : str, optional
        ``"tanh"`` (default) or ``"relu"``.

    Notes
    -----
    Use `initialize` or `from_payload` rather than calling the constructor
    directly; they derive every shape from the architecture.
    """

    stateful = False
    DEFAULT_STD = 0.1

    def __init__(
        self,
        architecture: Architecture,
        hidden_weights: Sequence[Tensor],
        hidden_biases: Sequence[Tensor],
        decoder_weight: Tensor,
        decoder_bias: Tensor,
        *,
        activation: str = "tanh",
    ) -> None:
        self.architecture = architecture
        self.activation = check_activation(activation)
        self.hidden_weights: List[Tensor] = list(hidden_weights)
        self.hidden_biases: List[Tensor] = list(hidden_biases)
        self.decoder_weight = decoder_weight
        self.decoder_bias = decoder_bias

    @classmethod
    def initialize(
        cls,
        architecture: Architecture,
        *,
        mu: float = 0.0,
        std: Optional[float] = None,
        policy: str = DEFAULT_POLICY,
        rng: Optional[np.random.Generator] = None,
        activation: str = "tanh",
    ) -> "FeedForwardTopology":
        """
        Build a topology with random weights and zero biases.
        """
        std = cls.DEFAULT_STD if std is None else std
        weights, biases = [], []
        for i, units in enumerate(architecture.hidden_units):
            weights.append(
                random_tensor(
                    units, architecture.preceding_size(i), mu, std, policy=policy, rng=rng
                )
            )
            biases.append(Tensor(units, 1))

        (w_rows, w_cols), (b_rows, _) = decoder_shapes(architecture)
        decoder_weight = random_tensor(w_rows, w_cols, mu, std, policy=policy, rng=rng)
        return cls(
            architecture,
            weights,
            biases,
            decoder_weight,
            Tensor(b_rows, 1),
            activation=activation,
        )

    @classmethod
    def from_payload(
        cls,
        architecture: Architecture,
        payload: Mapping[str, Any],
        *,
        activation: str = "tanh",
    ) -> "FeedForwardTopology":
        """
        Restore a topology from serialized weights.

        Raises
        ------
        MalformedModelError
            If any section, field or shape disagrees with `architecture`.
            Nothing is allocated unless every entry validates.
        """
        check_activation(activation)
        units = architecture.hidden_units
        hidden = get_section(payload, "hidden")
        decoder = get_section(payload, "decoder")

        weights = check_tensor_list(
            hidden,
            "weights",
            "hidden",
            [(u, architecture.preceding_size(i)) for i, u in enumerate(units)],
        )
        biases = check_tensor_list(hidden, "biases", "hidden", [(u, 1) for u in units])
        weight_shape, bias_shape = decoder_shapes(architecture)
        dw = check_field(decoder, "weight", "decoder", weight_shape)
        db = check_field(decoder, "bias", "decoder", bias_shape)

        decoder_weight, decoder_bias = build_tensors([dw, db])
        return cls(
            architecture,
            build_tensors(weights),
            build_tensors(biases),
            decoder_weight,
            decoder_bias,
            activation=activation,
        )

    def __call__(
        self,
        inputs: ITensor,
        previous_state: Optional[List[ITensor]],
        tape: ITape,
    ) -> Tuple[ITensor, List[ITensor]]:
        """
        Forward pass. `previous_state` is ignored.

        Returns
        -------
        Tuple[ITensor, List[ITensor]]
            The decoder output and the list of hidden activations.
        """
        activate = getattr(tape, self.activation)
        hidden: List[ITensor] = []
        for weight, bias in zip(self.hidden_weights, self.hidden_biases):
            vector = inputs if not hidden else hidden[-1]
            hidden.append(activate(tape.add(tape.mul(weight, vector), bias)))
        output = compute_output(tape, self.decoder_weight, self.decoder_bias, hidden)
        return output, hidden

    def parameters(self) -> List[Tensor]:
        params: List[Tensor] = []
        for weight, bias in zip(self.hidden_weights, self.hidden_biases):
            params += [weight, bias]
        return params + [self.decoder_weight, self.decoder_bias]

    def state_payload(self) -> Dict[str, Any]:
        return {
            "hidden": {
                "weights": tensors_to_payload(self.hidden_weights),
                "biases": tensors_to_payload(self.hidden_biases),
            },
            "decoder": {
                "weight": self.decoder_weight.to_json(),
                "bias": self.decoder_bias.to_json(),
            },
        }

    def get_config(self) -> Dict[str, Any]:
        return {"activation": self.activation}

    @classmethod
    def check_config(cls, cfg: Mapping[str, Any]) -> None:
        check_topology_config(cfg)
