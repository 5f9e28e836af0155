"""
Recurrent topology.

Each hidden layer combines the current input with its own activation from
the previous time step:

    h_i(t) = relu(Wx_i @ in_i(t) + Wh_i @ h_i(t-1) + b_i)
    y(t)   = W_d @ h_last(t) + b_d

where ``in_0(t)`` is the input vector and ``in_i(t) = h_{i-1}(t)``.

The caller carries the returned per-layer state into the next call. When no
state is supplied, every layer starts from a zero column vector, which is
how the first step of a sequence is seeded.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ...domain._errors import ShapeError
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
from ._feedforward import (
    check_activation,
    check_topology_config,
    compute_output,
    decoder_shapes,
)


@register_topology()
class RecurrentTopology:
    """
    Elman-style recurrent stack with a linear decoder.

    Parameters are laid out as::

        hidden.weights[i]            (hidden_units[i] x preceding_size(i))
        hidden.recurrent_weights[i]  (hidden_units[i] x hidden_units[i])
        hidden.biases[i]             (hidden_units[i] x 1)
        decoder.weight               (output_size x hidden_units[-1])
        decoder.bias                 (output_size x 1)
    """

    stateful = True
    DEFAULT_STD = 0.08

    def __init__(
        self,
        architecture: Architecture,
        hidden_weights: Sequence[Tensor],
        recurrent_weights: Sequence[Tensor],
        hidden_biases: Sequence[Tensor],
        decoder_weight: Tensor,
        decoder_bias: Tensor,
        *,
        activation: str = "relu",
    ) -> None:
        self.architecture = architecture
        self.activation = check_activation(activation)
        self.hidden_weights: List[Tensor] = list(hidden_weights)
        self.recurrent_weights: List[Tensor] = list(recurrent_weights)
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
        activation: str = "relu",
    ) -> "RecurrentTopology":
        std = cls.DEFAULT_STD if std is None else std
        weights, recurrent, biases = [], [], []
        for i, units in enumerate(architecture.hidden_units):
            weights.append(
                random_tensor(
                    units, architecture.preceding_size(i), mu, std, policy=policy, rng=rng
                )
            )
            recurrent.append(random_tensor(units, units, mu, std, policy=policy, rng=rng))
            biases.append(Tensor(units, 1))

        (w_rows, w_cols), (b_rows, _) = decoder_shapes(architecture)
        decoder_weight = random_tensor(w_rows, w_cols, mu, std, policy=policy, rng=rng)
        return cls(
            architecture,
            weights,
            recurrent,
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
        activation: str = "relu",
    ) -> "RecurrentTopology":
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
        recurrent = check_tensor_list(
            hidden, "recurrent_weights", "hidden", [(u, u) for u in units]
        )
        biases = check_tensor_list(hidden, "biases", "hidden", [(u, 1) for u in units])
        weight_shape, bias_shape = decoder_shapes(architecture)
        dw = check_field(decoder, "weight", "decoder", weight_shape)
        db = check_field(decoder, "bias", "decoder", bias_shape)

        decoder_weight, decoder_bias = build_tensors([dw, db])
        return cls(
            architecture,
            build_tensors(weights),
            build_tensors(recurrent),
            build_tensors(biases),
            decoder_weight,
            decoder_bias,
            activation=activation,
        )

    def initial_state(self) -> List[Tensor]:
        """Zero column vector for every hidden layer."""
        return [Tensor(units, 1) for units in self.architecture.hidden_units]

    def _resolve_state(self, previous_state: Optional[Sequence[ITensor]]) -> List[ITensor]:
        if previous_state is None:
            return self.initial_state()
        state = list(previous_state)
        units = self.architecture.hidden_units
        if len(state) != len(units):
            raise ShapeError(
                "recurrent",
                f"expected state for {len(units)} layers, got {len(state)}",
            )
        for i, (h, size) in enumerate(zip(state, units)):
            if h.shape != (size, 1):
                raise ShapeError(
                    "recurrent",
                    f"state of layer {i} must be a column of {size}",
                    h.shape,
                )
        return state

    def __call__(
        self,
        inputs: ITensor,
        previous_state: Optional[List[ITensor]],
        tape: ITape,
    ) -> Tuple[ITensor, List[ITensor]]:
        """
        Forward pass for a single time step.

        Returns
        -------
        Tuple[ITensor, List[ITensor]]
            The decoder output and the new per-layer activations, to be
            passed back in as `previous_state` on the next step.
        """
        previous = self._resolve_state(previous_state)
        activate = getattr(tape, self.activation)

        hidden: List[ITensor] = []
        for i, h_prev in enumerate(previous):
            vector = inputs if i == 0 else hidden[i - 1]
            stateless = tape.mul(self.hidden_weights[i], vector)
            stateful = tape.mul(self.recurrent_weights[i], h_prev)
            summed = tape.add(tape.add(stateless, stateful), self.hidden_biases[i])
            hidden.append(activate(summed))

        output = compute_output(tape, self.decoder_weight, self.decoder_bias, hidden)
        return output, hidden

    def parameters(self) -> List[Tensor]:
        params: List[Tensor] = []
        for w, u, b in zip(self.hidden_weights, self.recurrent_weights, self.hidden_biases):
            params += [w, u, b]
        return params + [self.decoder_weight, self.decoder_bias]

    def state_payload(self) -> Dict[str, Any]:
        return {
            "hidden": {
                "weights": tensors_to_payload(self.hidden_weights),
                "recurrent_weights": tensors_to_payload(self.recurrent_weights),
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
