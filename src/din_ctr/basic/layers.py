from __future__ import annotations

import torch
import torch.nn as nn

from din_ctr.basic.activation import get_activation_layer
from din_ctr.basic.initializers import RandomNormal
from din_ctr.utils.pylogger import RankedLogger

log = RankedLogger(__name__)


class Dropout(nn.Module):
    """Inverted dropout drawing its mask from an explicit ``torch.Generator``.

    ``p`` is the probability of dropping a unit. Only active in training mode.
    """

    def __init__(self, p: float = 0.0, generator: torch.Generator | None = None):
        super().__init__()
        if not 0.0 <= p < 1.0:
            raise ValueError(f"Dropout probability must be in [0, 1), got {p}")
        self.p = p
        self.generator = generator

    def extra_repr(self) -> str:
        return f"p={self.p}"

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        if not self.training or self.p == 0.0:
            return x
        device = self.generator.device if self.generator is not None else x.device
        keep = torch.rand(x.shape, generator=self.generator, device=device) >= self.p
        return x * keep.to(device=x.device, dtype=x.dtype) / (1.0 - self.p)


class OuterProductInteraction(nn.Module):
    """Per-example outer product of the flattened behaviors and the item vector.

    Shape
    -----
    Input
        behaviors : ``(B, S*D)``
        item : ``(B, D)``
    Output
        ``(B, S*D*D)``
    """

    def forward(self, behaviors: torch.Tensor, item: torch.Tensor) -> torch.Tensor:
        # [B, S*D, 1] x [B, 1, D] -> [B, S*D, D], one matrix product per example
        out_prod = torch.bmm(behaviors.unsqueeze(2), item.unsqueeze(1))
        return out_prod.flatten(start_dim=1)  # [B, S*D*D]


class ActivationUnit(nn.Module):
    """Local activation unit with a dedicated two-layer scoring network per behavior slot.

    For slot ``i`` the unit scores ``concat(ub_i, out_prod, item)`` with
    ``relu(x @ att0[i]) @ att1[i]`` and gates ``ub_i`` by that score. The scores are
    not normalized across slots.

    Shape
    -----
    Input
        ub_i : ``(B, D)``
        out_prod : ``(B, S*D*D)``
        item : ``(B, D)``
    Output
        ``(B, D)``
    """

    def __init__(
        self,
        behavior_size: int,
        behavior_dim: int,
        item_dim: int,
        hidden_dim: int = 36,
        activation: str = "relu",
        initializer=RandomNormal(0, 1),
        generator: torch.Generator | None = None,
        dtype: torch.dtype | None = None,
    ):
        super().__init__()
        self.behavior_size = behavior_size
        self.input_dim = behavior_dim + item_dim + behavior_size * behavior_dim * item_dim
        self.att0 = nn.ParameterList(
            [initializer(self.input_dim, hidden_dim, generator=generator, dtype=dtype) for _ in range(behavior_size)]
        )
        self.att1 = nn.ParameterList(
            [initializer(hidden_dim, 1, generator=generator, dtype=dtype) for _ in range(behavior_size)]
        )
        self.activation = get_activation_layer(activation)

    def score(self, slot: int, ub_i: torch.Tensor, out_prod: torch.Tensor, item: torch.Tensor) -> torch.Tensor:
        act_concat = torch.cat([ub_i, out_prod, item], dim=1)  # [B, D + S*D*D + D]
        return self.activation(act_concat @ self.att0[slot]) @ self.att1[slot]  # [B, 1]

    def forward(self, slot: int, ub_i: torch.Tensor, out_prod: torch.Tensor, item: torch.Tensor) -> torch.Tensor:
        return ub_i * self.score(slot, ub_i, out_prod, item)  # broadcast over D


class SumPooling(nn.Module):
    """Sum of the gated behavior vectors.

    Shape
    -----
    Input
        a sequence of S tensors, each ``(B, D)``
    Output
        ``(B, D)``
    """

    def forward(self, act_outs: list[torch.Tensor]) -> torch.Tensor:
        if not act_outs:
            raise ValueError("SumPooling needs at least one behavior vector")
        pooled = torch.zeros_like(act_outs[0])
        for act_out in act_outs:
            pooled = pooled + act_out
        return pooled


class MLP(nn.Module):
    """Bias-free feed-forward stack ending in a single sigmoid unit.

    Each hidden layer is ``x @ W -> activation -> Dropout``; the output layer is
    ``sigmoid(x @ W)``.

    The weights are bare ``[in_features, out_features]`` parameters rather than
    ``nn.Linear`` layers (which store ``[out, in]`` and carry a bias), so ``weights[0]``
    is the ``[input_dim, 200]`` matrix the model exposes through ``learnable()``.
    """

    def __init__(
        self,
        input_dim: int,
        dims: list[int] | None = None,
        dropouts: list[float] | None = None,
        activation: str = "leaky_relu",
        negative_slope: float = 0.1,
        initializer=RandomNormal(0, 1),
        generator: torch.Generator | None = None,
        dtype: torch.dtype | None = None,
    ):
        super().__init__()
        if dims is None:
            dims = [200, 80]
        if dropouts is None:
            dropouts = [0.0] * len(dims)
        if len(dropouts) != len(dims):
            raise ValueError(f"Got {len(dropouts)} dropout probabilities for {len(dims)} hidden layers")

        self.input_dim = input_dim
        self.weights = nn.ParameterList()
        self.activations = nn.ModuleList()
        self.dropouts = nn.ModuleList()
        for i_dim, p in zip(dims, dropouts):
            self.weights.append(initializer(input_dim, i_dim, generator=generator, dtype=dtype))
            self.activations.append(get_activation_layer(activation, negative_slope))
            self.dropouts.append(Dropout(p, generator=generator))
            input_dim = i_dim
        self.weights.append(initializer(input_dim, 1, generator=generator, dtype=dtype))
        log.debug(f"Built MLP {self.input_dim} -> {dims} -> 1 with dropouts {dropouts}")

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        for weight, activation, dropout in zip(self.weights, self.activations, self.dropouts):
            x = dropout(activation(x @ weight))
        return torch.sigmoid(x @ self.weights[-1])  # [B, 1]
