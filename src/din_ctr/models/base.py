from abc import ABC, abstractmethod

import torch
import torch.nn as nn

from din_ctr.utils.pylogger import RankedLogger

log = RankedLogger(__name__)


class DimensionMismatchError(ValueError):
    """Model dimensions are inconsistent; raised before any tensor work starts."""


class ShapeError(ValueError):
    """A batch tensor does not match the shapes the model was built for."""


class CTRModel(nn.Module, ABC):
    """Common contract of the click-through-rate models.

    Every variant exposes the same three operations so the training loop does not
    care which one it drives:

    * :meth:`learnable` - ordered list of the parameters the optimizer updates
    * :meth:`forward` - computes the click probability ``[B, 1]`` and keeps it
    * :meth:`output` - the prediction of the last forward pass

    Parameters are created in ``dtype``, float64 unless told otherwise: with N(0, 1)
    weights the logit grows quickly with the input scale, and float32 rounds the
    sigmoid up to exactly 1 from a logit of ~ 17 where float64 holds out to ~ 37.
    Inputs must come in the same dtype.
    """

    def __init__(
        self,
        profile_dim: int,
        behavior_size: int,
        behavior_dim: int,
        item_dim: int,
        ctx_dim: int,
        dtype: torch.dtype = torch.float64,
    ):
        super().__init__()
        dims = {
            "profile_dim": profile_dim,
            "behavior_size": behavior_size,
            "behavior_dim": behavior_dim,
            "item_dim": item_dim,
            "ctx_dim": ctx_dim,
        }
        for name, value in dims.items():
            if value < 0 or (value == 0 and name in ("behavior_size", "behavior_dim")):
                raise DimensionMismatchError(f"{name} must be positive, got {value}")
        if behavior_dim != item_dim:
            raise DimensionMismatchError(f"behavior_dim {behavior_dim} != item_dim {item_dim}")

        self.profile_dim = profile_dim
        self.behavior_size = behavior_size
        self.behavior_dim = behavior_dim
        self.item_dim = item_dim
        self.ctx_dim = ctx_dim
        self.dtype = dtype
        self.out: torch.Tensor | None = None

    @abstractmethod
    def learnable(self) -> list[nn.Parameter]: ...

    @abstractmethod
    def forward(
        self,
        x_user_profile: torch.Tensor,
        ub_matrix: torch.Tensor,
        x_item_feature: torch.Tensor,
        x_ctx_feature: torch.Tensor,
        batch_size: int,
        behavior_size: int,
        behavior_dim: int,
    ) -> torch.Tensor: ...

    def output(self) -> torch.Tensor | None:
        return self.out

    def _check_inputs(
        self,
        x_user_profile: torch.Tensor,
        ub_matrix: torch.Tensor,
        x_item_feature: torch.Tensor,
        x_ctx_feature: torch.Tensor,
        batch_size: int,
        behavior_size: int,
        behavior_dim: int,
    ) -> None:
        if (behavior_size, behavior_dim) != (self.behavior_size, self.behavior_dim):
            raise ShapeError(
                f"{type(self).__name__} was built for {self.behavior_size} behaviors of dim {self.behavior_dim}, "
                f"got {behavior_size} of dim {behavior_dim}"
            )
        expected = {
            "x_user_profile": (x_user_profile, self.profile_dim),
            "ub_matrix": (ub_matrix, behavior_size * behavior_dim),
            "x_item_feature": (x_item_feature, self.item_dim),
            "x_ctx_feature": (x_ctx_feature, self.ctx_dim),
        }
        for name, (x, dim) in expected.items():
            if tuple(x.shape) != (batch_size, dim):
                raise ShapeError(f"{name} has shape {tuple(x.shape)}, expected ({batch_size}, {dim})")
