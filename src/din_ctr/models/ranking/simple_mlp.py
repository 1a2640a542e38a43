import torch
import torch.nn as nn

from din_ctr.basic.initializers import RandomNormal
from din_ctr.basic.layers import MLP
from din_ctr.models.base import CTRModel
from din_ctr.utils.pylogger import RankedLogger

log = RankedLogger(__name__)


class SimpleMLP(CTRModel):
    """Baseline: the raw behavior matrix goes straight into the MLP, no attention."""

    def __init__(
        self,
        profile_dim: int,
        behavior_size: int,
        behavior_dim: int,
        item_dim: int,
        ctx_dim: int,
        dims: list[int] | None = None,
        dropouts: list[float] | None = None,
        initializer=RandomNormal(0, 1),
        generator: torch.Generator | None = None,
        dtype: torch.dtype = torch.float64,
    ):
        super().__init__(profile_dim, behavior_size, behavior_dim, item_dim, ctx_dim, dtype=dtype)
        input_dim = profile_dim + behavior_size * behavior_dim + item_dim + ctx_dim
        self.mlp = MLP(
            input_dim,
            dims=dims if dims is not None else [200, 80],
            dropouts=dropouts if dropouts is not None else [0.01, 0.01],
            initializer=initializer,
            generator=generator,
            dtype=dtype,
        )
        log.info(f"SimpleMLP with input dim {input_dim}, {len(self.learnable())} learnable tensors.")

    def learnable(self) -> list[nn.Parameter]:
        return list(self.mlp.weights)

    def forward(
        self,
        x_user_profile: torch.Tensor,
        ub_matrix: torch.Tensor,
        x_item_feature: torch.Tensor,
        x_ctx_feature: torch.Tensor,
        batch_size: int,
        behavior_size: int,
        behavior_dim: int,
    ) -> torch.Tensor:
        self._check_inputs(
            x_user_profile, ub_matrix, x_item_feature, x_ctx_feature, batch_size, behavior_size, behavior_dim
        )
        ub_matrix = ub_matrix.reshape(batch_size, behavior_size * behavior_dim)
        x = torch.cat([x_user_profile, ub_matrix, x_item_feature, x_ctx_feature], dim=1)
        self.out = self.mlp(x)  # [B, 1]
        return self.out
