import torch
import torch.nn as nn

from din_ctr.basic.initializers import RandomNormal
from din_ctr.basic.layers import MLP, ActivationUnit, OuterProductInteraction, SumPooling
from din_ctr.models.base import CTRModel, ShapeError
from din_ctr.utils.pylogger import RankedLogger

log = RankedLogger(__name__)


class DIN(CTRModel):
    """Deep Interest Network.

    User behaviors come in as a sequence of item embeddings. Before being fed into
    the MLP they are collapsed into one interest vector by sum pooling, with a
    per-slot activation unit weighting each behavior by its relevance to the
    candidate item.

    Args:
        profile_dim: width of the user profile features ``P``.
        behavior_size: number of behavior slots ``S``.
        behavior_dim: embedding dim of one behavior ``D``.
        item_dim: width of the item features, must equal ``behavior_dim``.
        ctx_dim: width of the context features ``C``.
        att_hidden_dim: hidden units of each slot's scoring network.
        dims: hidden units of the prediction MLP.
        dropouts: drop probabilities after each hidden MLP layer.
        initializer: callable building a parameter from a shape.
        generator: source of randomness for initialization and dropout.
        dtype: dtype of every parameter; inputs must match it.
    """

    def __init__(
        self,
        profile_dim: int,
        behavior_size: int,
        behavior_dim: int,
        item_dim: int,
        ctx_dim: int,
        att_hidden_dim: int = 36,
        dims: list[int] | None = None,
        dropouts: list[float] | None = None,
        initializer=RandomNormal(0, 1),
        generator: torch.Generator | None = None,
        dtype: torch.dtype = torch.float64,
    ):
        super().__init__(profile_dim, behavior_size, behavior_dim, item_dim, ctx_dim, dtype=dtype)
        self.interaction = OuterProductInteraction()
        self.attention = ActivationUnit(
            behavior_size,
            behavior_dim,
            item_dim,
            hidden_dim=att_hidden_dim,
            initializer=initializer,
            generator=generator,
            dtype=dtype,
        )
        self.pooling = SumPooling()

        # pooled interest replaces the S*D raw behaviors
        input_dim = profile_dim + behavior_dim + item_dim + ctx_dim
        self.mlp = MLP(
            input_dim,
            dims=dims if dims is not None else [200, 80],
            dropouts=dropouts if dropouts is not None else [0.001, 0.001],
            initializer=initializer,
            generator=generator,
            dtype=dtype,
        )
        log.info(f"DIN with {behavior_size} behavior slots, MLP input dim {input_dim}.")

    def learnable(self) -> list[nn.Parameter]:
        return [*self.mlp.weights, *self.attention.att0, *self.attention.att1]

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
        """
        Shapes
        ------
        x_user_profile: [B, P]
        ub_matrix: [B, S*D]
        x_item_feature: [B, D]
        x_ctx_feature: [B, C]

        Returns
        -------
        Tensor[B, 1] click probabilities
        """
        item_dim = x_item_feature.shape[-1]
        if behavior_dim != item_dim:
            raise ShapeError(f"behavior_dim {behavior_dim} != item feature dim {item_dim}")
        self._check_inputs(
            x_user_profile, ub_matrix, x_item_feature, x_ctx_feature, batch_size, behavior_size, behavior_dim
        )
        x_user_behaviors = ub_matrix.reshape(batch_size, behavior_size, behavior_dim)  # [B, S, D]
        out_products = self.interaction(ub_matrix, x_item_feature)  # [B, S*D*D]

        act_outs = [
            self.attention(i, x_user_behaviors[:, i, :], out_products, x_item_feature) for i in range(behavior_size)
        ]
        interest = self.pooling(act_outs)  # [B, D]

        x = torch.cat([x_user_profile, interest, x_item_feature, x_ctx_feature], dim=1)
        self.out = self.mlp(x)  # [B, 1]
        return self.out
