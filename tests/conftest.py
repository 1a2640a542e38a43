import pytest
import torch

from din_ctr.basic.features import SampleInfo

PROFILE_DIM = 3
BEHAVIOR_SIZE = 4
BEHAVIOR_DIM = 2
CTX_DIM = 2
BATCH_SIZE = 8


@pytest.fixture
def dims() -> dict[str, int]:
    return {
        "profile_dim": PROFILE_DIM,
        "behavior_size": BEHAVIOR_SIZE,
        "behavior_dim": BEHAVIOR_DIM,
        "item_dim": BEHAVIOR_DIM,
        "ctx_dim": CTX_DIM,
    }


@pytest.fixture
def batch_size() -> int:
    return BATCH_SIZE


@pytest.fixture
def generator() -> torch.Generator:
    return torch.Generator().manual_seed(2120)


@pytest.fixture
def sample_info(dims) -> SampleInfo:
    return SampleInfo.from_dims(**dims)


@pytest.fixture
def batch() -> dict[str, torch.Tensor]:
    """One small-magnitude float64 batch, so the N(0, 1) initialized MLP stays out of sigmoid saturation."""
    g = torch.Generator().manual_seed(0)
    kw = {"generator": g, "dtype": torch.float64}
    return {
        "user_profile": 0.01 * torch.randn(BATCH_SIZE, PROFILE_DIM, **kw),
        "user_behavior": 0.01 * torch.randn(BATCH_SIZE, BEHAVIOR_SIZE * BEHAVIOR_DIM, **kw),
        "item_feature": 0.01 * torch.randn(BATCH_SIZE, BEHAVIOR_DIM, **kw),
        "context": 0.01 * torch.randn(BATCH_SIZE, CTX_DIM, **kw),
        "label": (torch.arange(BATCH_SIZE) % 2).double().unsqueeze(1),
    }


@pytest.fixture
def dataset(sample_info) -> tuple[torch.Tensor, torch.Tensor]:
    """Flattened inputs ``[N, F]`` and labels ``[N]`` with 50 rows (6 full batches of 8, 2 left over)."""
    g = torch.Generator().manual_seed(1)
    inputs = 0.01 * torch.randn(50, sample_info.num_columns, generator=g, dtype=torch.float64)
    targets = (inputs[:, -1] > 0).double()
    return inputs, targets


def _forward(model, batch: dict[str, torch.Tensor]) -> torch.Tensor:
    return model(
        batch["user_profile"],
        batch["user_behavior"],
        batch["item_feature"],
        batch["context"],
        batch["user_profile"].size(0),
        model.behavior_size,
        model.behavior_dim,
    )


@pytest.fixture
def forward():
    """Runs a model on a dict batch the way the training module does."""
    return _forward
