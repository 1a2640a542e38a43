"""Point metrics over finished prediction/label vectors."""

import numpy as np
import torch
from sklearn.metrics import roc_auc_score

from din_ctr.utils.pylogger import RankedLogger

log = RankedLogger(__name__)


def _to_numpy(x) -> np.ndarray:
    if isinstance(x, torch.Tensor):
        x = x.detach().cpu().numpy()
    return np.asarray(x, dtype=np.float64).reshape(-1)


def accuracy(prediction, y) -> float:
    """Fraction of examples where ``round(prediction - y) == 0``.

    Rounds half away from zero, so a prediction of exactly 0.5 is wrong for either label.
    """
    prediction, y = _to_numpy(prediction), _to_numpy(y)
    if len(prediction) != len(y):
        raise ValueError(f"prediction has {len(prediction)} entries but y has {len(y)}")
    if len(y) == 0:
        raise ValueError("accuracy of an empty prediction vector is undefined")
    diff = prediction - y
    rounded = np.sign(diff) * np.floor(np.abs(diff) + 0.5)
    return float(np.mean(rounded == 0))


def rocauc(prediction, y) -> float:
    """Rank-based ROC-AUC with ``y == 1.0`` as the positive class.

    Returns ``nan`` when only one class is present.
    """
    prediction, y = _to_numpy(prediction), _to_numpy(y)
    if len(prediction) != len(y):
        raise ValueError(f"prediction has {len(prediction)} entries but y has {len(y)}")
    bool_y = y == 1.0
    if bool_y.all() or not bool_y.any():
        log.warning(f"ROC-AUC is undefined with a single class in {len(y)} labels, returning nan.")
        return float("nan")
    return float(roc_auc_score(bool_y, prediction))
