import math

import numpy as np
import pytest
import torch

from din_ctr.metrics import accuracy, rocauc


def test_accuracy_rounds_prediction_error():
    assert accuracy([0.6, 0.4], [1, 0]) == 1.0
    assert accuracy([0.4, 0.4], [1, 0]) == 0.5


def test_accuracy_never_counts_exact_half():
    assert accuracy([0.5], [1.0]) == 0.0
    assert accuracy([0.5], [0.0]) == 0.0


def test_accuracy_accepts_tensors():
    pred = torch.tensor([[0.9], [0.2], [0.7]])
    y = torch.tensor([[1.0], [0.0], [0.0]])
    assert accuracy(pred, y) == pytest.approx(2 / 3)


def test_accuracy_length_mismatch():
    with pytest.raises(ValueError):
        accuracy([0.1, 0.2], [1.0])


def test_rocauc_rank_based():
    assert rocauc([0.9, 0.8, 0.3, 0.1], [1, 1, 0, 0]) == 1.0
    assert rocauc([0.1, 0.3, 0.8, 0.9], [1, 1, 0, 0]) == 0.0
    assert rocauc(np.array([0.2, 0.6, 0.4, 0.8]), np.array([0, 1, 1, 0])) == pytest.approx(0.5)


def test_rocauc_single_class_is_nan():
    assert math.isnan(rocauc([0.2, 0.4], [0.0, 0.0]))
