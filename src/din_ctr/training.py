"""Direct-call procedures: train a model for a fixed number of epochs, evaluate it, predict."""

from collections.abc import Callable
from functools import partial
from typing import Any

import lightning as L
import torch

from din_ctr.basic.features import SampleInfo
from din_ctr.datamodules.ctr_datamodule import CTRDataModule
from din_ctr.l_module.ctr_module import CTRModule, TrainingError
from din_ctr.models.base import CTRModel, DimensionMismatchError
from din_ctr.utils.pylogger import RankedLogger

log = RankedLogger(__name__)

__all__ = ["DEFAULT_SEED", "TrainingError", "build_trainer", "check_sample_info", "evaluate", "predict", "train"]

DEFAULT_SEED = 2120


def check_sample_info(model: CTRModel, sample_info: SampleInfo) -> None:
    """Raise :class:`DimensionMismatchError` when the column layout disagrees with the model dims."""
    expected = {
        "user_profile": model.profile_dim,
        "user_behavior": model.behavior_size * model.behavior_dim,
        "item_feature": model.item_dim,
        "context": model.ctx_dim,
    }
    for name, dim in expected.items():
        if sample_info[name].dim != dim:
            raise DimensionMismatchError(
                f"{sample_info[name]} spans {sample_info[name].dim} columns but {type(model).__name__} expects {dim}"
            )


def build_trainer(max_epochs: int, **trainer_kwargs: Any) -> L.Trainer:
    """Single-device trainer without validation, checkpointing or loggers unless overridden."""
    kwargs: dict[str, Any] = {
        "max_epochs": max_epochs,
        "accelerator": "cpu",
        "devices": 1,
        "logger": False,
        "enable_checkpointing": False,
        "enable_model_summary": False,
        "limit_val_batches": 0,
        "num_sanity_val_steps": 0,
    }
    kwargs.update(trainer_kwargs)
    return L.Trainer(**kwargs)


def train(
    model: CTRModel,
    sample_info: SampleInfo,
    inputs,
    targets,
    batch_size: int,
    epochs: int,
    num_examples: int | None = None,
    learning_rate: float = 0.001,
    optimizer: Callable | None = None,
    seed: int | None = DEFAULT_SEED,
    **trainer_kwargs: Any,
) -> list[float]:
    """Train ``model`` for exactly ``epochs`` passes over ``floor(N / batch_size)`` batches.

    Parameters
    ----------
    model:
        Either model variant; its parameters are updated in place.
    sample_info:
        Column ranges of the four feature groups inside ``inputs``.
    inputs, targets:
        ``[N, F]`` feature matrix and ``[N]`` or ``[N, 1]`` click labels, converted to
        ``model.dtype``.
    num_examples:
        Train on the first ``num_examples`` rows only.
    optimizer:
        Factory called with ``model.learnable()``; defaults to Adam with ``learning_rate``.
    seed:
        Seeds Lightning's global RNGs; ``None`` leaves them untouched.
    trainer_kwargs:
        Extra :class:`lightning.Trainer` arguments.

    Returns
    -------
    list[float]
        Mean batch loss of every epoch.

    Raises
    ------
    DimensionMismatchError
        ``sample_info`` does not match the model, before any work starts.
    ValueError
        Fewer than ``batch_size`` rows, so an epoch would hold no batch.
    ShapeError, TrainingError
        From the first failing batch. Nothing is retried.
    """
    check_sample_info(model, sample_info)
    if epochs < 0:
        raise ValueError(f"epochs must be non-negative, got {epochs}")
    if seed is not None:
        L.seed_everything(seed, workers=True)
    log.info(f"Training {type(model).__name__} for {epochs} epochs with batch size {batch_size}.")

    datamodule = CTRDataModule(
        inputs, targets, sample_info, batch_size, num_examples=num_examples, dtype=model.dtype
    )
    module = CTRModule(model, optimizer=optimizer or partial(torch.optim.Adam, lr=learning_rate))
    trainer = build_trainer(epochs, **trainer_kwargs)
    trainer.fit(module, datamodule=datamodule)
    return module.epoch_losses


def evaluate(
    model: CTRModel,
    sample_info: SampleInfo,
    inputs,
    targets,
    batch_size: int,
    **trainer_kwargs: Any,
) -> dict[str, float]:
    """Accuracy and ROC-AUC of ``model`` on full batches of ``inputs``, dropout off."""
    check_sample_info(model, sample_info)
    datamodule = CTRDataModule(
        inputs, targets, sample_info, batch_size, test_inputs=inputs, test_targets=targets, dtype=model.dtype
    )
    module = CTRModule(model)
    trainer = build_trainer(1, **{"enable_progress_bar": False, **trainer_kwargs})
    trainer.test(module, datamodule=datamodule, verbose=False)
    return module.test_metrics


def predict(
    model: CTRModel,
    sample_info: SampleInfo,
    inputs,
    batch_size: int,
    **trainer_kwargs: Any,
) -> torch.Tensor:
    """Click probabilities ``[floor(N / batch_size) * batch_size, 1]``, dropout off."""
    check_sample_info(model, sample_info)
    datamodule = CTRDataModule(inputs, None, sample_info, batch_size, test_inputs=inputs, dtype=model.dtype)
    module = CTRModule(model)
    trainer = build_trainer(1, **{"enable_progress_bar": False, **trainer_kwargs})
    predictions = trainer.predict(module, datamodule=datamodule)
    if not predictions:
        return torch.empty(0, 1, dtype=model.dtype)
    return torch.cat(predictions, dim=0)
