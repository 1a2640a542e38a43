"""
Point-wise click-through-rate training.

Model contract
--------------
Models are :class:`~din_ctr.models.base.CTRModel` instances:
    learnable() -> list[Parameter]        # what the optimizer updates
    forward(profile, behaviors, item, ctx, batch_size, behavior_size, behavior_dim) -> Tensor[B, 1]
    output() -> Tensor[B, 1]              # prediction of the last forward

Batches are dicts with ``user_profile``, ``user_behavior``, ``item_feature``,
``context`` and ``label`` (see :class:`~din_ctr.datamodules.ctr_datamodule.CTRDataset`).
"""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import Any

import lightning as L
import torch
import torch.nn as nn

from din_ctr.metrics.ctr_metrics import accuracy, rocauc
from din_ctr.models.base import CTRModel
from din_ctr.utils.pylogger import RankedLogger

log = RankedLogger(__name__)


class TrainingError(RuntimeError):
    """A batch could not be executed or its gradients could not be applied."""


class CTRModule(L.LightningModule):
    def __init__(
        self,
        model: CTRModel,
        optimizer: Callable = partial(torch.optim.Adam, lr=0.001),
        criterion: nn.Module | None = None,
    ) -> None:
        super().__init__()
        self.model = model
        self._optimizer = optimizer
        self.criterion = criterion if criterion is not None else nn.MSELoss()

        self.epoch_losses: list[float] = []
        self.test_metrics: dict[str, float] = {}
        self._batch_losses: list[torch.Tensor] = []
        self._test_preds: list[torch.Tensor] = []
        self._test_labels: list[torch.Tensor] = []

    def forward(self, x: dict[str, torch.Tensor]) -> torch.Tensor:
        return self.model(
            x["user_profile"],
            x["user_behavior"],
            x["item_feature"],
            x["context"],
            x["user_profile"].size(0),
            self.model.behavior_size,
            self.model.behavior_dim,
        )

    def training_step(self, batch: dict[str, torch.Tensor], batch_idx: int) -> torch.Tensor:
        y_pred = self(batch)  # [B, 1]
        loss = self.criterion(y_pred, batch["label"])
        batch_size = batch["label"].size(0)
        self.log("train/loss", loss, prog_bar=True, on_step=True, on_epoch=True, batch_size=batch_size)
        self._batch_losses.append(loss.detach())
        return loss

    def optimizer_step(self, epoch: int, batch_idx: int, optimizer, optimizer_closure=None) -> None:
        # the closure runs forward and backward before the update
        try:
            super().optimizer_step(epoch, batch_idx, optimizer, optimizer_closure)
        except TrainingError:
            raise
        except RuntimeError as err:
            raise TrainingError(f"Failed at epoch {epoch}, batch {batch_idx}: {err}") from err

    def on_train_epoch_start(self) -> None:
        self._batch_losses.clear()

    def on_train_epoch_end(self) -> None:
        if not self._batch_losses:
            log.warning(f"Epoch {self.current_epoch} ran no batches.")
            return
        cost = torch.stack(self._batch_losses).mean().item()
        self.epoch_losses.append(cost)
        log.info(f"Epoch {self.current_epoch} | cost {cost:.6f}")

    def test_step(self, batch: dict[str, torch.Tensor], batch_idx: int) -> None:
        self._test_preds.append(self(batch).detach())
        self._test_labels.append(batch["label"].detach())

    def on_test_epoch_start(self) -> None:
        self._test_preds.clear()
        self._test_labels.clear()

    def on_test_epoch_end(self) -> None:
        if not self._test_preds:
            raise ValueError("The test set holds fewer rows than one batch.")
        preds = torch.cat(self._test_preds).squeeze(-1)
        labels = torch.cat(self._test_labels).squeeze(-1)
        self.test_metrics = {"accuracy": accuracy(preds, labels), "rocauc": rocauc(preds, labels)}
        for name, value in self.test_metrics.items():
            self.log(f"test/{name}", value)
        log.info(f"Test accuracy {self.test_metrics['accuracy']:.4f} | rocauc {self.test_metrics['rocauc']:.4f}")

    def predict_step(self, batch: dict[str, torch.Tensor], batch_idx: int) -> torch.Tensor:
        return self(batch)

    def configure_optimizers(self) -> Any:
        return self._optimizer(self.model.learnable())
