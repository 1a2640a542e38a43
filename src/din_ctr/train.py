from typing import Any

import hydra
import torch
from omegaconf import DictConfig, OmegaConf

from din_ctr import utils
from din_ctr.datamodules.ctr_datamodule import split_inputs_targets
from din_ctr.training import evaluate, train

log = utils.RankedLogger(__name__, rank_zero_only=True)


@utils.task_wrapper
def train_task(cfg: DictConfig) -> dict[str, Any]:
    """Train the configured model, then evaluate it on the test file when one is configured.

    :param cfg: A DictConfig composed by Hydra.
    :return: Dict with the final train loss and the test metrics.
    """
    generator = torch.Generator().manual_seed(cfg.seed)

    log.info(f"Loading sample info <{cfg.data.sample_info._target_}>")
    sample_info = hydra.utils.instantiate(cfg.data.sample_info)

    log.info(f"Instantiating model <{cfg.model._target_}>")
    model = hydra.utils.instantiate(cfg.model, generator=generator)

    inputs, targets = split_inputs_targets(cfg.data.train_file, cfg.data.label_column)
    trainer_kwargs = OmegaConf.to_container(cfg.trainer, resolve=True)
    losses = train(
        model,
        sample_info,
        inputs,
        targets,
        batch_size=cfg.data.batch_size,
        epochs=cfg.epochs,
        num_examples=cfg.data.get("num_examples"),
        learning_rate=cfg.learning_rate,
        seed=cfg.seed,
        **trainer_kwargs,
    )

    metric_dict: dict[str, Any] = {}
    if losses:
        metric_dict["train/loss"] = losses[-1]

    if cfg.data.get("test_file"):
        test_inputs, test_targets = split_inputs_targets(cfg.data.test_file, cfg.data.label_column)
        test_metrics = evaluate(model, sample_info, test_inputs, test_targets, batch_size=cfg.data.batch_size)
        metric_dict.update({f"test/{name}": value for name, value in test_metrics.items()})

    return metric_dict


@hydra.main(version_base="1.3", config_path="../../configs", config_name="train.yaml")
def main(cfg: DictConfig) -> float | None:
    """Main entry point for training.

    :param cfg: DictConfig configuration composed by Hydra.
    :return: Optional[float] with optimized metric value.
    """
    utils.extras(cfg)
    metric_dict = train_task(cfg)
    return utils.get_metric_value(metric_dict=metric_dict, metric_name=cfg.get("optimized_metric"))


if __name__ == "__main__":
    main()
