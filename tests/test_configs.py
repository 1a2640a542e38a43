import math

import hydra
from hydra import compose, initialize

from din_ctr.models import DIN, SimpleMLP
from din_ctr.scripts import make_synthetic
from din_ctr.train import train_task


def test_model_configs_instantiate():
    with initialize(version_base="1.3", config_path="../configs"):
        din_cfg = compose(config_name="train.yaml")
        mlp_cfg = compose(config_name="train.yaml", overrides=["model=simple_mlp"])

    assert din_cfg.epochs == 5 and din_cfg.seed == 2120
    assert isinstance(hydra.utils.instantiate(din_cfg.model), DIN)
    mlp = hydra.utils.instantiate(mlp_cfg.model)
    assert isinstance(mlp, SimpleMLP)
    assert [d.p for d in mlp.mlp.dropouts] == [0.01, 0.01]


def test_train_task_end_to_end(tmp_path):
    with initialize(version_base="1.3", config_path="../configs"):
        make_synthetic.generate(
            compose(config_name="make_synthetic.yaml", overrides=[f"out_dir={tmp_path}", "train_rows=64", "test_rows=32"])
        )
        cfg = compose(
            config_name="train.yaml",
            overrides=[
                f"data.data_dir={tmp_path}",
                "data.batch_size=16",
                "epochs=2",
                "trainer.enable_progress_bar=false",
                "extras.print_config=false",
            ],
        )

    metrics = train_task(cfg)
    assert set(metrics) == {"train/loss", "test/accuracy", "test/rocauc"}
    assert math.isfinite(metrics["train/loss"])
    assert 0.0 <= metrics["test/accuracy"] <= 1.0
