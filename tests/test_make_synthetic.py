import pandas as pd
from hydra import compose, initialize

from din_ctr.basic.features import get_sample_info
from din_ctr.datamodules.ctr_datamodule import CTRDataModule
from din_ctr.scripts import make_synthetic


def test_writes_data_and_layout(tmp_path):
    with initialize(version_base="1.3", config_path="../configs"):
        cfg = compose(
            config_name="make_synthetic.yaml",
            overrides=[f"out_dir={tmp_path}", "train_rows=40", "test_rows=20", "behavior_size=3"],
        )
    written = make_synthetic.generate(cfg)

    train_df = pd.read_parquet(tmp_path / "train.parquet")
    sample_info = get_sample_info(str(tmp_path / "sample_info.json"))

    assert len(train_df) == 40
    assert len(pd.read_parquet(tmp_path / "test.parquet")) == 20
    assert set(train_df["label"].unique()) <= {0.0, 1.0}
    # profile 4 + behaviors 3*4 + item 4 + ctx 2, plus the label
    assert sample_info.num_columns == 22
    assert sample_info.to_dict() == written.to_dict()
    assert train_df.shape[1] == 23

    dm = CTRDataModule.from_file(str(tmp_path / "train.parquet"), sample_info, batch_size=8)
    dm.setup("fit")
    batch = next(iter(dm.train_dataloader()))
    assert batch["user_behavior"].shape == (8, 12)
    assert len(dm.train_dataloader()) == 5


def test_default_dims_match_the_data_config():
    with initialize(version_base="1.3", config_path="../configs"):
        synthetic = compose(config_name="make_synthetic.yaml")
        train_cfg = compose(config_name="train.yaml")

    for name in ("profile_dim", "behavior_size", "behavior_dim", "ctx_dim"):
        assert synthetic[name] == train_cfg.data[name]
    assert synthetic.out_dir == train_cfg.data.data_dir
