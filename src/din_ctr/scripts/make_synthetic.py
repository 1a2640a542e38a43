import json
import time
from pathlib import Path

import hydra
import numpy as np
import pandas as pd
from omegaconf import DictConfig

from din_ctr.basic.features import FEATURE_GROUPS, SampleInfo


def prepare_paths(out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    print(f"Directory {out_dir} is ready.")


def make_samples(
    num_rows: int,
    profile_dim: int,
    behavior_size: int,
    behavior_dim: int,
    ctx_dim: int,
    rng: np.random.Generator,
    scale: float = 0.1,
) -> pd.DataFrame:
    """Random flattened samples whose click label depends on behavior/item affinity.

    A row is clicked when the mean behavior embedding points the same way as the item
    embedding (plus a little noise), so attention over behaviors has something to learn.
    """
    profile = rng.normal(0, scale, size=(num_rows, profile_dim))
    behaviors = rng.normal(0, scale, size=(num_rows, behavior_size, behavior_dim))
    item = rng.normal(0, scale, size=(num_rows, behavior_dim))
    ctx = rng.normal(0, scale, size=(num_rows, ctx_dim))

    affinity = np.einsum("nd,nd->n", behaviors.mean(axis=1), item)
    noise = rng.normal(0, scale * scale * 0.1, size=num_rows)
    label = (affinity + noise > 0).astype(np.float64)

    columns = (
        [f"profile_{i}" for i in range(profile_dim)]
        + [f"behavior_{s}_{d}" for s in range(behavior_size) for d in range(behavior_dim)]
        + [f"item_{d}" for d in range(behavior_dim)]
        + [f"ctx_{i}" for i in range(ctx_dim)]
    )
    values = np.concatenate([profile, behaviors.reshape(num_rows, -1), item, ctx], axis=1)
    df = pd.DataFrame(values, columns=columns)
    df["label"] = label
    return df


def save_sample_info(sample_info: SampleInfo, file: Path) -> None:
    with open(file, "w") as f:
        json.dump(sample_info.to_dict(), f, indent=4)


def generate(cfg: DictConfig) -> SampleInfo:
    """Write `train.parquet`, `test.parquet` and `sample_info.json` into `cfg.out_dir`."""
    start = time.time()
    out_dir = Path(cfg.out_dir)
    prepare_paths(out_dir)
    rng = np.random.default_rng(cfg.seed)
    dims = (cfg.profile_dim, cfg.behavior_size, cfg.behavior_dim, cfg.ctx_dim)

    for split, rows in (("train", cfg.train_rows), ("test", cfg.test_rows)):
        df = make_samples(rows, *dims, rng=rng, scale=cfg.scale)
        df.to_parquet(out_dir / f"{split}.parquet", index=False)
        print(f"{split} data saved to {out_dir / f'{split}.parquet'} ({df['label'].mean():.3f} click rate)")

    sample_info = SampleInfo.from_dims(
        cfg.profile_dim, cfg.behavior_size, cfg.behavior_dim, cfg.behavior_dim, cfg.ctx_dim
    )
    save_sample_info(sample_info, out_dir / "sample_info.json")
    print(f"Sample info {list(FEATURE_GROUPS)} saved to {out_dir / 'sample_info.json'}")

    end = time.time()
    print(f"Data preparation completed in {end - start:.2f} seconds.")
    return sample_info


@hydra.main(version_base="1.3", config_path="../../../configs", config_name="make_synthetic.yaml")
def main(cfg: DictConfig) -> None:
    generate(cfg)


if __name__ == "__main__":
    main()
