import lightning as L
import numpy as np
import pandas as pd
import torch
from torch.utils.data import DataLoader

from din_ctr.basic.features import SampleInfo
from din_ctr.utils.pylogger import RankedLogger

log = RankedLogger(__name__)


def load_data(file: str | pd.DataFrame):
    if isinstance(file, pd.DataFrame):
        return file
    elif isinstance(file, str) and file.endswith(".csv"):
        return pd.read_csv(file)
    elif isinstance(file, str) and file.endswith(".parquet"):
        return pd.read_parquet(file)
    elif isinstance(file, str) and file.endswith(".pt"):
        return torch.load(file)
    else:
        raise ValueError("file must be a DataFrame or a csv, parquet, or pt file")


def as_float_tensor(x, dtype: torch.dtype = torch.float64) -> torch.Tensor:
    """Coerce a tensor, array or DataFrame to a floating tensor of ``dtype``."""
    if isinstance(x, pd.DataFrame | pd.Series):
        x = x.to_numpy()
    if isinstance(x, np.ndarray):
        x = torch.from_numpy(np.ascontiguousarray(x))
    if not isinstance(x, torch.Tensor):
        raise TypeError(f"Unsupported data type: {type(x).__name__}")
    return x.to(dtype)


def split_inputs_targets(
    file: str | pd.DataFrame,
    label_column: str = "label",
    dtype: torch.dtype = torch.float64,
) -> tuple[torch.Tensor, torch.Tensor]:
    """Split a table into the flattened feature matrix and the label vector.

    Every column except ``label_column`` is a feature column, in table order. A ``.pt``
    file must hold a ``{"inputs": ..., "targets": ...}`` dict.
    """
    data = load_data(file)
    if isinstance(data, dict):
        return as_float_tensor(data["inputs"], dtype), as_float_tensor(data["targets"], dtype)
    if label_column not in data.columns:
        raise KeyError(f"Label column '{label_column}' not found in data")
    return as_float_tensor(data.drop(columns=[label_column]), dtype), as_float_tensor(data[label_column], dtype)


class CTRDataset(torch.utils.data.Dataset):
    """Rows of a flattened input matrix split into the four feature groups.

    Each sample is a dict with ``user_profile``, ``user_behavior``, ``item_feature``,
    ``context`` and, when targets are given, ``label`` of shape ``[1]``.
    """

    def __init__(
        self,
        inputs,
        sample_info: SampleInfo,
        targets=None,
        num_examples: int | None = None,
        dtype: torch.dtype = torch.float64,
    ) -> None:
        super().__init__()
        self.inputs = as_float_tensor(inputs, dtype)
        self.targets = as_float_tensor(targets, dtype).reshape(-1, 1) if targets is not None else None
        self.sample_info = sample_info

        if self.inputs.dim() != 2:
            raise ValueError(f"inputs must be a [N, F] matrix, got shape {tuple(self.inputs.shape)}")
        if self.inputs.shape[1] < sample_info.num_columns:
            raise ValueError(
                f"inputs have {self.inputs.shape[1]} columns but sample info needs {sample_info.num_columns}"
            )
        if self.targets is not None and len(self.targets) != len(self.inputs):
            raise ValueError(f"{len(self.inputs)} input rows but {len(self.targets)} targets")

        self.num_examples = len(self.inputs) if num_examples is None else min(num_examples, len(self.inputs))

    def __len__(self):
        return self.num_examples

    def __getitem__(self, index) -> dict[str, torch.Tensor]:
        sample = self.sample_info.split(self.inputs[index])
        if self.targets is not None:
            sample["label"] = self.targets[index]
        return sample


class CTRDataModule(L.LightningDataModule):
    """In-memory dataset of flattened samples.

    Batches are taken in row order and a trailing partial batch is dropped, so an
    epoch is exactly ``num_examples // batch_size`` batches of the same size.
    """

    def __init__(
        self,
        inputs,
        targets,
        sample_info: SampleInfo,
        batch_size: int,
        test_inputs=None,
        test_targets=None,
        num_examples: int | None = None,
        num_workers: int = 0,
        dtype: torch.dtype = torch.float64,
    ) -> None:
        super().__init__()
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.inputs = inputs
        self.targets = targets
        self.test_inputs = test_inputs
        self.test_targets = test_targets
        self.sample_info = sample_info
        self.batch_size = batch_size
        self.num_examples = num_examples
        self.num_workers = num_workers
        self.dtype = dtype

    @classmethod
    def from_file(
        cls,
        file: str | pd.DataFrame,
        sample_info: SampleInfo,
        batch_size: int,
        label_column: str = "label",
        test_file: str | pd.DataFrame | None = None,
        **kwargs,
    ) -> "CTRDataModule":
        inputs, targets = split_inputs_targets(file, label_column)
        test_inputs, test_targets = (
            split_inputs_targets(test_file, label_column) if test_file is not None else (None, None)
        )
        log.info(f"Loaded {len(inputs)} training rows with {inputs.shape[1]} columns.")
        return cls(inputs, targets, sample_info, batch_size, test_inputs, test_targets, **kwargs)

    def setup(self, stage: str | None = None) -> None:
        if stage in (None, "fit"):
            self.train_dataset = CTRDataset(
                self.inputs, self.sample_info, self.targets, self.num_examples, dtype=self.dtype
            )
            num_batches = len(self.train_dataset) // self.batch_size
            if num_batches == 0:
                raise ValueError(f"{len(self.train_dataset)} rows give no full batch of {self.batch_size}")
            log.info(f"Batches {num_batches}")

        if stage in (None, "test"):
            if self.test_inputs is None:
                if stage == "test":
                    raise ValueError("No test data was given to the datamodule.")
            else:
                self.test_dataset = CTRDataset(self.test_inputs, self.sample_info, self.test_targets, dtype=self.dtype)

        if stage == "predict":
            self.predict_dataset = CTRDataset(
                self.test_inputs if self.test_inputs is not None else self.inputs, self.sample_info, dtype=self.dtype
            )

    def _loader(self, dataset: CTRDataset) -> DataLoader:
        return DataLoader(
            dataset,
            batch_size=self.batch_size,
            shuffle=False,  # row order, for reproducibility
            drop_last=True,
            num_workers=self.num_workers,
        )

    def train_dataloader(self) -> DataLoader:
        return self._loader(self.train_dataset)

    def test_dataloader(self) -> DataLoader:
        return self._loader(self.test_dataset)

    def predict_dataloader(self) -> DataLoader:
        return self._loader(self.predict_dataset)
