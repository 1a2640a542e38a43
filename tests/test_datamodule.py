import pandas as pd
import pytest
import torch

from din_ctr.datamodules.ctr_datamodule import CTRDataModule, CTRDataset, split_inputs_targets


def test_dataset_splits_rows_by_sample_info(dataset, sample_info):
    inputs, targets = dataset
    ds = CTRDataset(inputs, sample_info, targets)
    sample = ds[3]

    assert len(ds) == 50
    assert set(sample) == {"user_profile", "user_behavior", "item_feature", "context", "label"}
    assert torch.equal(sample["user_behavior"], inputs[3, 3:11])
    assert torch.equal(sample["context"], inputs[3, 13:15])
    assert sample["label"].shape == (1,)


def test_dataset_validates_inputs(dataset, sample_info):
    inputs, targets = dataset
    with pytest.raises(ValueError, match="columns"):
        CTRDataset(inputs[:, :5], sample_info, targets)
    with pytest.raises(ValueError, match="targets"):
        CTRDataset(inputs, sample_info, targets[:10])


def test_train_loader_yields_full_batches_in_row_order(dataset, sample_info, batch_size):
    inputs, targets = dataset
    dm = CTRDataModule(inputs, targets, sample_info, batch_size=batch_size)
    dm.setup("fit")
    batches = list(dm.train_dataloader())

    assert len(batches) == 50 // batch_size
    assert all(b["user_profile"].shape == (batch_size, 3) for b in batches)
    assert all(b["label"].shape == (batch_size, 1) for b in batches)
    assert torch.equal(batches[1]["item_feature"], inputs[8:16, 11:13])
    assert torch.equal(batches[2]["label"].squeeze(1), targets[16:24])


def test_num_examples_limits_the_epoch(dataset, sample_info, batch_size):
    inputs, targets = dataset
    dm = CTRDataModule(inputs, targets, sample_info, batch_size=batch_size, num_examples=20)
    dm.setup("fit")
    assert len(dm.train_dataloader()) == 2


def test_test_stage_needs_test_data(dataset, sample_info, batch_size):
    inputs, targets = dataset
    dm = CTRDataModule(inputs, targets, sample_info, batch_size=batch_size)
    with pytest.raises(ValueError, match="No test data"):
        dm.setup("test")


def test_fit_stage_needs_one_full_batch(dataset, sample_info, batch_size):
    inputs, targets = dataset
    dm = CTRDataModule(inputs, targets, sample_info, batch_size=batch_size, num_examples=batch_size - 1)
    with pytest.raises(ValueError, match=f"{batch_size - 1} rows give no full batch of {batch_size}"):
        dm.setup("fit")


def test_batches_come_in_the_requested_dtype(dataset, sample_info, batch_size):
    inputs, targets = dataset
    dm = CTRDataModule(inputs.float(), targets.float(), sample_info, batch_size=batch_size)
    dm.setup("fit")
    assert all(x.dtype == torch.float64 for x in next(iter(dm.train_dataloader())).values())

    dm = CTRDataModule(inputs, targets, sample_info, batch_size=batch_size, dtype=torch.float32)
    dm.setup("fit")
    assert all(x.dtype == torch.float32 for x in next(iter(dm.train_dataloader())).values())


def test_rejects_non_positive_batch_size(dataset, sample_info):
    inputs, targets = dataset
    with pytest.raises(ValueError):
        CTRDataModule(inputs, targets, sample_info, batch_size=0)


def test_split_inputs_targets_from_dataframe():
    df = pd.DataFrame({"a": [0.1, 0.2], "label": [1, 0], "b": [0.3, 0.4]})
    inputs, targets = split_inputs_targets(df)
    assert inputs.dtype == targets.dtype == torch.float64
    assert inputs.tolist() == pytest.approx([[0.1, 0.3], [0.2, 0.4]])
    assert targets.tolist() == [1.0, 0.0]

    with pytest.raises(KeyError):
        split_inputs_targets(df, label_column="clicked")


def test_split_inputs_targets_from_pt_file(tmp_path, dataset):
    inputs, targets = dataset
    file = tmp_path / "data.pt"
    torch.save({"inputs": inputs, "targets": targets}, file)
    loaded_inputs, loaded_targets = split_inputs_targets(str(file))
    assert torch.equal(loaded_inputs, inputs)
    assert torch.equal(loaded_targets, targets)


def test_unsupported_file_type():
    with pytest.raises(ValueError):
        split_inputs_targets("data.json")
