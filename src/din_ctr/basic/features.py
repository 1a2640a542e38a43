import json

import torch

FEATURE_GROUPS = ("user_profile", "user_behavior", "item_feature", "context")


class FeatureRange:
    """A named, contiguous ``[start, end)`` block of columns in the flattened input matrix."""

    def __init__(self, name: str, start: int, end: int):
        if start < 0 or end < start:
            raise ValueError(f"Invalid column range [{start}, {end}) for feature '{name}'")
        self.name = name
        self.start = start
        self.end = end

    def __repr__(self):
        return f"<FeatureRange {self.name} columns [{self.start}, {self.end})>"

    def __eq__(self, other):
        if not isinstance(other, FeatureRange):
            return NotImplemented
        return (self.name, self.start, self.end) == (other.name, other.start, other.end)

    @property
    def dim(self) -> int:
        return self.end - self.start

    def slice(self, x: torch.Tensor) -> torch.Tensor:
        """Select this block from ``x`` of shape ``[..., F]``."""
        return x[..., self.start : self.end]


class SampleInfo:
    """Column layout of one sample: where each feature group lives in the input matrix.

    Parameters
    ----------
    user_profile, user_behavior, item_feature, context:
        ``(start, end)`` pairs, half-open.
    """

    def __init__(
        self,
        user_profile: tuple[int, int],
        user_behavior: tuple[int, int],
        item_feature: tuple[int, int],
        context: tuple[int, int],
    ):
        self.ranges = {
            "user_profile": FeatureRange("user_profile", *user_profile),
            "user_behavior": FeatureRange("user_behavior", *user_behavior),
            "item_feature": FeatureRange("item_feature", *item_feature),
            "context": FeatureRange("context", *context),
        }

    def __repr__(self):
        return f"<SampleInfo {list(self.ranges.values())}>"

    def __getitem__(self, name: str) -> FeatureRange:
        return self.ranges[name]

    @classmethod
    def from_dims(
        cls,
        profile_dim: int,
        behavior_size: int,
        behavior_dim: int,
        item_dim: int,
        ctx_dim: int,
    ) -> "SampleInfo":
        """Lay the groups out back to back: profile, behaviors, item, context."""
        widths = [profile_dim, behavior_size * behavior_dim, item_dim, ctx_dim]
        bounds = []
        start = 0
        for width in widths:
            bounds.append((start, start + width))
            start += width
        return cls(*bounds)

    @property
    def num_columns(self) -> int:
        return max(r.end for r in self.ranges.values())

    def split(self, x: torch.Tensor) -> dict[str, torch.Tensor]:
        """Slice every feature group out of ``x`` (``[F]`` or ``[B, F]``)."""
        return {name: r.slice(x) for name, r in self.ranges.items()}

    def to_dict(self) -> dict[str, list[int]]:
        return {name: [r.start, r.end] for name, r in self.ranges.items()}


def get_sample_info(file: str) -> SampleInfo:
    """Load a :class:`SampleInfo` from the ``sample_info.json`` written by ``make_synthetic``.

    Intended as a Hydra ``_target_`` so that the column layout can be declared in YAML.
    """
    with open(file) as f:
        configs = json.load(f)
    missing = [name for name in FEATURE_GROUPS if name not in configs]
    if missing:
        raise KeyError(f"sample info file {file} is missing feature groups {missing}")
    return SampleInfo(*(tuple(configs[name]) for name in FEATURE_GROUPS))
