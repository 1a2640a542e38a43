from din_ctr.models.base import CTRModel, DimensionMismatchError, ShapeError
from din_ctr.models.ranking.din import DIN
from din_ctr.models.ranking.simple_mlp import SimpleMLP

__all__ = ["CTRModel", "DIN", "DimensionMismatchError", "ShapeError", "SimpleMLP"]
