import torch.nn as nn


def get_activation_layer(activation: str, negative_slope: float = 0.1) -> nn.Module:
    """Build an activation module by name.

    Args:
        activation (str): one of ``relu``, ``leaky_relu``, ``sigmoid`` or ``identity``.
        negative_slope (float): slope of the negative part, only used by ``leaky_relu``.
    """
    activation = activation.lower()
    if activation == "relu":
        return nn.ReLU()
    elif activation == "leaky_relu":
        return nn.LeakyReLU(negative_slope)
    elif activation == "sigmoid":
        return nn.Sigmoid()
    elif activation in ("identity", "linear"):
        return nn.Identity()
    raise ValueError(f"Activation {activation} not supported")
