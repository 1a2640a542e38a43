import torch


class RandomNormal:
    """Returns a parameter initialized with a normal distribution.

    Args:
        mean (float): the mean of the normal distribution
        std (float): the standard deviation of the normal distribution
    """

    def __init__(self, mean=0.0, std=1.0):
        self.mean = mean
        self.std = std

    def __repr__(self):
        return f"RandomNormal(mean={self.mean}, std={self.std})"

    def __call__(self, *shape, generator=None, dtype=None):
        weight = torch.randn(*shape, generator=generator, dtype=dtype)
        return torch.nn.Parameter(weight * self.std + self.mean)


class XavierNormal:
    """Returns a parameter initialized with the method described in
    `Understanding the difficulty of training deep feedforward neural networks`
    - Glorot, X. & Bengio, Y. (2010), using a normal distribution.

    Args:
        gain (float): stddev = gain*sqrt(2 / (fan_in + fan_out))
    """

    def __init__(self, gain=1.0):
        self.gain = gain

    def __repr__(self):
        return f"XavierNormal(gain={self.gain})"

    def __call__(self, fan_in, fan_out, generator=None, dtype=None):
        std = self.gain * (2.0 / (fan_in + fan_out)) ** 0.5
        weight = torch.randn(fan_in, fan_out, generator=generator, dtype=dtype)
        return torch.nn.Parameter(weight * std)
