"""Built-in node variants."""

from . import op_kinds
from .reduction import ReductionMode
from .leaf import DeviceData, Constant, Scalar
from .generic import Generic
from .loss import (
    LossBackward,
    BinaryCrossEntropyBackward,
    SmoothL1LossBackward,
    HuberLossBackward,
    SoftMarginLossBackward,
    MarginRankingLoss,
)
from .pooling import MaxPoolNd, MaxUnpoolNdBackward, pooling_output_size
from .softmax import LogSoftmaxBackward
from .normalization import NativeBatchNormBackward

__all__ = [
    "op_kinds",
    "ReductionMode",
    "DeviceData",
    "Constant",
    "Scalar",
    "Generic",
    "LossBackward",
    "BinaryCrossEntropyBackward",
    "SmoothL1LossBackward",
    "HuberLossBackward",
    "SoftMarginLossBackward",
    "MarginRankingLoss",
    "MaxPoolNd",
    "MaxUnpoolNdBackward",
    "pooling_output_size",
    "LogSoftmaxBackward",
    "NativeBatchNormBackward",
]
