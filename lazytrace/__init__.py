"""
lazytrace: lazy tensor IR with structural hashing and cached shape inference.

Traced operations become immutable nodes in a DAG. Every node carries a
64-bit structural hash, and output shapes are inferred once per distinct
subgraph through a bounded shape cache.

Usage:
    import torch
    from lazytrace import Shape, TraceSession
    from lazytrace.ops import DeviceData, SmoothL1LossBackward

    with TraceSession():
        x = DeviceData(Shape(torch.float32, (8, 4)), handle=0)
        y = DeviceData(Shape(torch.float32, (8, 4)), handle=1)
        g = DeviceData(Shape(torch.float32, ()), handle=2)
        grad = SmoothL1LossBackward(g, x, y, reduction='mean', beta=0.5)
        print(grad)   # f32[8,4] aten::smooth_l1_loss_backward, reduction=mean, beta=0.5
"""

import logging

from .config import (
    LazyTraceConfig,
    IRConfig,
    LoggingConfig,
    LogLevel,
    configure_logging,
    get_config,
    set_config,
    load_config,
)
from .core import *  # noqa: F401,F403
from .core import __all__ as _core_all

__version__ = "0.1.0"

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "LazyTraceConfig",
    "IRConfig",
    "LoggingConfig",
    "LogLevel",
    "configure_logging",
    "get_config",
    "set_config",
    "load_config",
] + list(_core_all)
