"""Well-known operation kinds used by the built-in node variants."""

from ..core.op_kind import OpKind

ATEN = "aten"
PRIM = "prim"
LTC = "ltc"

# Leaves
DEVICE_DATA = OpKind(LTC, "device_data")
CONSTANT = OpKind(PRIM, "Constant")
SCALAR = OpKind(PRIM, "scalar")

# Losses
BINARY_CROSS_ENTROPY_BACKWARD = OpKind(ATEN, "binary_cross_entropy_backward")
SMOOTH_L1_LOSS_BACKWARD = OpKind(ATEN, "smooth_l1_loss_backward")
HUBER_LOSS_BACKWARD = OpKind(ATEN, "huber_loss_backward")
SOFT_MARGIN_LOSS_BACKWARD = OpKind(ATEN, "soft_margin_loss_backward")
MARGIN_RANKING_LOSS = OpKind(ATEN, "margin_ranking_loss")

# Pooling
MAX_POOL2D_WITH_INDICES = OpKind(ATEN, "max_pool2d_with_indices")
MAX_POOL3D_WITH_INDICES = OpKind(ATEN, "max_pool3d_with_indices")
MAX_UNPOOL2D_BACKWARD = OpKind(ATEN, "max_unpool2d_backward")
MAX_UNPOOL3D_BACKWARD = OpKind(ATEN, "max_unpool3d_backward")

# Softmax
LOG_SOFTMAX_BACKWARD = OpKind(ATEN, "_log_softmax_backward_data")

# Normalization
NATIVE_BATCH_NORM_BACKWARD = OpKind(ATEN, "native_batch_norm_backward")


def max_pool_kind(spatial_dim_count: int) -> OpKind:
    return {2: MAX_POOL2D_WITH_INDICES, 3: MAX_POOL3D_WITH_INDICES}[spatial_dim_count]


def max_unpool_backward_kind(spatial_dim_count: int) -> OpKind:
    return {2: MAX_UNPOOL2D_BACKWARD, 3: MAX_UNPOOL3D_BACKWARD}[spatial_dim_count]
