from typing import Optional, Sequence

from ..core.exceptions import InvalidArgumentError, ShapeInferenceError
from ..core.hashing import hash_values
from ..core.node import Operand, ShapedNode, expect_operand_count
from ..core.shape import Shape
from ..core.shape_cache import ShapeCache
from . import op_kinds


class NativeBatchNormBackward(ShapedNode):
    """
    Gradient of batch norm with respect to input, weight and bias.

    Outputs are ``(grad_input, grad_weight, grad_bias)``: grad_input has the
    input's shape, the other two are ``[C]`` with C the channel dimension
    (dimension 1) of the input. ``running_mean``/``running_var`` are either
    both given or both omitted.
    """

    def __init__(self, grad_out: Operand, input: Operand, weight: Operand,
                 save_mean: Operand, save_invstd: Operand,
                 running_mean: Optional[Operand] = None,
                 running_var: Optional[Operand] = None,
                 training: bool = True, eps: float = 1e-5,
                 shape_cache: Optional[ShapeCache] = None):
        operands = [grad_out, input, weight, save_mean, save_invstd]
        if (running_mean is None) != (running_var is None):
            raise InvalidArgumentError(
                "running_mean and running_var must be given together",
                context={'running_mean': running_mean is not None,
                         'running_var': running_var is not None},
            )
        if running_mean is not None:
            operands += [running_mean, running_var]
        training = bool(training)
        eps = float(eps)
        super().__init__(op_kinds.NATIVE_BATCH_NORM_BACKWARD, operands,
                         num_outputs=3, hash_seed=hash_values(training, eps),
                         shape_cache=shape_cache)
        self._training = training
        self._eps = eps
        self.set_shape_deferred(self._infer_shape)

    @property
    def training(self) -> bool:
        return self._training

    @property
    def eps(self) -> float:
        return self._eps

    @property
    def has_running_stats(self) -> bool:
        return len(self.operands) == 7

    def _infer_shape(self) -> Shape:
        input_shape = self.operand(1).shape()
        if input_shape.rank < 2:
            raise ShapeInferenceError(
                "batch norm expects an input with a channel dimension",
                context={'input': input_shape},
            )
        channels = Shape(input_shape.element_type, (input_shape.dimensions[1],))
        return Shape.make_tuple([input_shape, channels, channels])

    def clone(self, operands: Sequence[Operand]) -> 'NativeBatchNormBackward':
        operands = expect_operand_count(self.op, operands, 5, 7)
        return NativeBatchNormBackward(*operands[:5], *operands[5:],
                                       training=self._training, eps=self._eps,
                                       shape_cache=self.shape_cache)

    def to_string(self) -> str:
        return f"{super().to_string()}, training={self._training}, eps={self._eps}"
