from typing import Optional, Sequence

from ..core.hashing import hash_values
from ..core.node import Operand, ShapedNode, expect_operand_count
from ..core.shape import Shape
from ..core.shape_cache import ShapeCache
from ..core.shape_inference import infer_with_meta, resolve_torch_op
from . import op_kinds


class LogSoftmaxBackward(ShapedNode):
    """
    Gradient of log-softmax along ``dim``.

    Operands are ``(grad_output, output, self)``; ``self`` only contributes
    its dtype. The shape comes from running the aten backward kernel on meta
    tensors.
    """

    def __init__(self, grad_output: Operand, output: Operand, dim: int,
                 self_input: Operand, shape_cache: Optional[ShapeCache] = None):
        dim = int(dim)
        super().__init__(op_kinds.LOG_SOFTMAX_BACKWARD,
                         [grad_output, output, self_input],
                         hash_seed=hash_values(dim), shape_cache=shape_cache)
        self._dim = dim
        self.set_shape_deferred(self._infer_shape)

    @property
    def dim(self) -> int:
        return self._dim

    def _infer_shape(self) -> Shape:
        grad_output, output, self_input = (o.shape() for o in self.operands)
        fn = resolve_torch_op(self.op)
        return infer_with_meta(fn, grad_output, output, self._dim,
                               self_input.element_type, op=self.op)

    def clone(self, operands: Sequence[Operand]) -> 'LogSoftmaxBackward':
        grad_output, output, self_input = expect_operand_count(self.op, operands, 3)
        return LogSoftmaxBackward(grad_output, output, self._dim, self_input,
                                  shape_cache=self.shape_cache)

    def to_string(self) -> str:
        return f"{super().to_string()}, dim={self._dim}"
