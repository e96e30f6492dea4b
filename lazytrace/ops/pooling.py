"""
Max pooling nodes.

``MaxPoolNd`` has two outputs (pooled values and int64 indices) described by
a tuple shape; ``MaxUnpoolNdBackward`` routes gradients back to the
pre-unpool input and so has that input's shape.
"""

from typing import Optional, Sequence, Tuple, Union

import torch

from ..core.exceptions import InvalidArgumentError, ShapeInferenceError
from ..core.hashing import hash_values
from ..core.node import Operand, ShapedNode, expect_operand_count
from ..core.shape import DYNAMIC, Shape
from ..core.shape_cache import ShapeCache
from . import op_kinds

IntOrTuple = Union[int, Sequence[int]]


def _expand(name: str, value: IntOrTuple, n: int) -> Tuple[int, ...]:
    if isinstance(value, int):
        return (value,) * n
    value = tuple(int(v) for v in value)
    if len(value) == 1:
        return value * n
    if len(value) != n:
        raise InvalidArgumentError(
            f"{name} must have 1 or {n} elements", context={name: value}
        )
    return value


def pooling_output_size(input_size: int, kernel_size: int, stride: int,
                        padding: int, ceil_mode: bool) -> int:
    """Output extent of one pooled dimension (dilation 1)."""
    if input_size == DYNAMIC:
        return DYNAMIC
    numerator = input_size + 2 * padding - kernel_size + (stride - 1 if ceil_mode else 0)
    out = numerator // stride + 1
    if ceil_mode and (out - 1) * stride >= input_size + padding:
        out -= 1
    return out


class MaxPoolNd(ShapedNode):
    """Max pooling over the trailing ``spatial_dim_count`` dimensions."""

    def __init__(self, input: Operand, spatial_dim_count: int,
                 kernel_size: IntOrTuple, stride: IntOrTuple = None,
                 padding: IntOrTuple = 0, ceil_mode: bool = False,
                 shape_cache: Optional[ShapeCache] = None):
        if spatial_dim_count not in (2, 3):
            raise InvalidArgumentError(
                "MaxPoolNd supports 2 or 3 spatial dimensions",
                context={'spatial_dim_count': spatial_dim_count},
            )
        n = spatial_dim_count
        kernel_size = _expand('kernel_size', kernel_size, n)
        stride = _expand('stride', stride if stride is not None else kernel_size, n)
        padding = _expand('padding', padding, n)
        if any(k <= 0 for k in kernel_size) or any(s <= 0 for s in stride):
            raise InvalidArgumentError(
                "kernel_size and stride must be positive",
                context={'kernel_size': kernel_size, 'stride': stride},
            )
        if any(p < 0 or p > k // 2 for p, k in zip(padding, kernel_size)):
            raise InvalidArgumentError(
                "padding must be non-negative and at most half the kernel size",
                context={'padding': padding, 'kernel_size': kernel_size},
            )
        ceil_mode = bool(ceil_mode)

        super().__init__(op_kinds.max_pool_kind(n), [input], num_outputs=2,
                         hash_seed=hash_values(n, kernel_size, stride, padding, ceil_mode),
                         shape_cache=shape_cache)
        self._spatial_dim_count = n
        self._kernel_size = kernel_size
        self._stride = stride
        self._padding = padding
        self._ceil_mode = ceil_mode
        self.set_shape_deferred(self._infer_shape)

    @property
    def spatial_dim_count(self) -> int:
        return self._spatial_dim_count

    @property
    def kernel_size(self) -> Tuple[int, ...]:
        return self._kernel_size

    @property
    def stride(self) -> Tuple[int, ...]:
        return self._stride

    @property
    def padding(self) -> Tuple[int, ...]:
        return self._padding

    @property
    def ceil_mode(self) -> bool:
        return self._ceil_mode

    def _infer_shape(self) -> Shape:
        input_shape = self.operand(0).shape()
        n = self._spatial_dim_count
        if input_shape.rank not in (n + 1, n + 2):
            raise ShapeInferenceError(
                f"max_pool{n}d expects a {n + 1}D or {n + 2}D input",
                context={'input': input_shape},
            )
        dims = input_shape.dimensions
        spatial = tuple(
            pooling_output_size(d, k, s, p, self._ceil_mode)
            for d, k, s, p in zip(dims[-n:], self._kernel_size, self._stride, self._padding)
        )
        if any(d != DYNAMIC and d <= 0 for d in spatial):
            raise ShapeInferenceError(
                "Pooling output is empty",
                context={'input': input_shape, 'kernel_size': self._kernel_size},
            )
        out_dims = dims[:-n] + spatial
        return Shape.make_tuple([
            Shape(input_shape.element_type, out_dims),
            Shape(torch.int64, out_dims),
        ])

    def clone(self, operands: Sequence[Operand]) -> 'MaxPoolNd':
        (input,) = expect_operand_count(self.op, operands, 1)
        return MaxPoolNd(input, self._spatial_dim_count, self._kernel_size,
                         self._stride, self._padding, self._ceil_mode,
                         shape_cache=self.shape_cache)

    def to_string(self) -> str:
        return (f"{super().to_string()}, spatial_dim_count={self._spatial_dim_count}, "
                f"kernel_size={list(self._kernel_size)}, stride={list(self._stride)}, "
                f"padding={list(self._padding)}, ceil_mode={self._ceil_mode}")


class MaxUnpoolNdBackward(ShapedNode):
    """Gradient of max unpooling with respect to its input."""

    def __init__(self, grad_output: Operand, input: Operand, indices: Operand,
                 output_size: Sequence[int], shape_cache: Optional[ShapeCache] = None):
        output_size = tuple(int(s) for s in output_size)
        if len(output_size) not in (2, 3):
            raise InvalidArgumentError(
                "output_size must have 2 or 3 elements",
                context={'output_size': output_size},
            )
        if any(s <= 0 for s in output_size):
            raise InvalidArgumentError(
                "output_size must be positive", context={'output_size': output_size}
            )
        super().__init__(op_kinds.max_unpool_backward_kind(len(output_size)),
                         [grad_output, input, indices],
                         hash_seed=hash_values(output_size), shape_cache=shape_cache)
        self._output_size = output_size
        self.set_shape_deferred(self._infer_shape)

    @property
    def output_size(self) -> Tuple[int, ...]:
        return self._output_size

    def _infer_shape(self) -> Shape:
        input_shape = self.operand(1).shape()
        indices_shape = self.operand(2).shape()
        if indices_shape.dimensions != input_shape.dimensions:
            raise ShapeInferenceError(
                "indices must have the shape of input",
                context={'input': input_shape, 'indices': indices_shape},
            )
        return input_shape

    def clone(self, operands: Sequence[Operand]) -> 'MaxUnpoolNdBackward':
        grad_output, input, indices = expect_operand_count(self.op, operands, 3)
        return MaxUnpoolNdBackward(grad_output, input, indices, self._output_size,
                                   shape_cache=self.shape_cache)

    def to_string(self) -> str:
        return f"{super().to_string()}, output_size={list(self._output_size)}"
