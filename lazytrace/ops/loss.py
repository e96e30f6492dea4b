"""
Loss nodes.

Backward nodes produce the gradient with respect to the loss input, so their
shape is the input's. Every loss carries its reduction mode and any scalar
hyper-parameter in its node hash.
"""

import functools
from typing import Optional, Sequence

import torch

from ..core.exceptions import InvalidArgumentError, ShapeInferenceError
from ..core.hashing import hash_values
from ..core.node import Operand, ShapedNode, expect_operand_count
from ..core.op_kind import OpKind
from ..core.shape import Shape
from ..core.shape_cache import ShapeCache
from . import op_kinds
from .reduction import ReductionMode


class LossBackward(ShapedNode):
    """
    Common base of loss backward nodes.

    Operands start with ``(grad_output, input, target)``; the result has the
    shape of ``input`` and requires ``target`` to match it.
    """

    def __init__(self, op: OpKind, operands: Sequence[Operand],
                 reduction, *scalars, shape_cache: Optional[ShapeCache] = None):
        reduction = ReductionMode.coerce(reduction)
        super().__init__(op, operands,
                         hash_seed=hash_values(int(reduction), *scalars),
                         shape_cache=shape_cache)
        self._reduction = reduction
        self.set_shape_deferred(self._infer_shape)

    @property
    def reduction(self) -> ReductionMode:
        return self._reduction

    def _infer_shape(self) -> Shape:
        input_shape = self.operand(1).shape()
        target_shape = self.operand(2).shape()
        if input_shape.dimensions != target_shape.dimensions:
            raise ShapeInferenceError(
                "Loss target must have the same shape as its input",
                context={'op': self.op, 'input': input_shape, 'target': target_shape},
            )
        return input_shape

    def to_string(self) -> str:
        return f"{super().to_string()}, reduction={self._reduction.name.lower()}"


class BinaryCrossEntropyBackward(LossBackward):
    """Gradient of binary cross entropy; ``weight`` is an optional fourth operand."""

    def __init__(self, grad_output: Operand, logits: Operand, labels: Operand,
                 weight: Optional[Operand] = None,
                 reduction=ReductionMode.MEAN,
                 shape_cache: Optional[ShapeCache] = None):
        operands = [grad_output, logits, labels]
        if weight is not None:
            operands.append(weight)
        super().__init__(op_kinds.BINARY_CROSS_ENTROPY_BACKWARD, operands, reduction,
                         shape_cache=shape_cache)

    @property
    def has_weight(self) -> bool:
        return len(self.operands) > 3

    def clone(self, operands: Sequence[Operand]) -> 'BinaryCrossEntropyBackward':
        expect_operand_count(self.op, operands, 3, 4)
        weight = operands[3] if len(operands) == 4 else None
        return BinaryCrossEntropyBackward(operands[0], operands[1], operands[2],
                                          weight, self.reduction,
                                          shape_cache=self.shape_cache)


class SmoothL1LossBackward(LossBackward):
    """Gradient of smooth L1 loss; ``beta`` must be non-negative."""

    def __init__(self, grad_output: Operand, input: Operand, target: Operand,
                 reduction=ReductionMode.MEAN, beta: float = 1.0,
                 shape_cache: Optional[ShapeCache] = None):
        beta = float(beta)
        if beta < 0:
            raise InvalidArgumentError(
                "smooth_l1_loss does not support negative values for beta",
                context={'beta': beta},
            )
        super().__init__(op_kinds.SMOOTH_L1_LOSS_BACKWARD,
                         [grad_output, input, target], reduction, beta,
                         shape_cache=shape_cache)
        self._beta = beta

    @property
    def beta(self) -> float:
        return self._beta

    def clone(self, operands: Sequence[Operand]) -> 'SmoothL1LossBackward':
        return SmoothL1LossBackward(
            *expect_operand_count(self.op, operands, 3),
            reduction=self.reduction, beta=self._beta,
            shape_cache=self.shape_cache,
        )

    def to_string(self) -> str:
        return f"{super().to_string()}, beta={self._beta}"


class HuberLossBackward(LossBackward):
    """Gradient of Huber loss; ``delta`` must be positive."""

    def __init__(self, grad_output: Operand, input: Operand, target: Operand,
                 reduction=ReductionMode.MEAN, delta: float = 1.0,
                 shape_cache: Optional[ShapeCache] = None):
        delta = float(delta)
        if delta <= 0:
            raise InvalidArgumentError(
                "huber_loss does not support non-positive values for delta",
                context={'delta': delta},
            )
        super().__init__(op_kinds.HUBER_LOSS_BACKWARD,
                         [grad_output, input, target], reduction, delta,
                         shape_cache=shape_cache)
        self._delta = delta

    @property
    def delta(self) -> float:
        return self._delta

    def clone(self, operands: Sequence[Operand]) -> 'HuberLossBackward':
        return HuberLossBackward(
            *expect_operand_count(self.op, operands, 3),
            reduction=self.reduction, delta=self._delta,
            shape_cache=self.shape_cache,
        )

    def to_string(self) -> str:
        return f"{super().to_string()}, delta={self._delta}"


class SoftMarginLossBackward(LossBackward):
    """Gradient of soft margin loss."""

    def __init__(self, grad_output: Operand, input: Operand, target: Operand,
                 reduction=ReductionMode.MEAN,
                 shape_cache: Optional[ShapeCache] = None):
        super().__init__(op_kinds.SOFT_MARGIN_LOSS_BACKWARD,
                         [grad_output, input, target], reduction,
                         shape_cache=shape_cache)

    def clone(self, operands: Sequence[Operand]) -> 'SoftMarginLossBackward':
        return SoftMarginLossBackward(
            *expect_operand_count(self.op, operands, 3),
            reduction=self.reduction,
            shape_cache=self.shape_cache,
        )


class MarginRankingLoss(ShapedNode):
    """
    Forward margin ranking loss over ``(input1, input2, target)``.

    Unreduced, the result has the broadcast shape of the three operands;
    reduced, it is a rank-0 value. The dtype promotes over all three
    operands, target included.
    """

    def __init__(self, input1: Operand, input2: Operand, target: Operand,
                 margin: float = 0.0, reduction=ReductionMode.MEAN,
                 shape_cache: Optional[ShapeCache] = None):
        reduction = ReductionMode.coerce(reduction)
        margin = float(margin)
        super().__init__(op_kinds.MARGIN_RANKING_LOSS, [input1, input2, target],
                         hash_seed=hash_values(margin, int(reduction)),
                         shape_cache=shape_cache)
        self._margin = margin
        self._reduction = reduction
        self.set_shape_deferred(self._infer_shape)

    @property
    def margin(self) -> float:
        return self._margin

    @property
    def reduction(self) -> ReductionMode:
        return self._reduction

    def _infer_shape(self) -> Shape:
        shapes = [o.shape() for o in self.operands]
        dtype = functools.reduce(torch.promote_types, (s.element_type for s in shapes))
        if self._reduction != ReductionMode.NONE:
            return Shape(dtype, ())
        try:
            dims = torch.broadcast_shapes(*(s.dimensions for s in shapes))
        except RuntimeError as e:
            raise ShapeInferenceError(
                f"Operands do not broadcast: {e}",
                context={'op': self.op, 'shapes': [str(s) for s in shapes]},
            ) from e
        return Shape(dtype, tuple(dims))

    def clone(self, operands: Sequence[Operand]) -> 'MarginRankingLoss':
        return MarginRankingLoss(
            *expect_operand_count(self.op, operands, 3),
            margin=self._margin, reduction=self._reduction,
            shape_cache=self.shape_cache,
        )

    def to_string(self) -> str:
        return (f"{super().to_string()}, margin={self._margin}, "
                f"reduction={self._reduction.name.lower()}")
