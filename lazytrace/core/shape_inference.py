"""
Shape inference through meta tensors.

Meta tensors carry shape and dtype but no storage, so running the real
operator on them yields the output shape without touching data. This is the
default ``shape_fn`` building block for node variants whose output shape is
not a simple static rule.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

import torch

from .exceptions import ShapeInferenceError
from .op_kind import OpKind
from .shape import Shape

logger = logging.getLogger(__name__)


def resolve_torch_op(op: OpKind) -> Callable:
    """Look up ``torch.ops.<namespace>.<op_name>`` for an OpKind."""
    try:
        namespace = getattr(torch.ops, op.namespace)
        return getattr(namespace, op.op_name)
    except (AttributeError, RuntimeError) as e:
        raise ShapeInferenceError(
            f"No torch operator registered for {op}", context={'op': op}
        ) from e


def _to_meta(arg: Any) -> Any:
    if isinstance(arg, Shape):
        return arg.to_meta_tensor()
    if isinstance(arg, (list, tuple)) and any(isinstance(a, Shape) for a in arg):
        return type(arg)(_to_meta(a) for a in arg)
    return arg


def infer_with_meta(fn: Callable, *args: Any, op: Optional[OpKind] = None,
                    **kwargs: Any) -> Shape:
    """
    Run ``fn`` on meta tensors and return the Shape of its result.

    Every ``Shape`` among ``args``/``kwargs`` is replaced by an empty meta
    tensor of that shape; other arguments pass through. Failures of the
    operator are raised as ShapeInferenceError.
    """
    meta_args = [_to_meta(a) for a in args]
    meta_kwargs = {k: _to_meta(v) for k, v in kwargs.items()}
    try:
        with torch.no_grad():
            result = fn(*meta_args, **meta_kwargs)
    except ShapeInferenceError:
        raise
    except Exception as e:
        logger.debug(f"Meta tensor inference failed for {op or fn}: {e}")
        raise ShapeInferenceError(
            f"Meta tensor inference failed: {e}",
            context={'op': op or getattr(fn, '__name__', repr(fn))},
        ) from e

    if isinstance(result, torch.Tensor) or (
            isinstance(result, (list, tuple)) and result
            and all(isinstance(r, torch.Tensor) for r in result)):
        return Shape.from_result(result)
    raise ShapeInferenceError(
        "Operator did not return tensors",
        context={'op': op, 'returned': type(result).__name__},
    )


def meta_shape_rule(op: OpKind, *args: Any,
                    **kwargs: Any) -> Callable[[Sequence[Shape]], Shape]:
    """
    Build a ``shape_rule`` over operand shapes that runs ``op`` on meta
    tensors, with the scalar ``args`` after the operands.

    Unlike a ``shape_fn`` the rule can be re-run when a node is cloned over
    new operands.
    """
    def shape_rule(operand_shapes: Sequence[Shape]) -> Shape:
        fn = resolve_torch_op(op)
        return infer_with_meta(fn, *operand_shapes, *args, op=op, **kwargs)

    return shape_rule


def meta_shape_fn(op: OpKind, operand_shapes: Sequence[Shape],
                  *args: Any, **kwargs: Any) -> Callable[[], Shape]:
    """
    Build a deferred ``shape_fn`` that runs ``op`` on meta tensors.

    ``operand_shapes`` become the leading positional arguments, followed by
    the scalar ``args``.
    """
    operand_shapes = tuple(operand_shapes)
    shape_rule = meta_shape_rule(op, *args, **kwargs)
    return lambda: shape_rule(operand_shapes)


__all__ = ['resolve_torch_op', 'infer_with_meta', 'meta_shape_rule', 'meta_shape_fn']
