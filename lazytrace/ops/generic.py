from typing import Callable, Iterable, List, Optional, Sequence

from ..core.exceptions import InvalidArgumentError
from ..core.node import (
    DEFAULT_HASH_SEED,
    Operand,
    ShapeFn,
    ShapedNode,
    Value,
    as_value,
    get_shape_from_value,
)
from ..core.op_kind import OpKind
from ..core.shape import Shape
from ..core.shape_cache import ShapeCache

ShapeRule = Callable[[Sequence[Shape]], Shape]


def _operand_shapes(values: Iterable[Value]) -> List[Optional[Shape]]:
    return [get_shape_from_value(v).unwrap_or(None) for v in values]


class Generic(ShapedNode):
    """
    Node for ops without a dedicated variant.

    Scalar parameters must be folded into ``hash_seed`` by the caller. The
    shape comes from one of:

    - ``shape``: fixed at construction
    - ``shape_fn``: resolved once through the shape cache
    - ``shape_rule``: a function of the operand shapes, resolved through the
      shape cache and re-run by ``clone``

    Without a ``shape_rule``, cloning a shaped node over operands whose
    shapes differ raises InvalidArgumentError, since the old shape may no
    longer hold. An unshaped node clones to an unshaped node.
    """

    def __init__(self, op: OpKind, operands: Sequence[Operand] = (),
                 shape: Optional[Shape] = None, num_outputs: int = 1,
                 hash_seed: int = DEFAULT_HASH_SEED,
                 shape_fn: Optional[ShapeFn] = None,
                 shape_rule: Optional[ShapeRule] = None,
                 shape_cache: Optional[ShapeCache] = None):
        if shape_rule is not None and (shape is not None or shape_fn is not None):
            raise InvalidArgumentError(
                "shape_rule cannot be combined with shape or shape_fn",
                context={'op': op},
            )
        super().__init__(op, operands, shape=shape, num_outputs=num_outputs,
                         hash_seed=hash_seed, shape_fn=shape_fn,
                         shape_cache=shape_cache)
        self._hash_seed = hash_seed
        self._shape_rule = shape_rule
        if shape_rule is not None:
            self.set_shape_deferred(
                lambda: shape_rule([v.shape() for v in self.operand_values])
            )

    @property
    def hash_seed(self) -> int:
        return self._hash_seed

    @property
    def shape_rule(self) -> Optional[ShapeRule]:
        return self._shape_rule

    def clone(self, operands: Sequence[Operand]) -> 'Generic':
        if self._shape_rule is not None:
            return Generic(self.op, operands, num_outputs=self.num_outputs,
                           hash_seed=self._hash_seed, shape_rule=self._shape_rule,
                           shape_cache=self.shape_cache)

        shape = None
        if self.has_shape:
            values = [as_value(o) for o in operands]
            if _operand_shapes(values) != _operand_shapes(self.operand_values):
                raise InvalidArgumentError(
                    "Operand shapes changed; Generic needs a shape_rule to be cloned over them",
                    context={'op': self.op},
                )
            shape = self.shape()
            operands = values
        return Generic(self.op, operands, shape=shape, num_outputs=self.num_outputs,
                       hash_seed=self._hash_seed, shape_cache=self.shape_cache)
