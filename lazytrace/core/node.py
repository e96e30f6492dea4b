"""
IR nodes and the edges between them.

A trace is a DAG built bottom-up: every node is constructed from operands
that already exist, so cycles cannot form. Each node carries two hashes
computed once at construction:

- ``node_hash``: the op kind combined with the op's scalar parameters
  (``hash_seed``). Independent of the operands.
- ``dag_hash``: ``node_hash`` folded with the hash of every operand, in
  operand order. Structurally identical subgraphs get equal dag hashes,
  which is what ``hash()`` returns and what the shape cache is keyed by.

``ShapedNode`` adds an output Shape that is either given eagerly or resolved
once through ``set_shape_deferred`` and the shape cache.
"""

from __future__ import annotations

import abc
import logging
import weakref
from typing import Callable, Optional, Sequence, Tuple, Type, TypeVar, Union

from .exceptions import (
    InvalidArgumentError,
    Result,
    ShapeInferenceError,
    TypeMismatchError,
)
from .hashing import fold_hashes, hash_combine, hash_value
from .metadata import NodeMetadata, capture_metadata
from .op_kind import OpKind
from .shape import Shape
from .shape_cache import ShapeCache

logger = logging.getLogger(__name__)

DEFAULT_HASH_SEED = 0x5A2D296E9

ShapeFn = Callable[[], Shape]
N = TypeVar('N', bound='Node')


def _check_output_index(node: 'Node', index: int) -> None:
    if not isinstance(node, Node):
        raise InvalidArgumentError(
            "Edges must reference a Node", context={'node': repr(node)}
        )
    if not isinstance(index, int) or isinstance(index, bool):
        raise InvalidArgumentError(
            "Output index must be an integer", context={'index': repr(index)}
        )
    if not 0 <= index < node.num_outputs:
        raise InvalidArgumentError(
            "Output index out of range",
            context={'index': index, 'num_outputs': node.num_outputs, 'op': node.op},
        )


class Output:
    """
    Non-owning reference to one output slot of a node.

    Holding an Output does not keep its node alive; the node lives as long
    as some Value or user node owns it.
    """

    __slots__ = ('_node_ref', '_node_id', 'index')

    def __init__(self, node: 'Node', index: int = 0):
        _check_output_index(node, index)
        self._node_ref = weakref.ref(node)
        self._node_id = id(node)
        self.index = index

    @property
    def node(self) -> 'Node':
        node = self._node_ref()
        if node is None:
            raise InvalidArgumentError(
                "Output refers to a node that has been released",
                context={'index': self.index},
            )
        return node

    def hash(self) -> int:
        return hash_combine(self.node.hash(), self.index)

    def shape(self) -> Shape:
        """Shape of this output slot; raises TypeMismatchError if unshaped."""
        return get_shape_from_output(self).unwrap()

    def __eq__(self, other):
        # Valid after the node is released
        if isinstance(other, Output):
            return self._node_ref == other._node_ref and self.index == other.index
        if isinstance(other, Value):
            return self._node_ref() is other.node and self.index == other.index
        return NotImplemented

    def __hash__(self):
        return hash((self._node_id, self.index))

    def __repr__(self):
        node = self._node_ref()
        target = node.op if node is not None else '<released>'
        return f"Output({target}, index={self.index})"


class Value:
    """Owning reference to one output slot of a node; used to wire operands."""

    __slots__ = ('node', 'index')

    def __init__(self, node: 'Node', index: int = 0):
        _check_output_index(node, index)
        self.node = node
        self.index = index

    def hash(self) -> int:
        return hash_combine(self.node.hash(), self.index)

    def shape(self) -> Shape:
        return get_shape_from_value(self).unwrap()

    def to_output(self) -> Output:
        return Output(self.node, self.index)

    def __eq__(self, other):
        if isinstance(other, Output):
            return other == self
        if not isinstance(other, Value):
            return NotImplemented
        return self.node is other.node and self.index == other.index

    def __hash__(self):
        return hash((id(self.node), self.index))

    def __repr__(self):
        return f"Value({self.node.op}, index={self.index})"


Operand = Union[Value, Output, 'Node']


def as_value(operand: Operand) -> Value:
    """Normalize an operand given as Value, Output or single-output Node."""
    if isinstance(operand, Value):
        return operand
    if isinstance(operand, Output):
        return Value(operand.node, operand.index)
    if isinstance(operand, Node):
        return Value(operand, 0)
    raise InvalidArgumentError(
        "Operands must be Value, Output or Node", context={'operand': repr(operand)}
    )


def expect_operand_count(op: OpKind, operands: Sequence[Operand],
                         *counts: int) -> Sequence[Operand]:
    """Return ``operands`` unchanged if its length is one of ``counts``."""
    if len(operands) not in counts:
        raise InvalidArgumentError(
            f"{op} takes {' or '.join(str(c) for c in counts)} operands",
            context={'op': op, 'num_operands': len(operands)},
        )
    return operands


class Node(abc.ABC):
    """
    Base DAG vertex.

    Operands, output count, hashes and metadata are fixed at construction.
    Subclasses supply ``clone`` so graph passes can rebuild a node over new
    operands without knowing its scalar parameters.
    """

    def __init__(self, op: OpKind, operands: Sequence[Operand] = (),
                 num_outputs: int = 1, hash_seed: int = DEFAULT_HASH_SEED,
                 node_hash: Optional[int] = None,
                 metadata: Optional[NodeMetadata] = None):
        if not isinstance(op, OpKind):
            raise InvalidArgumentError("op must be an OpKind", context={'op': repr(op)})
        if not isinstance(num_outputs, int) or num_outputs <= 0:
            raise InvalidArgumentError(
                "num_outputs must be a positive integer",
                context={'op': op, 'num_outputs': num_outputs},
            )

        values = tuple(as_value(o) for o in operands)

        self._op = op
        self._num_outputs = num_outputs
        self._operand_values: Tuple[Value, ...] = values
        self._operands: Tuple[Output, ...] = tuple(v.to_output() for v in values)

        if node_hash is None:
            self._node_hash = hash_combine(op.hash_value(), hash_seed)
            self._dag_hash = hash_combine(
                self._node_hash,
                fold_hashes((v.hash() for v in values), self._node_hash),
            )
        else:
            if values:
                raise InvalidArgumentError(
                    "An explicit node hash is only valid for leaf nodes",
                    context={'op': op, 'num_operands': len(values)},
                )
            self._node_hash = node_hash
            self._dag_hash = node_hash

        self._metadata = metadata if metadata is not None else capture_metadata()

    # ------------------------------------------------------------------
    # Read access for graph passes
    # ------------------------------------------------------------------

    @property
    def op(self) -> OpKind:
        return self._op

    @property
    def operands(self) -> Tuple[Output, ...]:
        return self._operands

    def operand(self, i: int) -> Output:
        return self._operands[i]

    @property
    def operand_values(self) -> Tuple[Value, ...]:
        """Owning edges to the operands, suitable for ``clone``."""
        return self._operand_values

    @property
    def num_outputs(self) -> int:
        return self._num_outputs

    @property
    def node_hash(self) -> int:
        return self._node_hash

    @property
    def dag_hash(self) -> int:
        return self._dag_hash

    def hash(self) -> int:
        """Structural identity of the subgraph rooted here."""
        return self._dag_hash

    @property
    def metadata(self) -> NodeMetadata:
        return self._metadata

    def output(self, index: int = 0) -> Output:
        return Output(self, index)

    def value(self, index: int = 0) -> Value:
        return Value(self, index)

    # ------------------------------------------------------------------
    # Variant capabilities
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def clone(self, operands: Sequence[Operand]) -> 'Node':
        """New node of the same variant and scalars over ``operands``."""

    def to_string(self) -> str:
        parts = [str(self._op)]
        if self._num_outputs > 1:
            parts.append(f"num_outputs={self._num_outputs}")
        return ", ".join(parts) + self._metadata_suffix()

    def _metadata_suffix(self) -> str:
        suffix = ""
        if self._metadata.scope:
            suffix += f", scope={self._metadata.scope}"
        if self._metadata.frame_info:
            suffix += f", location={self._metadata.frame_info[0]}"
        return suffix

    def __str__(self):
        return self.to_string()

    def __repr__(self):
        return f"<{type(self).__name__} {self.to_string()} hash={self._dag_hash:#018x}>"


class ShapedNode(Node):
    """
    Node with an output Shape.

    The shape is given eagerly, or resolved once through
    ``set_shape_deferred``; after that it never changes.
    """

    def __init__(self, op: OpKind, operands: Sequence[Operand] = (),
                 shape: Optional[Shape] = None, num_outputs: int = 1,
                 hash_seed: int = DEFAULT_HASH_SEED,
                 shape_fn: Optional[ShapeFn] = None,
                 shape_cache: Optional[ShapeCache] = None,
                 node_hash: Optional[int] = None,
                 metadata: Optional[NodeMetadata] = None):
        if shape is not None and shape_fn is not None:
            raise InvalidArgumentError(
                "Pass either an eager shape or a shape_fn, not both",
                context={'op': op},
            )
        super().__init__(op, operands, num_outputs, hash_seed,
                         node_hash=node_hash, metadata=metadata)
        self._shape: Optional[Shape] = None
        self._shape_cache = shape_cache
        if shape is not None:
            self._validate_shape(shape)
            self._shape = shape
        elif shape_fn is not None:
            self.set_shape_deferred(shape_fn, shape_cache)

    @staticmethod
    def get_op_hash(op: OpKind, shape: Shape, hash_seed: int = DEFAULT_HASH_SEED,
                    dynamic: Optional[bool] = None) -> int:
        """
        Node hash of an operand-less node, derived from op, shape and seed.

        Two leaves with identical content therefore hash equal, so repeated
        constants share cache entries. In dynamic-shape mode only the rank
        contributes, so traces differing in sizes alone still collide.
        """
        if dynamic is None:
            from ..config import get_config
            dynamic = get_config().ir.dynamic_shapes
        if dynamic and not shape.is_tuple:
            h = hash_combine(op.hash_value(), hash_value(('rank', shape.rank)))
        else:
            h = hash_combine(op.hash_value(), hash_value(str(shape)))
        return hash_combine(h, hash_seed)

    @property
    def shape_cache(self) -> Optional[ShapeCache]:
        """Cache passed at construction, or None to use the current one."""
        return self._shape_cache

    @property
    def has_shape(self) -> bool:
        return self._shape is not None

    def shape(self, index: Optional[int] = None) -> Shape:
        """
        Own shape, or the shape of output ``index``.

        For tuple shapes ``index`` selects an element (IndexOutOfRangeError
        when out of bounds); leaf shapes only answer index 0.
        """
        if self._shape is None:
            raise InvalidArgumentError(
                "Shape has not been set for this node", context={'op': self._op}
            )
        if index is None:
            return self._shape
        if self._shape.is_tuple:
            return self._shape.tuple_shape(index)
        if index != 0:
            raise InvalidArgumentError(
                "Non-tuple shape only has output index 0",
                context={'op': self._op, 'index': index},
            )
        return self._shape

    def set_shape_deferred(self, shape_fn: ShapeFn,
                           shape_cache: Optional[ShapeCache] = None) -> Shape:
        """
        Resolve this node's shape through the shape cache.

        The cache is ``shape_cache``, else the one given at construction,
        else the current session's (or the process default).

        On a cache hit for ``hash()`` the cached shape is adopted and
        ``shape_fn`` is not called. On a miss ``shape_fn`` runs, and its
        result is stored in the node and the cache. Exceptions raised by
        ``shape_fn`` propagate unchanged and leave the cache untouched.
        """
        if self._shape is not None:
            raise InvalidArgumentError(
                "Shape is already set and cannot change", context={'op': self._op}
            )
        if shape_cache is None:
            shape_cache = self._shape_cache
        if shape_cache is None:
            from .session import current_shape_cache
            shape_cache = current_shape_cache()

        key = self.hash()
        shape = shape_cache.get(key)
        if shape is None:
            computed = shape_fn()
            if not isinstance(computed, Shape):
                raise ShapeInferenceError(
                    "Shape function did not return a Shape",
                    context={'op': self._op, 'returned': type(computed).__name__},
                )
            self._validate_shape(computed)
            shape = shape_cache.add(key, computed)
            logger.debug(f"Inferred shape {shape} for {self._op} ({key:#018x})")
        else:
            self._validate_shape(shape)
        self._shape = shape
        return shape

    def _validate_shape(self, shape: Shape) -> None:
        if not isinstance(shape, Shape):
            raise InvalidArgumentError(
                "shape must be a Shape", context={'op': self._op, 'shape': repr(shape)}
            )
        if shape.is_tuple:
            if shape.tuple_size() != self._num_outputs:
                raise InvalidArgumentError(
                    "Tuple shape arity must equal num_outputs",
                    context={'op': self._op, 'arity': shape.tuple_size(),
                             'num_outputs': self._num_outputs},
                )
        elif self._num_outputs != 1:
            raise InvalidArgumentError(
                "Multi-output nodes need a tuple shape",
                context={'op': self._op, 'num_outputs': self._num_outputs},
            )

    def to_string(self) -> str:
        shape = str(self._shape) if self._shape is not None else "<unset>"
        return f"{shape} {super().to_string()}"


# ============================================================================
# Capability checks
# ============================================================================

def cast_node(node: Node, node_type: Type[N]) -> Result[N]:
    """``Result.ok(node)`` if it is a ``node_type``, else a TypeMismatchError."""
    if isinstance(node, node_type):
        return Result.ok(node)
    return Result.err(TypeMismatchError(
        f"Expected {node_type.__name__} but got {type(node).__name__}",
        context={'op': getattr(node, 'op', None)},
    ))


def expect_node(node: Node, node_type: Type[N]) -> N:
    """Like ``cast_node`` but raises TypeMismatchError on mismatch."""
    return cast_node(node, node_type).unwrap()


def as_shaped(node: Node) -> Result[ShapedNode]:
    return cast_node(node, ShapedNode)


def get_shape_from_node(node: Node) -> Result[Shape]:
    """Own shape of ``node``, or an error Result if it carries no shape."""
    return as_shaped(node).map(lambda n: n.shape())


def get_shape_from_output(output: Union[Output, Value]) -> Result[Shape]:
    """Shape of one output slot, or an error Result if unshaped."""
    return as_shaped(output.node).map(lambda n: n.shape(output.index))


def get_shape_from_value(value: Value) -> Result[Shape]:
    return get_shape_from_output(value)


def set_shape_deferred(node: Node, shape_fn: ShapeFn,
                       shape_cache: Optional[ShapeCache] = None) -> Result[Shape]:
    """
    Deferred shape resolution for any node.

    Returns an error Result if ``node`` cannot hold a shape. Failures of
    ``shape_fn`` itself are raised, not wrapped.
    """
    result = as_shaped(node)
    if result.is_err:
        return result
    return Result.ok(result.unwrap().set_shape_deferred(shape_fn, shape_cache))


__all__ = [
    'DEFAULT_HASH_SEED',
    'Output',
    'Value',
    'Node',
    'ShapedNode',
    'as_value',
    'expect_operand_count',
    'cast_node',
    'expect_node',
    'as_shaped',
    'get_shape_from_node',
    'get_shape_from_output',
    'get_shape_from_value',
    'set_shape_deferred',
]
