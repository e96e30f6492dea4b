from .exceptions import (
    LazyTraceException,
    InvalidArgumentError,
    IndexOutOfRangeError,
    TypeMismatchError,
    ShapeInferenceError,
    ConfigurationError,
    Result,
)
from .hashing import hash_combine, hash_value, hash_values, hash_tensor
from .op_kind import OpKind
from .shape import DYNAMIC, Shape
from .shape_cache import ShapeCache, get_shape_cache, reset_shape_cache
from .metadata import NodeMetadata, SourceLocation, scope, current_scope
from .session import TraceSession, current_shape_cache
from .node import (
    DEFAULT_HASH_SEED,
    Node,
    ShapedNode,
    Output,
    Value,
    as_value,
    expect_operand_count,
    cast_node,
    expect_node,
    as_shaped,
    get_shape_from_node,
    get_shape_from_output,
    get_shape_from_value,
    set_shape_deferred,
)
from .shape_inference import infer_with_meta, meta_shape_fn, meta_shape_rule
from .graph import post_order, node_count, replace_operands, deduplicate

__all__ = [
    "LazyTraceException",
    "InvalidArgumentError",
    "IndexOutOfRangeError",
    "TypeMismatchError",
    "ShapeInferenceError",
    "ConfigurationError",
    "Result",
    "hash_combine",
    "hash_value",
    "hash_values",
    "hash_tensor",
    "OpKind",
    "DYNAMIC",
    "Shape",
    "ShapeCache",
    "get_shape_cache",
    "reset_shape_cache",
    "NodeMetadata",
    "SourceLocation",
    "scope",
    "current_scope",
    "TraceSession",
    "current_shape_cache",
    "DEFAULT_HASH_SEED",
    "Node",
    "ShapedNode",
    "Output",
    "Value",
    "as_value",
    "expect_operand_count",
    "cast_node",
    "expect_node",
    "as_shaped",
    "get_shape_from_node",
    "get_shape_from_output",
    "get_shape_from_value",
    "set_shape_deferred",
    "infer_with_meta",
    "meta_shape_fn",
    "meta_shape_rule",
    "post_order",
    "node_count",
    "replace_operands",
    "deduplicate",
]
