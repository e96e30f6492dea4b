"""
Shape values for IR nodes.

A Shape is either a leaf (element type + dimensions) or a tuple of Shapes
describing the outputs of a multi-output operation. Shapes are immutable and
compare structurally.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple, Union

import torch

from .exceptions import IndexOutOfRangeError, InvalidArgumentError
from .hashing import hash_value

# Marker for a dimension whose size is only known at execution time
DYNAMIC = -1

_SHORT_DTYPE_NAMES = {
    torch.float16: 'f16',
    torch.bfloat16: 'bf16',
    torch.float32: 'f32',
    torch.float64: 'f64',
    torch.int8: 's8',
    torch.uint8: 'u8',
    torch.int16: 's16',
    torch.int32: 's32',
    torch.int64: 's64',
    torch.bool: 'pred',
    torch.complex64: 'c64',
    torch.complex128: 'c128',
}


class Shape:
    """Immutable leaf or tuple shape."""

    __slots__ = ('_element_type', '_dimensions', '_tuple_shapes', '_hash')

    def __init__(self, element_type: Optional[torch.dtype] = None,
                 dimensions: Iterable[int] = (),
                 tuple_shapes: Optional[Sequence['Shape']] = None):
        if tuple_shapes is not None:
            tuple_shapes = tuple(tuple_shapes)
            for s in tuple_shapes:
                if not isinstance(s, Shape):
                    raise InvalidArgumentError(
                        "Tuple shape elements must be Shape instances",
                        context={'element': repr(s)},
                    )
            element_type = None
            dims: Tuple[int, ...] = ()
        else:
            if not isinstance(element_type, torch.dtype):
                raise InvalidArgumentError(
                    "Leaf shape requires a torch.dtype element type",
                    context={'element_type': repr(element_type)},
                )
            dims = tuple(int(d) for d in dimensions)
            for d in dims:
                if d < 0 and d != DYNAMIC:
                    raise InvalidArgumentError(
                        "Dimensions must be non-negative or DYNAMIC",
                        context={'dimensions': dims},
                    )
        object.__setattr__(self, '_element_type', element_type)
        object.__setattr__(self, '_dimensions', dims)
        object.__setattr__(self, '_tuple_shapes', tuple_shapes)
        object.__setattr__(self, '_hash', None)

    def __setattr__(self, name, value):
        raise AttributeError("Shape is immutable")

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def make_tuple(cls, shapes: Sequence['Shape']) -> 'Shape':
        return cls(tuple_shapes=shapes)

    @classmethod
    def from_tensor(cls, tensor: torch.Tensor) -> 'Shape':
        """Shape of a real or meta tensor."""
        return cls(tensor.dtype, tuple(tensor.shape))

    @classmethod
    def from_result(cls, result: Union[torch.Tensor, Sequence[torch.Tensor]]) -> 'Shape':
        """Shape of an op result: a tensor or a tuple of tensors."""
        if isinstance(result, torch.Tensor):
            return cls.from_tensor(result)
        return cls.make_tuple([cls.from_result(r) for r in result])

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def is_tuple(self) -> bool:
        return self._tuple_shapes is not None

    @property
    def element_type(self) -> Optional[torch.dtype]:
        return self._element_type

    @property
    def dimensions(self) -> Tuple[int, ...]:
        return self._dimensions

    @property
    def rank(self) -> int:
        if self.is_tuple:
            raise InvalidArgumentError("Tuple shapes have no rank")
        return len(self._dimensions)

    @property
    def is_dynamic(self) -> bool:
        if self.is_tuple:
            return any(s.is_dynamic for s in self._tuple_shapes)
        return DYNAMIC in self._dimensions

    @property
    def tuple_shapes(self) -> Tuple['Shape', ...]:
        if not self.is_tuple:
            raise InvalidArgumentError("Leaf shape has no tuple elements")
        return self._tuple_shapes

    def tuple_size(self) -> int:
        return len(self.tuple_shapes)

    def tuple_shape(self, index: int) -> 'Shape':
        shapes = self.tuple_shapes
        if not 0 <= index < len(shapes):
            raise IndexOutOfRangeError(
                "Tuple shape index out of range",
                context={'index': index, 'arity': len(shapes)},
            )
        return shapes[index]

    def numel(self) -> int:
        if self.is_tuple or self.is_dynamic:
            raise InvalidArgumentError(
                "numel requires a static leaf shape", context={'shape': str(self)}
            )
        n = 1
        for d in self._dimensions:
            n *= d
        return n

    def with_element_type(self, element_type: torch.dtype) -> 'Shape':
        return Shape(element_type, self._dimensions)

    def to_meta_tensor(self) -> torch.Tensor:
        """Materialize a data-less tensor on the meta device with this shape."""
        if self.is_tuple or self.is_dynamic:
            raise InvalidArgumentError(
                "Only static leaf shapes can become meta tensors",
                context={'shape': str(self)},
            )
        return torch.empty(self._dimensions, dtype=self._element_type, device='meta')

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def hash_value(self) -> int:
        if self._hash is None:
            if self.is_tuple:
                h = hash_value(('tuple', tuple(s.hash_value() for s in self._tuple_shapes)))
            else:
                h = hash_value(('leaf', self._element_type, self._dimensions))
            object.__setattr__(self, '_hash', h)
        return self._hash

    def __eq__(self, other):
        if not isinstance(other, Shape):
            return NotImplemented
        return (self._tuple_shapes == other._tuple_shapes
                and self._element_type == other._element_type
                and self._dimensions == other._dimensions)

    def __hash__(self):
        return self.hash_value()

    def __str__(self):
        if self.is_tuple:
            return "(" + ", ".join(str(s) for s in self._tuple_shapes) + ")"
        name = _SHORT_DTYPE_NAMES.get(self._element_type, str(self._element_type).replace('torch.', ''))
        dims = ",".join('?' if d == DYNAMIC else str(d) for d in self._dimensions)
        return f"{name}[{dims}]"

    def __repr__(self):
        return f"Shape({self})"


__all__ = ['DYNAMIC', 'Shape']
