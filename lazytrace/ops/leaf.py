"""
Operand-less nodes: device data, constants and scalars.

Leaves are hashed from op kind, shape and a content seed rather than from
operands, so two independently built leaves with identical content collide
and share shape cache entries.
"""

from typing import Sequence, Union

import torch

from ..core.exceptions import InvalidArgumentError
from ..core.hashing import hash_tensor, hash_value
from ..core.node import Operand, ShapedNode, expect_operand_count
from ..core.shape import Shape
from . import op_kinds


class DeviceData(ShapedNode):
    """Tensor data already resident on a device, identified by ``handle``."""

    def __init__(self, shape: Shape, handle: Union[int, str]):
        seed = hash_value(('device_data', handle))
        super().__init__(
            op_kinds.DEVICE_DATA,
            shape=shape,
            node_hash=ShapedNode.get_op_hash(op_kinds.DEVICE_DATA, shape, seed),
        )
        self._handle = handle

    @property
    def handle(self) -> Union[int, str]:
        return self._handle

    def clone(self, operands: Sequence[Operand]) -> 'DeviceData':
        expect_operand_count(self.op, operands, 0)
        return DeviceData(self.shape(), self._handle)

    def to_string(self) -> str:
        return f"{super().to_string()}, handle={self._handle}"


class Constant(ShapedNode):
    """Constant tensor embedded in the trace; hashed by content."""

    def __init__(self, value: torch.Tensor):
        if not isinstance(value, torch.Tensor):
            raise InvalidArgumentError(
                "Constant requires a torch.Tensor", context={'value': type(value).__name__}
            )
        value = value.detach().cpu().clone()
        shape = Shape.from_tensor(value)
        super().__init__(
            op_kinds.CONSTANT,
            shape=shape,
            node_hash=ShapedNode.get_op_hash(op_kinds.CONSTANT, shape, hash_tensor(value)),
        )
        self._value = value

    @property
    def value(self) -> torch.Tensor:
        return self._value

    def clone(self, operands: Sequence[Operand]) -> 'Constant':
        expect_operand_count(self.op, operands, 0)
        return Constant(self._value)

    def to_string(self) -> str:
        if self._value.numel() <= 4:
            return f"{super().to_string()}, value={self._value.tolist()}"
        return super().to_string()


_SCALAR_DTYPES = {
    bool: torch.bool,
    int: torch.int64,
    float: torch.float32,
}


class Scalar(ShapedNode):
    """A Python scalar broadcast to ``shape`` (rank 0 by default)."""

    def __init__(self, value: Union[bool, int, float], shape: Shape = None):
        if type(value) not in _SCALAR_DTYPES:
            raise InvalidArgumentError(
                "Scalar value must be bool, int or float",
                context={'value': repr(value)},
            )
        if shape is None:
            shape = Shape(_SCALAR_DTYPES[type(value)], ())
        super().__init__(
            op_kinds.SCALAR,
            shape=shape,
            node_hash=ShapedNode.get_op_hash(op_kinds.SCALAR, shape, hash_value(value)),
        )
        self._value = value

    @property
    def value(self) -> Union[bool, int, float]:
        return self._value

    def clone(self, operands: Sequence[Operand]) -> 'Scalar':
        expect_operand_count(self.op, operands, 0)
        return Scalar(self._value, self.shape())

    def to_string(self) -> str:
        return f"{super().to_string()}, value={self._value}"
