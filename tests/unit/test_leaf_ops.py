"""
Test: leaf nodes and the generic variant
"""

import pytest
import torch

from lazytrace import InvalidArgumentError, OpKind, Shape
from lazytrace.ops import Constant, DeviceData, Generic, Scalar, op_kinds


class TestDeviceData:

    def test_shape_and_handle(self):
        node = DeviceData(Shape(torch.float32, (2, 3)), handle="param:0")
        assert node.shape() == Shape(torch.float32, (2, 3))
        assert node.handle == "param:0"
        assert node.op == op_kinds.DEVICE_DATA
        assert node.operands == ()

    def test_clone(self):
        node = DeviceData(Shape(torch.float32, (2, 3)), handle=4)
        clone = node.clone([])
        assert clone is not node
        assert clone.hash() == node.hash()
        assert clone.handle == 4

    def test_clone_rejects_operands(self, leaf):
        with pytest.raises(InvalidArgumentError):
            DeviceData(Shape(torch.float32, (2,)), 0).clone([leaf(2)])

    def test_to_string(self):
        node = DeviceData(Shape(torch.float32, (2, 3)), handle=4)
        assert node.to_string() == "f32[2,3] ltc::device_data, handle=4"


class TestConstant:

    def test_content_hash(self):
        a = Constant(torch.tensor([1.0, 2.0]))
        b = Constant(torch.tensor([1.0, 2.0]))
        c = Constant(torch.tensor([1.0, 3.0]))
        assert a.hash() == b.hash()
        assert a.hash() != c.hash()

    def test_shape_from_tensor(self):
        node = Constant(torch.zeros(3, 2, dtype=torch.int32))
        assert node.shape() == Shape(torch.int32, (3, 2))

    def test_stores_copy(self):
        source = torch.ones(2)
        node = Constant(source)
        source.add_(1)
        assert node.value.tolist() == [1.0, 1.0]

    def test_requires_tensor(self):
        with pytest.raises(InvalidArgumentError):
            Constant([1.0, 2.0])

    def test_clone(self):
        node = Constant(torch.arange(4))
        assert node.clone([]).hash() == node.hash()

    def test_to_string(self):
        assert Constant(torch.tensor([1.0, 2.0])).to_string() == "f32[2] prim::Constant, value=[1.0, 2.0]"
        assert Constant(torch.zeros(10)).to_string() == "f32[10] prim::Constant"


class TestScalar:

    @pytest.mark.parametrize("value,dtype", [
        (True, torch.bool),
        (3, torch.int64),
        (2.5, torch.float32),
    ])
    def test_dtype_from_value(self, value, dtype):
        assert Scalar(value).shape() == Shape(dtype, ())

    def test_broadcast_shape(self):
        shape = Shape(torch.float32, (4, 4))
        assert Scalar(1.0, shape).shape() == shape

    def test_hash_by_value(self):
        assert Scalar(1.5).hash() == Scalar(1.5).hash()
        assert Scalar(1.5).hash() != Scalar(2.5).hash()
        assert Scalar(1).hash() != Scalar(True).hash()

    def test_rejects_other_types(self):
        with pytest.raises(InvalidArgumentError):
            Scalar("1.0")

    def test_clone(self):
        node = Scalar(0.5, Shape(torch.float32, (3,)))
        clone = node.clone([])
        assert clone.hash() == node.hash()
        assert clone.shape() == node.shape()
        assert clone.value == 0.5


class TestGeneric:

    def test_clone_keeps_shape_and_seed(self, leaf):
        op = OpKind("aten", "relu")
        a, b = leaf(4, 4), leaf(4, 4)
        node = Generic(op, [a], shape=Shape(torch.float32, (4, 4)), hash_seed=9)
        clone = node.clone([b])

        assert clone.hash_seed == 9
        assert clone.shape() == node.shape()
        assert clone.hash() == Generic(op, [b], shape=Shape(torch.float32, (4, 4)), hash_seed=9).hash()
        assert clone.hash() != node.hash()

    def test_clone_multi_output(self, leaf):
        pair = Shape.make_tuple([Shape(torch.float32, (2,)), Shape(torch.float32, (2,))])
        node = Generic(OpKind("aten", "chunk"), [leaf(4)], shape=pair, num_outputs=2)
        clone = node.clone([leaf(4)])
        assert clone.num_outputs == 2
        assert clone.shape(1) == Shape(torch.float32, (2,))

    def test_clone_unshaped(self, leaf):
        op = OpKind("aten", "relu")
        a, b = leaf(4), leaf(8)
        node = Generic(op, [a], hash_seed=5)
        clone = node.clone([b])

        assert not clone.has_shape
        assert clone.hash() == Generic(op, [b], hash_seed=5).hash()
        clone.set_shape_deferred(lambda: Shape(torch.float32, (8,)))
        assert clone.shape() == Shape(torch.float32, (8,))

    def test_clone_reruns_shape_rule(self, leaf, shape_cache):
        op = OpKind("aten", "neg")
        rule = lambda shapes: shapes[0]
        node = Generic(op, [leaf(4)], shape_rule=rule, shape_cache=shape_cache)
        clone = node.clone([leaf(8, 8)])

        assert node.shape() == Shape(torch.float32, (4,))
        assert clone.shape() == Shape(torch.float32, (8, 8))
        assert clone.shape_rule is rule
        assert clone.shape_cache is shape_cache
        assert len(shape_cache) == 2

    def test_clone_eager_shape_over_new_operand_shapes(self, leaf):
        op = OpKind("aten", "neg")
        node = Generic(op, [leaf(4)], shape=Shape(torch.float32, (4,)))
        with pytest.raises(InvalidArgumentError):
            node.clone([leaf(8, 8)])

    def test_clone_resolved_shape_fn_over_same_shapes(self, leaf, shape_cache):
        op = OpKind("aten", "neg")
        node = Generic(op, [leaf(4)], shape_fn=lambda: Shape(torch.float32, (4,)),
                       shape_cache=shape_cache)
        clone = node.clone([leaf(4)])
        assert clone.shape() == Shape(torch.float32, (4,))
        assert clone.shape_cache is shape_cache

    def test_shape_rule_excludes_shape(self, leaf):
        with pytest.raises(InvalidArgumentError):
            Generic(OpKind("aten", "neg"), [leaf(4)], shape=Shape(torch.float32, (4,)),
                    shape_rule=lambda shapes: shapes[0])
