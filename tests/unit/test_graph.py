"""
Test: graph utilities (traversal, operand replacement, deduplication)
"""

import pytest
import torch

from lazytrace import InvalidArgumentError, OpKind, Shape, deduplicate, node_count, post_order, replace_operands
from lazytrace.ops import DeviceData, Generic, SmoothL1LossBackward

ADD = OpKind("aten", "add")
MUL = OpKind("aten", "mul")
NEG = OpKind("aten", "neg")
F32_4 = Shape(torch.float32, (4,))


def _position(order, node):
    return next(i for i, n in enumerate(order) if n is node)


class TestPostOrder:

    def test_operands_before_users(self, leaf):
        a, b = leaf(4), leaf(4)
        c = Generic(ADD, [a, b], shape=F32_4)
        d = Generic(MUL, [c, a], shape=F32_4)

        order = post_order([d])
        assert len(order) == 4
        assert order[-1] is d
        assert _position(order, a) < _position(order, c)
        assert _position(order, b) < _position(order, c)
        assert _position(order, c) < _position(order, d)

    def test_diamond_visited_once(self, leaf):
        a = leaf(4)
        left = Generic(NEG, [a], shape=F32_4)
        right = Generic(ADD, [a, a], shape=F32_4)
        top = Generic(MUL, [left, right], shape=F32_4)
        assert node_count([top]) == 4
        assert node_count([top, left, a]) == 4

    def test_deep_chain(self, leaf):
        node = leaf(4)
        for _ in range(3000):
            node = Generic(NEG, [node], shape=F32_4)
        assert node_count([node]) == 3001


class TestReplaceOperands:

    def test_replaces_position(self, leaf):
        a, b, c = leaf(4), leaf(4), leaf(4)
        node = Generic(MUL, [a, b], shape=F32_4, hash_seed=3)
        replaced = replace_operands(node, {1: c})

        assert replaced is not node
        assert replaced.operand(1).node is c
        assert replaced.operand(0).node is a
        assert replaced.hash() == Generic(MUL, [a, c], shape=F32_4, hash_seed=3).hash()
        assert node.operand(1).node is b

    def test_keeps_variant_scalars(self, leaf):
        grad, x, target = leaf(), leaf(4), leaf(4)
        node = SmoothL1LossBackward(grad, x, target, reduction='sum', beta=0.3)
        replaced = replace_operands(node, {2: leaf(4)})
        assert isinstance(replaced, SmoothL1LossBackward)
        assert replaced.beta == 0.3

    def test_position_out_of_range(self, leaf):
        node = Generic(NEG, [leaf(4)], shape=F32_4)
        with pytest.raises(InvalidArgumentError):
            replace_operands(node, {1: leaf(4)})

    def test_shape_rule_follows_new_operand(self, leaf):
        node = Generic(NEG, [leaf(4)], shape_rule=lambda shapes: shapes[0])
        replaced = replace_operands(node, {0: leaf(8, 8)})
        assert replaced.shape() == Shape(torch.float32, (8, 8))

    def test_eager_shape_rejects_new_operand_shape(self, leaf):
        node = Generic(NEG, [leaf(4)], shape=F32_4)
        with pytest.raises(InvalidArgumentError):
            replace_operands(node, {0: leaf(8, 8)})

    def test_unshaped_node(self, leaf):
        node = Generic(NEG, [leaf(4)])
        replaced = replace_operands(node, {0: leaf(4)})
        assert not replaced.has_shape


class TestDeduplicate:

    def test_merges_identical_subgraphs(self):
        a1 = DeviceData(F32_4, handle=0)
        a2 = DeviceData(F32_4, handle=0)
        left = Generic(NEG, [a1], shape=F32_4)
        right = Generic(NEG, [a2], shape=F32_4)
        root = Generic(ADD, [left, right], shape=F32_4)
        assert node_count([root]) == 5

        (new_root,) = deduplicate([root])
        assert node_count([new_root]) == 3
        assert new_root.hash() == root.hash()
        assert new_root.operand(0).node is new_root.operand(1).node

    def test_nothing_to_merge(self, leaf):
        root = Generic(ADD, [leaf(4), leaf(4)], shape=F32_4)
        assert deduplicate([root])[0] is root

    def test_multiple_roots_share_nodes(self):
        x1 = Generic(NEG, [DeviceData(F32_4, handle=0)], shape=F32_4)
        x2 = Generic(NEG, [DeviceData(F32_4, handle=0)], shape=F32_4)
        r1, r2 = deduplicate([x1, x2])
        assert r1 is r2

    def test_unshaped_users_are_rebuilt(self):
        left = Generic(NEG, [DeviceData(F32_4, handle=0)])
        right = Generic(NEG, [DeviceData(F32_4, handle=0)])
        (root,) = deduplicate([Generic(ADD, [left, right])])
        assert node_count([root]) == 3
        assert not root.has_shape
