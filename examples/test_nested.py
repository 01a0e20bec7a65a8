import pytest

from uwdsched.diagrams import Wiring, WiringBuilder
from uwdsched.lang.fin_rel import FinSet
from uwdsched.schedules import (
    NestedWiring,
    ScheduledWiring,
    schedule,
    sequential_schedule,
    to_nested,
)


def example_wiring() -> Wiring:
    builder = WiringBuilder()
    v, w, x, y, z = builder.add_junctions(
        [FinSet(2), FinSet(3), FinSet(2), FinSet(4), FinSet(3)]
    )
    builder.add_box([w, y, x])
    builder.add_box([x, v, y])
    builder.add_box([w, v, z])
    builder.add_outer_ports([w, y])
    return builder.wiring


def test_sequential_composite_ports() -> None:
    nested = to_nested(sequential_schedule(example_wiring()))
    assert nested.num_composites == 2
    assert nested.box_children(0) == (0, 1)
    assert nested.box_children(1) == (2,)
    # x is only touched by boxes 0 and 1, so it does not leave composite 0
    assert nested.composite_junctions(0) == (0, 1, 3)
    assert nested.composite_junctions(1) == (1, 3)
    assert nested.composite_ports(0) == range(3)
    assert nested.composite_junction(0, 2) == 3
    assert nested.num_composite_ports == 5
    assert nested.width == 3


def test_to_nested_idempotent() -> None:
    nested = to_nested(schedule(example_wiring(), "tree_decomposition"))
    assert to_nested(nested) is nested
    for c in nested.composites:
        js = nested.composite_junctions(c)
        assert list(js) == sorted(set(js))


def test_zero_port_box() -> None:
    builder = WiringBuilder()
    a, b, c = builder.add_junctions([FinSet(2)] * 3)
    builder.add_box([a, b])
    builder.add_box()
    builder.add_box([b, c])
    builder.add_outer_port(a)
    nested = to_nested(sequential_schedule(builder.wiring))
    assert nested.box_children(0) == (0, 1)
    assert nested.composite_junctions(0) == (a, b)
    assert nested.composite_junctions(1) == (a,)


def test_outer_only_junction() -> None:
    builder = WiringBuilder()
    a, d = builder.add_junctions([FinSet(2), FinSet(3)])
    builder.add_box([a])
    builder.add_box([a])
    builder.add_outer_ports([d, a])
    nested = to_nested(sequential_schedule(builder.wiring))
    assert nested.composite_junctions(0) == (a,)


def test_nested_siblings() -> None:
    builder = WiringBuilder()
    a, b, c = builder.add_junctions([FinSet(2)] * 3)
    builder.add_box([a, b])
    builder.add_box([b])
    builder.add_box([b, c])
    builder.add_box([c])
    wiring = builder.wiring
    nested = to_nested(ScheduledWiring(wiring, [2, 2, 2], [0, 0, 1, 1]))
    assert nested.composite_junctions(0) == (b,)
    assert nested.composite_junctions(1) == (b,)
    assert nested.composite_junctions(2) == ()


def test_nested_wiring_validation() -> None:
    wiring = example_wiring()
    nested = NestedWiring(wiring, [1, 1], [0, 0, 1], [(0, 1, 3), (1, 3)])
    assert nested.composite_junctions(0) == (0, 1, 3)
    with pytest.raises(ValueError):
        NestedWiring(wiring, [1, 1], [0, 0, 1], [(0, 1, 3)])
    with pytest.raises(ValueError):
        NestedWiring(wiring, [1, 1], [0, 0, 1], [(0, 1, 5), (1, 3)])
    with pytest.raises(ValueError):
        NestedWiring(wiring, [1, 0], [0, 0, 1], [(), ()])


def test_deep_chain_nesting() -> None:
    num_boxes = 3000
    builder = WiringBuilder()
    js = builder.add_junctions([FinSet(2)] * (num_boxes + 1))
    for i in range(num_boxes):
        builder.add_box([js[i], js[i + 1]])
    builder.add_outer_ports([js[0], js[-1]])
    nested = to_nested(sequential_schedule(builder.wiring))
    assert nested.composite_junctions(0) == (0, 2)
    assert nested.composite_junctions(num_boxes - 3) == (0, num_boxes - 1)
    assert nested.composite_junctions(nested.root) == (0, num_boxes)
    assert nested.width == 2
