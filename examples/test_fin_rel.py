import numpy as np
import pytest

from uwdsched.diagrams import Shape
from uwdsched.lang.fin_rel import FinRel, FinSet


def test_finset_interned() -> None:
    assert FinSet(3) is FinSet(3)
    assert FinSet(3).dim == 3
    with pytest.raises(ValueError):
        FinSet(0)


def test_from_set_to_set() -> None:
    points = {(0, 1), (1, 2)}
    rel = FinRel.from_set((2, 3), points)
    assert set(rel.to_set()) == points
    assert rel.shape == FinSet(2) * FinSet(3)
    with pytest.raises(ValueError):
        FinRel.from_set((2, 3), [(2, 0)])


def test_from_callable() -> None:
    rel = FinRel.from_callable((2, 2), 2, lambda x, y: x ^ y)
    assert set(rel.to_set()) == {(0, 0, 0), (0, 1, 1), (1, 0, 1), (1, 1, 0)}
    with pytest.raises(ValueError):
        FinRel.from_mapping(2, 2, {(0,): 0})


def test_invalid_tensor() -> None:
    with pytest.raises(ValueError):
        FinRel(np.array([0, 2]))
    with pytest.raises(ValueError):
        FinRel(np.zeros((2, 0), dtype=np.uint8))


def test_contract2_composition() -> None:
    lhs = FinRel.from_set((2, 3), [(0, 1), (1, 2)])
    rhs = FinRel.from_set((3, 2), [(1, 1), (0, 0)])
    res = FinRel.contract2(lhs, [0, 1], rhs, [1, 2], [0, 2])
    assert set(res.to_set()) == {(0, 1)}
    default = FinRel.contract2(lhs, [0, 1], rhs, [1, 2])
    assert default == res
    with pytest.raises(ValueError):
        FinRel.contract2(lhs, [0], rhs, [1, 2])
    with pytest.raises(ValueError):
        FinRel.contract2(lhs, [0, 1], rhs, [1, 2], [0, 3])


def test_contract2_large_contraction() -> None:
    size = 300
    lhs = FinRel(np.ones((2, size), dtype=np.uint8))
    rhs = FinRel(np.ones((size, 2), dtype=np.uint8))
    res = FinRel.contract2(lhs, [0, 1], rhs, [1, 2], [0, 2])
    assert np.array_equal(res.tensor, np.ones((2, 2), dtype=np.uint8))


def test_unit_and_spider() -> None:
    unit = FinRel.unit()
    assert unit.num_ports == 0
    assert bool(unit)
    spider = FinSet(3).spider(2)
    assert np.array_equal(spider.tensor, np.eye(3, dtype=np.uint8))
    with pytest.raises(ValueError):
        FinSet(3).spider(0)


def test_transpose_and_hash() -> None:
    rel = FinRel.from_set((2, 3), [(0, 1), (1, 2)])
    transposed = rel.transpose([1, 0])
    assert set(transposed.to_set()) == {(1, 0), (2, 1)}
    assert transposed.transpose([1, 0]) == rel
    assert hash(transposed.transpose([1, 0])) == hash(rel)
    with pytest.raises(ValueError):
        rel.transpose([0, 0])


def test_products() -> None:
    lhs = FinRel.singleton(2, 1)
    rhs = FinRel.singleton((3, 2), (2, 0))
    prod = lhs * rhs
    assert prod.shape == Shape.prod([lhs.shape, rhs.shape])
    assert set(prod.to_set()) == {(1, 2, 0)}
    assert FinSet(2) ** 3 == Shape([FinSet(2)] * 3)
    assert (FinSet(2) * FinSet(3)) ** 2 == Shape([FinSet(2), FinSet(3)] * 2)
    assert (FinSet(2) * FinSet(3)).dims == (2, 3)
