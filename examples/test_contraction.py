import numpy as np
import pytest

from uwdsched import Contraction
from uwdsched.diagrams import WiringBuilder
from uwdsched.lang.fin_rel import FinRel, FinSet


def test_repeated_and_dangling_outer_junctions() -> None:
    builder = WiringBuilder()
    a, b = builder.add_junctions([FinSet(2), FinSet(3)])
    builder.add_box([a])
    builder.add_outer_ports([a, a, b])
    rel = FinRel(np.array([1, 0], dtype=np.uint8))
    res = Contraction(FinRel)(builder.wiring, [rel])
    expected = np.zeros((2, 2, 3), dtype=np.uint8)
    expected[0, 0, :] = 1
    assert np.array_equal(res.tensor, expected)


def test_repeated_box_junctions() -> None:
    builder = WiringBuilder()
    a = builder.add_junction(FinSet(3))
    builder.add_box([a, a])
    builder.add_outer_port(a)
    matrix = np.array([[1, 1, 0], [0, 0, 1], [1, 0, 1]], dtype=np.uint8)
    res = Contraction(FinRel)(builder.wiring, [FinRel(matrix)])
    assert np.array_equal(res.tensor, np.diag(matrix))


def test_projection_and_transpose() -> None:
    builder = WiringBuilder()
    a, b, c = builder.add_junctions([FinSet(2), FinSet(3), FinSet(2)])
    builder.add_box([a, b, c])
    builder.add_outer_ports([c, a])
    tensor = np.zeros((2, 3, 2), dtype=np.uint8)
    tensor[0, 2, 1] = 1
    res = Contraction(FinRel)(builder.wiring, [FinRel(tensor)])
    assert set(res.to_set()) == {(1, 0)}


def test_pairwise_contraction_matches_einsum() -> None:
    builder = WiringBuilder()
    a, b, c, d = builder.add_junctions([FinSet(2), FinSet(3), FinSet(4), FinSet(2)])
    builder.add_box([a, b])
    builder.add_box([b, c])
    builder.add_box([c, d, a])
    builder.add_box([d])
    builder.add_outer_ports([d, b])
    rng = np.random.default_rng(42)
    tensors = [
        (rng.random(shape) < 0.5).astype(np.uint8)
        for shape in [(2, 3), (3, 4), (4, 2, 2), (2,)]
    ]
    wiring = builder.wiring
    contraction = Contraction(FinRel)
    res = contraction(wiring, list(map(FinRel, tensors)))
    expected = np.einsum("ab,bc,cda,d->db", *(t.astype(np.int64) for t in tensors))
    assert np.array_equal(res.tensor, (expected > 0).astype(np.uint8))
    path = contraction.path(wiring)
    assert len(path) == 3
    assert contraction.path(wiring) is path


def test_no_boxes() -> None:
    builder = WiringBuilder()
    assert Contraction(FinRel)(builder.wiring, []) == FinRel.unit()
    a = builder.add_junction(FinSet(2))
    builder.add_outer_ports([a, a])
    res = Contraction(FinRel)(builder.wiring, [])
    assert np.array_equal(res.tensor, np.eye(2, dtype=np.uint8))


def test_invalid_values() -> None:
    builder = WiringBuilder()
    a = builder.add_junction(FinSet(2))
    builder.add_box([a])
    wiring = builder.wiring
    contraction = Contraction(FinRel)
    with pytest.raises(ValueError):
        contraction(wiring, [])
    with pytest.raises(ValueError):
        contraction(wiring, [FinRel(np.ones(3, dtype=np.uint8))])
    assert contraction.can_contract(wiring, [FinRel(np.ones(2, dtype=np.uint8))])
    assert not contraction.can_contract(wiring, [object()])  # type: ignore[list-item]


def test_path_uses_junction_dims() -> None:
    builder = WiringBuilder()
    a, b, c = builder.add_junctions([FinSet(2), FinSet(50), FinSet(2)])
    builder.add_box([a, b])
    builder.add_box([b, c])
    builder.add_box([a])
    builder.add_outer_ports([a, c])
    wiring = builder.wiring
    assert wiring.junction_types.dims == (2, 50, 2)
    contraction = Contraction(FinRel, optimize="optimal")
    path = contraction.path(wiring)
    assert len(path) == 2
    values = [
        FinRel(np.ones((2, 50), dtype=np.uint8)),
        FinRel(np.ones((50, 2), dtype=np.uint8)),
        FinRel(np.array([0, 1], dtype=np.uint8)),
    ]
    res = contraction(wiring, values)
    assert set(res.to_set()) == {(1, 0), (1, 1)}
