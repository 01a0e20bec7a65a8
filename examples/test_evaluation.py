import numpy as np
import pytest

from uwdsched import Contraction, eval_schedule, local_wiring, schedule, to_nested
from uwdsched.diagrams import Shape, Wiring, WiringBuilder
from uwdsched.lang.fin_rel import FinRel, FinSet
from uwdsched.schedules import NestedWiring, ScheduledWiring, sequential_schedule

SIZES = {"v": 2, "w": 3, "x": 2, "y": 4, "z": 3}


def example_wiring() -> Wiring:
    builder = WiringBuilder()
    v, w, x, y, z = builder.add_junctions([FinSet(SIZES[n]) for n in "vwxyz"])
    builder.add_box([w, y, x])
    builder.add_box([x, v, y])
    builder.add_box([w, v, z])
    builder.add_outer_ports([w, y])
    return builder.wiring


def random_relations(seed: int) -> list[FinRel]:
    rng = np.random.default_rng(seed)
    return [
        FinRel((rng.random([SIZES[n] for n in ports]) < 0.5).astype(np.uint8))
        for ports in ["wyx", "xvy", "wvz"]
    ]


def reference(generators: list[FinRel]) -> np.ndarray:
    tensors = [g.tensor.astype(np.int64) for g in generators]
    return (np.einsum("wyx,xvy,wvz->wy", *tensors) > 0).astype(np.uint8)


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_sequential_matches_reference(seed: int) -> None:
    generators = random_relations(seed)
    scheduled = schedule(example_wiring(), "sequential")
    result = eval_schedule(Contraction(FinRel), scheduled, generators)
    assert np.array_equal(result.tensor, reference(generators))


@pytest.mark.parametrize("seed", [0, 1, 2])
@pytest.mark.parametrize("elimination", ["min_degree", "min_fill_in", [4, 0, 2, 1, 3]])
@pytest.mark.parametrize("supernode", ["nodal", "maximal"])
def test_tree_decomposition_matches_sequential(seed, elimination, supernode) -> None:
    generators = random_relations(seed)
    wiring = example_wiring()
    contraction = Contraction(FinRel)
    sequential = eval_schedule(contraction, schedule(wiring), generators)
    scheduled = schedule(
        wiring, "tree_decomposition", elimination=elimination, supernode=supernode
    )
    result = eval_schedule(contraction, scheduled, generators)
    assert result == sequential
    assert np.array_equal(result.tensor, reference(generators))


@pytest.mark.parametrize("alg", ["sequential", "tree_decomposition"])
def test_nested_wiring_reused_across_generators(alg) -> None:
    contraction = Contraction(FinRel)
    scheduled = schedule(example_wiring(), alg)
    nested = to_nested(scheduled)
    assert isinstance(nested, NestedWiring)
    assert to_nested(nested) is nested
    for seed in [0, 1, 2, 3]:
        generators = random_relations(seed)
        direct = eval_schedule(contraction, scheduled, generators)
        reused = eval_schedule(contraction, nested, generators)
        assert reused == direct
        assert np.array_equal(reused.tensor, reference(generators))


def test_combined_once_per_composite() -> None:
    contraction = Contraction(FinRel)
    calls: list[Wiring] = []

    def f(wiring: Wiring, values: list[FinRel]) -> FinRel:
        calls.append(wiring)
        return contraction(wiring, values)

    for alg in ["sequential", "tree_decomposition"]:
        calls.clear()
        scheduled = schedule(example_wiring(), alg)  # type: ignore[arg-type]
        eval_schedule(f, scheduled, random_relations(0))
        assert len(calls) == scheduled.num_composites
    assert calls[-1].num_ports == 2


def test_local_wirings_of_sequential_schedule() -> None:
    calls: list[tuple[Wiring, int]] = []

    def f(wiring: Wiring, values: list[int]) -> int:
        calls.append((wiring, len(values)))
        return len(calls)

    result = eval_schedule(f, sequential_schedule(example_wiring()), [10, 20, 30])
    assert result == 2
    (first, first_len), (second, second_len) = calls
    assert first_len == 2 and second_len == 2
    # boxes 0 and 1, with outgoing junctions v, w, y
    assert first.box_junctions == ((0, 1, 2), (2, 3, 1))
    assert first.outer_junctions == (3, 0, 1)
    # box 2, then composite 0, with the outer junctions w, y
    assert second.box_junctions == ((0, 1, 2), (1, 0, 3))
    assert second.outer_junctions == (0, 3)


def test_empty_wiring_evaluates_to_unit() -> None:
    wiring = Wiring(junction_types=[], box_junctions=[], outer_junctions=[])
    for alg in ["sequential", "tree_decomposition"]:
        scheduled = schedule(wiring, alg)  # type: ignore[arg-type]
        assert scheduled.num_composites == 1
        result = eval_schedule(Contraction(FinRel), scheduled, [])
        assert result == FinRel.unit()


def test_zero_port_box_value() -> None:
    builder = WiringBuilder()
    a = builder.add_junction(FinSet(2))
    builder.add_box([a])
    builder.add_box()
    builder.add_outer_port(a)
    wiring = builder.wiring
    rel = FinRel.from_set(2, [1])
    empty = FinRel(np.array(0, dtype=np.uint8))
    for alg in ["sequential", "tree_decomposition"]:
        scheduled = schedule(wiring, alg)  # type: ignore[arg-type]
        result = eval_schedule(Contraction(FinRel), scheduled, [rel, FinRel.unit()])
        assert result == rel
        result = eval_schedule(Contraction(FinRel), scheduled, [rel, empty])
        assert not result


def test_deep_chain_evaluation() -> None:
    num_boxes = 400
    builder = WiringBuilder()
    js = builder.add_junctions([FinSet(2)] * (num_boxes + 1))
    for i in range(num_boxes):
        builder.add_box([js[i], js[i + 1]])
    builder.add_outer_ports([js[0], js[-1]])
    rng = np.random.default_rng(0)
    matrices = [(rng.random((2, 2)) < 0.7).astype(np.uint8) for _ in range(num_boxes)]
    expected = np.eye(2, dtype=np.int64)
    for m in matrices:
        expected = (expected @ m.astype(np.int64) > 0).astype(np.int64)
    scheduled = sequential_schedule(builder.wiring)
    result = eval_schedule(Contraction(FinRel), scheduled, list(map(FinRel, matrices)))
    assert np.array_equal(result.tensor, expected.astype(np.uint8))


def test_eval_errors() -> None:
    wiring = example_wiring()
    generators = random_relations(0)
    with pytest.raises(ValueError):
        eval_schedule(Contraction(FinRel), schedule(wiring), generators[:2])
    forest = ScheduledWiring(wiring, [0, 1], [0, 0, 1])
    with pytest.raises(ValueError):
        eval_schedule(Contraction(FinRel), forest, generators)


def test_combination_errors_propagate() -> None:
    def f(wiring: Wiring, values: list[FinRel]) -> FinRel:
        raise RuntimeError("combination failed")

    with pytest.raises(RuntimeError, match="combination failed"):
        eval_schedule(f, schedule(example_wiring()), random_relations(0))
    generators = random_relations(0)
    generators[0] = generators[0].transpose([2, 1, 0])
    with pytest.raises(ValueError):
        eval_schedule(Contraction(FinRel), schedule(example_wiring()), generators)


def test_local_wiring() -> None:
    types = Shape([FinSet(n) for n in range(1, 6)])
    local = local_wiring(types, [[3, 1], [1, 4]], [4, 0])
    assert local.junction_types == Shape([FinSet(4), FinSet(2), FinSet(5), FinSet(1)])
    assert local.box_junctions == ((0, 1), (1, 2))
    assert local.outer_junctions == (2, 3)
