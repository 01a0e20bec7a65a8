"""
Default combination function for the evaluation of schedules, contracting the
values of the boxes of a flat wiring along the contraction paths computed by
:func:`opt_einsum.contract_path`.
"""

# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Lesser General Public License for more details.

# You should have received a copy of the GNU Lesser General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

from __future__ import annotations
from collections import Counter
from collections.abc import Sequence
import logging
from typing import Generic, Literal, Self, Type as SubclassOf, TypeAlias, final
from weakref import WeakKeyDictionary

import opt_einsum  # type: ignore[import-untyped]

from .diagrams import Junction, Morphism, MorphismT_inv, Wiring

if __debug__:
    from typing_validation import validate

logger = logging.getLogger(__name__)

ContractionPath: TypeAlias = tuple[tuple[int, ...], ...]
"""
Type alias for a contraction path, following the convention of
:func:`opt_einsum.contract_path`: a list of operands is maintained, the operands at
the indices of each step are removed from the list, contracted, and the result is
appended to the end of the list.
"""

OptEinsumOptimize: TypeAlias = Literal[
    "optimal", "branch-all", "branch-2", "greedy", "auto", False, True
]
"""
Possible values that can be passed to the ``optimize`` argument
of :func:`opt_einsum.contract_path`.
"""

Operand: TypeAlias = tuple[MorphismT_inv, tuple[Junction, ...]]


@final
class Contraction(Generic[MorphismT_inv]):
    """
    Contraction of flat wirings for a given class of morphisms, usable as the
    combination function of :func:`~uwdsched.evaluation.eval_schedule`:

    .. code-block:: python

        eval_schedule(Contraction(FinRel), scheduled, generators)

    Contraction paths are computed once per wiring, and cached for as long as the
    wiring is alive.
    """

    __morphism_class: SubclassOf[MorphismT_inv]
    __optimize: OptEinsumOptimize
    __paths: WeakKeyDictionary[Wiring, ContractionPath]

    __slots__ = ("__weakref__", "__morphism_class", "__optimize", "__paths")

    def __new__(
        cls,
        morphism_class: SubclassOf[MorphismT_inv],
        optimize: OptEinsumOptimize = "auto",
    ) -> Self:
        """
        Creates a contraction for the given morphism class, using the given
        ``optimize`` strategy for :func:`opt_einsum.contract_path`.
        """
        assert validate(morphism_class, SubclassOf[Morphism])
        self = super().__new__(cls)
        self.__morphism_class = morphism_class
        self.__optimize = optimize
        self.__paths = WeakKeyDictionary()
        return self

    @property
    def morphism_class(self) -> SubclassOf[MorphismT_inv]:
        """Morphism class associated with this contraction."""
        return self.__morphism_class

    @property
    def optimize(self) -> OptEinsumOptimize:
        """Optimization strategy used to compute contraction paths."""
        return self.__optimize

    def can_contract(self, wiring: Wiring, values: Sequence[MorphismT_inv]) -> bool:
        """Whether the given values can be contracted along the given wiring."""
        try:
            self.validate(wiring, values)
            return True
        except ValueError:
            return False

    def validate(self, wiring: Wiring, values: Sequence[MorphismT_inv]) -> None:
        """
        Raises :class:`ValueError` if the given values cannot be contracted along
        the given wiring.
        """
        assert validate(wiring, Wiring)
        morphism_class = self.__morphism_class
        if len(values) != wiring.num_boxes:
            raise ValueError(
                f"Expected a value for each of the {wiring.num_boxes} boxes,"
                f" got {len(values)}."
            )
        for b, (value, shape) in enumerate(zip(values, wiring.box_shapes)):
            if not isinstance(value, morphism_class):
                raise ValueError(
                    f"Value for box {b} is not an instance of"
                    f" {morphism_class.__name__}."
                )
            if value.shape != shape:
                raise ValueError(f"Value for box {b} does not match the box shape.")

    def path(self, wiring: Wiring) -> ContractionPath:
        """
        The contraction path for the given wiring, after repeated junctions on each
        box have been merged, ignoring boxes without ports.
        The path is empty for wirings with less than 2 boxes having ports.
        """
        assert validate(wiring, Wiring)
        try:
            return self.__paths[wiring]
        except KeyError:
            pass
        path: ContractionPath = ()
        if sum(1 for js in wiring.box_junctions if js) >= 2:
            path = _contraction_path(wiring, self.__optimize)
            logger.debug(
                "Computed contraction path of %d steps for %r.", len(path), wiring
            )
        self.__paths[wiring] = path
        return path

    def __call__(
        self, wiring: Wiring, values: Sequence[MorphismT_inv]
    ) -> MorphismT_inv:
        """
        Contracts the given values along the given wiring.

        :raises ValueError: if the values cannot be contracted along the wiring
        """
        self.validate(wiring, values)
        cls = self.__morphism_class
        contract2 = cls.contract2
        outer_junctions = wiring.outer_junctions
        outer_set = set(outer_junctions)
        # 1. Merge repeated junctions on each box into their diagonal:
        operands: list[Operand[MorphismT_inv]] = []
        scalars: list[MorphismT_inv] = []
        for value, js in zip(values, wiring.box_junctions):
            if not js:
                scalars.append(value)
                continue
            unique_js = tuple(dict.fromkeys(js))
            if len(unique_js) != len(js):
                value = contract2(value, js, cls.unit(), (), unique_js)
            operands.append((value, unique_js))
        # 2. Contract operands along the path, dropping junctions as soon as they
        #    touch neither outer ports nor remaining operands:
        for step in self.path(wiring):
            group = [operands.pop(idx) for idx in sorted(step, reverse=True)]
            lhs, lhs_js = group.pop()
            while group:
                rhs, rhs_js = group.pop()
                remaining = {j for _, js in (*operands, *group) for j in js}
                res_js = tuple(
                    j
                    for j in dict.fromkeys(lhs_js + rhs_js)
                    if j in outer_set or j in remaining
                )
                lhs, lhs_js = contract2(lhs, lhs_js, rhs, rhs_js, res_js), res_js
            operands.append((lhs, lhs_js))
        assert len(operands) <= 1
        if operands:
            res, res_js = operands[0]
        else:
            res, res_js = cls.unit(), ()
        for scalar in scalars:
            res = contract2(res, res_js, scalar, (), res_js)
        # 3. Drop junctions not connected to outer ports (single box case):
        if any(j not in outer_set for j in res_js):
            proj_js = tuple(j for j in res_js if j in outer_set)
            res, res_js = contract2(res, res_js, cls.unit(), (), proj_js), proj_js
        # 4. Add outer junctions missing or repeated, using spiders:
        res, res_js, out_labels = _add_spiders(cls, wiring, res, res_js)
        # 5. Transpose into outer port order:
        perm = [res_js.index(label) for label in out_labels]
        if perm != sorted(perm):
            res = res.transpose(perm)
        return res

    def __repr__(self) -> str:
        return f"<Contraction {id(self):#x}: {self.__morphism_class.__name__}>"


def _contraction_path(wiring: Wiring, optimize: OptEinsumOptimize) -> ContractionPath:
    """Computes a contraction path using :func:`opt_einsum.contract_path`."""
    dims = wiring.junction_types.dims
    terms: list[str] = []
    shapes: list[tuple[int, ...]] = []
    present: set[Junction] = set()
    for js in wiring.box_junctions:
        if not js:
            continue
        unique_js = tuple(dict.fromkeys(js))
        present.update(unique_js)
        terms.append("".join(opt_einsum.get_symbol(j) for j in unique_js))
        shapes.append(tuple(dims[j] for j in unique_js))
    out_term = "".join(
        opt_einsum.get_symbol(j)
        for j in dict.fromkeys(wiring.outer_junctions)
        if j in present
    )
    path, _ = opt_einsum.contract_path(
        f"{','.join(terms)}->{out_term}",
        *shapes,
        optimize=optimize,
        use_blas=False,
        shapes=True,
    )
    return tuple(tuple(step) for step in path)


def _add_spiders[M: Morphism](
    cls: SubclassOf[M], wiring: Wiring, res: M, res_js: tuple[Junction, ...]
) -> tuple[M, tuple[Junction, ...], tuple[Junction, ...]]:
    """
    Adds the outer junctions which are missing from the result of a contraction,
    or which are connected to more than one outer port, by contracting the result
    with spiders on fresh labels. Returns the new result, the labels of its ports,
    and the label of each outer port.
    """
    outer_junctions = wiring.outer_junctions
    multiplicity = Counter(outer_junctions)
    fresh = wiring.num_junctions
    out_labels: list[Junction] = []
    spider_labels: dict[Junction, list[Junction]] = {}
    for j in outer_junctions:
        if j not in spider_labels:
            spider_labels[j] = [j]
            out_labels.append(j)
        else:
            spider_labels[j].append(fresh)
            out_labels.append(fresh)
            fresh += 1
    junction_types = wiring.junction_types
    for j, labels in spider_labels.items():
        if j in res_js and multiplicity[j] == 1:
            continue
        spider = junction_types[j].spider(len(labels))
        new_js = res_js + tuple(label for label in labels if label not in res_js)
        res = cls.contract2(res, res_js, spider, labels, new_js)
        res_js = new_js
    return res, res_js, tuple(out_labels)
