"""
Scheduling algorithms, assigning the boxes of a wiring to a forest of composites.

Two algorithms are available (cf. :obj:`SchedulingAlgorithm`):

- ``"sequential"`` (cf. :func:`sequential_schedule`), a linear chain of composites
  folding one box at a time into the result of the previous composite;
- ``"tree_decomposition"`` (cf. :func:`tree_decomposition_schedule`), one composite
  per bag of a supernodal tree decomposition of the wiring's dual graph.

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
from collections.abc import Sequence
import logging
from typing import Literal, TypeAlias, TypedDict, Unpack, cast

from ..diagrams import Box, Wiring
from .decomposition import (
    DEFAULT_ELIMINATION,
    DEFAULT_SUPERNODE,
    EliminationPolicy,
    SupernodePolicy,
    dual_graph,
    supernode_tree,
)
from .scheduled import Composite, ScheduledWiring

if __debug__:
    from typing_validation import validate

logger = logging.getLogger(__name__)

SchedulingAlgorithm: TypeAlias = Literal["sequential", "tree_decomposition"]
"""Names of the scheduling algorithms available to :func:`schedule`."""


class SequentialOptions(TypedDict, total=False):
    """Options for the ``"sequential"`` scheduling algorithm."""

    order: Sequence[Box] | None
    """Order in which boxes are folded into the chain, defaults to box order."""


class TreeDecompositionOptions(TypedDict, total=False):
    """Options for the ``"tree_decomposition"`` scheduling algorithm."""

    elimination: EliminationPolicy
    """Elimination policy for the tree decomposition of the dual graph."""

    supernode: SupernodePolicy
    """Supernode policy for the tree decomposition of the dual graph."""


class ScheduleOptions(SequentialOptions, TreeDecompositionOptions, total=False):
    """
    Options for :func:`schedule`. Only the options of the chosen algorithm may be
    passed.
    """


def schedule(
    wiring: Wiring,
    alg: SchedulingAlgorithm = "sequential",
    **options: Unpack[ScheduleOptions],
) -> ScheduledWiring:
    """
    Schedules the given wiring using the given algorithm.
    Keyword options are passed to the function implementing the algorithm:

    - ``"sequential"``: :func:`sequential_schedule`, see :class:`SequentialOptions`
    - ``"tree_decomposition"``: :func:`tree_decomposition_schedule`, see
      :class:`TreeDecompositionOptions`

    :raises ValueError: if the algorithm is unknown
    """
    match alg:
        case "sequential":
            return sequential_schedule(wiring, **cast(SequentialOptions, options))
        case "tree_decomposition":
            return tree_decomposition_schedule(
                wiring, **cast(TreeDecompositionOptions, options)
            )
        case _:
            raise ValueError(f"Unknown scheduling algorithm {alg!r}.")


def sequential_schedule(
    wiring: Wiring, *, order: Sequence[Box] | None = None
) -> ScheduledWiring:
    """
    Schedules the given wiring as a chain of ``max(1, n-1)`` composites, where ``n``
    is the number of boxes. The first two boxes in the order are assigned to the
    first composite, and each subsequent box to the next composite in the chain.
    Each composite is the parent of the previous one, and the last is the root.

    :raises ValueError: if the order is not a permutation of the boxes
    """
    assert validate(wiring, Wiring)
    n = wiring.num_boxes
    if order is None:
        order = wiring.boxes
    else:
        order = tuple(order)
        assert validate(order, tuple[Box, ...])
        if len(order) != n:
            raise ValueError(
                f"Box order has length {len(order)}, expected {n} for the number"
                " of boxes in the wiring."
            )
        if set(order) != set(wiring.boxes):
            raise ValueError("Box order must be a permutation of the boxes.")
    k = max(1, n - 1)
    parents = tuple(min(c + 1, k - 1) for c in range(k))
    box_parents: list[Composite] = [0] * n
    for i, b in enumerate(order):
        box_parents[b] = max(0, i - 1)
    logger.debug("Sequential schedule of %d boxes into %d composites.", n, k)
    return ScheduledWiring._new(wiring, parents, tuple(box_parents))


def tree_decomposition_schedule(
    wiring: Wiring,
    *,
    elimination: EliminationPolicy = DEFAULT_ELIMINATION,
    supernode: SupernodePolicy = DEFAULT_SUPERNODE,
) -> ScheduledWiring:
    """
    Schedules the given wiring with one composite per bag of a supernodal tree
    decomposition of its dual graph (cf. :func:`dual_graph`).

    Bags are visited from the leaves towards the root. Each box with a port on a
    junction in the residual of a bag is assigned to that bag, so that a box ends up
    in the most root-ward of the bags where its junctions are introduced. Boxes with
    no ports are assigned to the root of the decomposition.

    The schedule is rooted at the first bag visited whose residual contains an outer
    junction: because the outer junctions form a clique, this bag contains all of
    them. If there are no outer junctions, the root of the decomposition is kept.

    :raises ValueError: if the elimination or supernode policies are invalid
    """
    assert validate(wiring, Wiring)
    tree = supernode_tree(
        dual_graph(wiring), elimination=elimination, supernode=supernode
    )
    ports_with_junction = wiring.ports_with_junction
    outer_ports_with_junction = wiring.outer_ports_with_junction
    box_parents: list[Composite] = [tree.root] * wiring.num_boxes
    root: Composite | None = None
    for bag in reversed(range(len(tree))):
        for j in sorted(tree.residuals[bag]):
            for b, _ in ports_with_junction(j):
                box_parents[b] = bag
            if root is None and outer_ports_with_junction(j):
                root = bag
    if root is None:
        root = tree.root
    parents = tree.reroot(root)
    logger.debug(
        "Tree decomposition schedule of %d boxes into %d composites, rooted at %d.",
        wiring.num_boxes,
        len(tree),
        root,
    )
    return ScheduledWiring._new(wiring, parents, tuple(box_parents))
