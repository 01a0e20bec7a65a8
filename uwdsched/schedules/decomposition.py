"""
Dual graphs of wirings and their supernodal tree decompositions.

The tree decompositions are computed with the treewidth heuristics of
:mod:`networkx`, or from an explicit elimination order.
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
from collections.abc import Hashable, Sequence
from itertools import combinations
import logging
from typing import Final, Literal, Self, TypeAlias, final

import networkx as nx
from networkx.algorithms.approximation import (
    treewidth_min_degree,
    treewidth_min_fill_in,
)

from ..diagrams import Wiring

if __debug__:
    from typing_validation import validate

logger = logging.getLogger(__name__)

EliminationHeuristic: TypeAlias = Literal["min_degree", "min_fill_in"]
"""Names of the elimination heuristics which can be used by :func:`supernode_tree`."""

EliminationPolicy: TypeAlias = EliminationHeuristic | Sequence[Hashable]
"""
An elimination policy for :func:`supernode_tree`, either the name of a heuristic or
an explicit elimination order, as a permutation of the vertices of the graph.
"""

SupernodePolicy: TypeAlias = Literal["nodal", "maximal"]
"""
A supernode policy for :func:`supernode_tree`, determining how vertices are grouped
into bags:

- ``"nodal"``: one bag for each eliminated vertex, with its neighbours at the time of
  elimination;
- ``"maximal"``: as ``"nodal"``, but bags contained in an adjacent bag are merged
  into it, so that the remaining bags are maximal.

"""

DEFAULT_ELIMINATION: Final[EliminationHeuristic] = "min_fill_in"
"""Default elimination policy."""

DEFAULT_SUPERNODE: Final[SupernodePolicy] = "maximal"
"""Default supernode policy."""

Bag: TypeAlias = int
"""Type alias for (the index of) a bag in a :class:`SupernodeTree`."""


def dual_graph(wiring: Wiring) -> nx.Graph:
    """
    The dual graph of a wiring, having the junctions as vertices.
    Two distinct junctions are adjacent if they are connected to ports of the same
    box, or if they are both connected to outer ports.
    The clique on outer junctions forces all of them into a common bag of any tree
    decomposition.
    """
    assert validate(wiring, Wiring)
    graph = nx.Graph()
    graph.add_nodes_from(wiring.junctions)
    for js in wiring.box_junctions:
        graph.add_edges_from(combinations(sorted(set(js)), 2))
    graph.add_edges_from(combinations(sorted(set(wiring.outer_junctions)), 2))
    return graph


@final
class SupernodeTree:
    """
    A rooted tree decomposition, where each vertex of the decomposed graph belongs
    to the residual of exactly one bag: the bag closest to the root amongst those
    containing the vertex.

    Bags are indexed in breadth-first order from the root, so that each bag comes
    after its parent.
    """

    @classmethod
    def _new(
        cls,
        bags: tuple[frozenset[Hashable], ...],
        parents: tuple[Bag, ...],
    ) -> Self:
        """Protected constructor. Presumes bags are indexed breadth-first."""
        self = super().__new__(cls)
        self.__bags = bags
        self.__parents = parents
        self.__residuals = tuple(
            frozenset(bag) if parents[i] == i else bag - bags[parents[i]]
            for i, bag in enumerate(bags)
        )
        return self

    __bags: tuple[frozenset[Hashable], ...]
    __parents: tuple[Bag, ...]
    __residuals: tuple[frozenset[Hashable], ...]

    __slots__ = ("__weakref__", "__bags", "__parents", "__residuals")

    @property
    def bags(self) -> tuple[frozenset[Hashable], ...]:
        """The bags of the decomposition."""
        return self.__bags

    @property
    def parents(self) -> tuple[Bag, ...]:
        """The parent of each bag, which is itself for the root."""
        return self.__parents

    @property
    def residuals(self) -> tuple[frozenset[Hashable], ...]:
        """The vertices of each bag which do not belong to its parent bag."""
        return self.__residuals

    @property
    def root(self) -> Bag:
        """The root bag."""
        return 0

    @property
    def width(self) -> int:
        """The width of the decomposition, i.e. the size of its largest bag minus 1."""
        return max(map(len, self.__bags)) - 1

    def __len__(self) -> int:
        return len(self.__bags)

    def reroot(self, root: Bag) -> tuple[Bag, ...]:
        """Parents of the bags when the tree is re-rooted at the given bag."""
        parents = self.__parents
        if root not in range(len(parents)):
            raise ValueError(f"Invalid bag {root}.")
        new_parents = list(parents)
        prev, curr = root, root
        while True:
            next_ = parents[curr]
            new_parents[curr] = prev
            if next_ == curr:
                break
            prev, curr = curr, next_
        return tuple(new_parents)

    def __repr__(self) -> str:
        return f"<SupernodeTree {id(self):#x}: {len(self)} bags, width {self.width}>"


def supernode_tree(
    graph: nx.Graph,
    *,
    elimination: EliminationPolicy = DEFAULT_ELIMINATION,
    supernode: SupernodePolicy = DEFAULT_SUPERNODE,
) -> SupernodeTree:
    """
    Computes a rooted tree decomposition of the given graph, using the given
    elimination and supernode policies (see :obj:`EliminationPolicy` and
    :obj:`SupernodePolicy`). The tree is rooted at the first bag listed by the
    decomposition, which contains the vertices eliminated last.

    :raises ValueError: if the policies are invalid
    """
    assert validate(graph, nx.Graph)
    decomp: nx.Graph
    if isinstance(elimination, str):
        match elimination:
            case "min_degree":
                _, decomp = treewidth_min_degree(graph)
            case "min_fill_in":
                _, decomp = treewidth_min_fill_in(graph)
            case _:
                raise ValueError(f"Unknown elimination heuristic {elimination!r}.")
    else:
        decomp = _decomposition_from_order(graph, tuple(elimination))
    root_bag: frozenset[Hashable] = next(iter(decomp.nodes))
    match supernode:
        case "nodal":
            pass
        case "maximal":
            decomp, root_bag = _merge_non_maximal_bags(decomp, root_bag)
        case _:
            raise ValueError(f"Unknown supernode policy {supernode!r}.")
    bags: list[frozenset[Hashable]] = [root_bag]
    parents: list[Bag] = [0]
    index = {root_bag: 0}
    for parent_bag, bag in nx.bfs_edges(decomp, root_bag):
        index[bag] = len(bags)
        bags.append(bag)
        parents.append(index[parent_bag])
    tree = SupernodeTree._new(tuple(bags), tuple(parents))
    logger.debug(
        "Tree decomposition of %d vertices into %d bags, width %d.",
        graph.number_of_nodes(),
        len(tree),
        tree.width,
    )
    return tree


def _decomposition_from_order(
    graph: nx.Graph, order: tuple[Hashable, ...]
) -> nx.Graph:
    """
    Tree decomposition obtained by eliminating vertices in the given order.
    The last vertex in the order is not eliminated, and forms the first bag.
    """
    if len(order) != graph.number_of_nodes() or set(order) != set(graph.nodes):
        raise ValueError("Elimination order must be a permutation of the vertices.")
    adj = {v: set(graph[v]) - {v} for v in graph}
    eliminated: list[tuple[Hashable, frozenset[Hashable]]] = []
    for v in order[:-1]:
        nbrs = adj.pop(v)
        for u in nbrs:
            adj[u].discard(v)
            adj[u].update(nbrs - {u})
        eliminated.append((v, frozenset(nbrs)))
    decomp = nx.Graph()
    first_bag = frozenset(adj)
    decomp.add_node(first_bag)
    while eliminated:
        v, nbrs = eliminated.pop()
        old_bag = next((bag for bag in decomp if nbrs <= bag), first_bag)
        decomp.add_edge(old_bag, nbrs | {v})
    return decomp


def _merge_non_maximal_bags(
    decomp: nx.Graph, root_bag: frozenset[Hashable]
) -> tuple[nx.Graph, frozenset[Hashable]]:
    """
    Merges each bag contained in an adjacent bag into that bag, until none is.
    Returns the new decomposition and the bag into which the given root was merged.

    Merging only changes the neighbourhood of the larger bag, so only that bag is
    checked again after each merge.
    """
    decomp = nx.Graph(decomp)
    worklist = list(decomp.nodes)
    while worklist:
        bag = worklist.pop()
        if bag not in decomp:
            continue
        for nbr in decomp[bag]:
            if bag <= nbr:
                small, large = bag, nbr
            elif nbr <= bag:
                small, large = nbr, bag
            else:
                continue
            nx.contracted_nodes(decomp, large, small, self_loops=False, copy=False)
            if small == root_bag:
                root_bag = large
            worklist.append(large)
            break
    return decomp, root_bag
