"""
Scheduled wirings, i.e. wirings whose boxes are assigned to the nodes of a rooted
forest of composites.
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
from collections.abc import Iterator, Sequence
from typing import Self, TypeAlias

from ..diagrams import Box, Wiring

if __debug__:
    from typing_validation import validate

Composite: TypeAlias = int
"""
Type alias for (the index of) a composite in a scheduled wiring.
A composite is an intermediate contraction step, owning some boxes and some child
composites.
"""


class ScheduledWiring:
    """
    A wiring together with a set of composites forming a rooted forest, where each
    box of the wiring is assigned to exactly one composite.

    The forest is given by a parent for each composite, roots being exactly those
    composites which are their own parent.

    See also: :class:`~uwdsched.schedules.NestedWiring`.
    """

    @classmethod
    def _new(
        cls,
        wiring: Wiring,
        parents: tuple[Composite, ...],
        box_parents: tuple[Composite, ...],
    ) -> Self:
        """Protected constructor."""
        self = super().__new__(cls)
        self.__wiring = wiring
        self.__parents = parents
        self.__box_parents = box_parents
        children: list[list[Composite]] = [[] for _ in parents]
        for c, p in enumerate(parents):
            if p != c:
                children[p].append(c)
        box_children: list[list[Box]] = [[] for _ in parents]
        for b, p in enumerate(box_parents):
            box_children[p].append(b)
        self.__children = tuple(map(tuple, children))
        self.__box_children = tuple(map(tuple, box_children))
        self.__roots = tuple(c for c, p in enumerate(parents) if p == c)
        return self

    __wiring: Wiring
    __parents: tuple[Composite, ...]
    __box_parents: tuple[Composite, ...]
    __children: tuple[tuple[Composite, ...], ...]
    __box_children: tuple[tuple[Box, ...], ...]
    __roots: tuple[Composite, ...]

    __slots__ = (
        "__weakref__",
        "__wiring",
        "__parents",
        "__box_parents",
        "__children",
        "__box_children",
        "__roots",
    )

    def __new__(
        cls,
        wiring: Wiring,
        parents: Sequence[Composite],
        box_parents: Sequence[Composite],
    ) -> Self:
        """
        Constructs a scheduled wiring from a wiring, the parent of each composite
        and the parent composite of each box.

        :raises ValueError: if the parents do not form a rooted forest
        :raises ValueError: if some box is not assigned to a valid composite
        """
        parents = tuple(parents)
        box_parents = tuple(box_parents)
        assert validate(wiring, Wiring)
        assert validate(parents, tuple[Composite, ...])
        assert validate(box_parents, tuple[Composite, ...])
        _validate_forest(parents)
        num_composites = len(parents)
        if len(box_parents) != wiring.num_boxes:
            raise ValueError(
                f"Expected a parent composite for each of the {wiring.num_boxes}"
                f" boxes, got {len(box_parents)}."
            )
        for b, c in enumerate(box_parents):
            if c not in range(num_composites):
                raise ValueError(f"Invalid parent composite {c} for box {b}.")
        return cls._new(wiring, parents, box_parents)

    @property
    def wiring(self) -> Wiring:
        """The underlying wiring."""
        return self.__wiring

    @property
    def parents(self) -> tuple[Composite, ...]:
        """The parent of each composite."""
        return self.__parents

    @property
    def box_parents(self) -> tuple[Composite, ...]:
        """The composite to which each box is assigned."""
        return self.__box_parents

    @property
    def num_composites(self) -> int:
        """Number of composites."""
        return len(self.__parents)

    @property
    def composites(self) -> Sequence[Composite]:
        """Sequence of (the indices of) composites."""
        return range(self.num_composites)

    def parent(self, composite: Composite) -> Composite:
        """The parent of the given composite, which is itself for roots."""
        return self.__parents[composite]

    def children(self, composite: Composite) -> tuple[Composite, ...]:
        """The child composites of the given composite, excluding itself."""
        return self.__children[composite]

    def box_children(self, composite: Composite) -> tuple[Box, ...]:
        """The boxes assigned to the given composite."""
        return self.__box_children[composite]

    def box_parent(self, box: Box) -> Composite:
        """The composite to which the given box is assigned."""
        return self.__box_parents[box]

    @property
    def roots(self) -> tuple[Composite, ...]:
        """The roots of the forest, i.e. the composites which are their own parent."""
        return self.__roots

    @property
    def root(self) -> Composite:
        """
        The root of the forest, which is required to be unique.

        :raises ValueError: if the forest has no roots or more than one root
        """
        roots = self.__roots
        if len(roots) != 1:
            raise ValueError(
                f"Scheduled wiring must have exactly one root composite,"
                f" found {len(roots)}."
            )
        return roots[0]

    def post_order(self, composite: Composite) -> Iterator[Composite]:
        """
        Iterates over the composites in the subtree rooted at the given composite,
        yielding the children of each composite before the composite itself.
        """
        children = self.__children
        stack: list[tuple[Composite, bool]] = [(composite, False)]
        while stack:
            c, expanded = stack.pop()
            if expanded:
                yield c
                continue
            stack.append((c, True))
            stack.extend((child, False) for child in reversed(children[c]))

    def depth(self, composite: Composite) -> int:
        """Number of ancestors of the given composite, excluding itself."""
        parents = self.__parents
        depth = 0
        while (p := parents[composite]) != composite:
            composite = p
            depth += 1
        return depth

    def __repr__(self) -> str:
        num_composites = self.num_composites
        num_roots = len(self.__roots)
        attrs = [
            f"{self.__wiring.num_boxes} boxes",
            f"{num_composites} composite{'s' if num_composites != 1 else ''}",
        ]
        if num_roots != 1:
            attrs.append(f"{num_roots} roots")
        return f"<{type(self).__name__} {id(self):#x}: {", ".join(attrs)}>"


def _validate_forest(parents: tuple[Composite, ...]) -> None:
    """
    Checks that the given parents form a rooted forest: following parents from any
    composite must reach a self-parented composite without revisiting a composite.

    :raises ValueError: if a parent is invalid or a cycle is found
    """
    num_composites = len(parents)
    for c, p in enumerate(parents):
        if p not in range(num_composites):
            raise ValueError(f"Invalid parent {p} for composite {c}.")
    # 0 = unvisited, 1 = on the current path, 2 = known to reach a root
    state = [0] * num_composites
    for start in range(num_composites):
        path: list[Composite] = []
        c = start
        while state[c] == 0:
            state[c] = 1
            path.append(c)
            if (p := parents[c]) == c:
                break
            c = p
        else:
            if state[c] == 1:
                raise ValueError(f"Composite parents contain a cycle through {c}.")
        for visited in path:
            state[visited] = 2
