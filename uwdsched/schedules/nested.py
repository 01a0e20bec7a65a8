"""
Nested wirings, i.e. scheduled wirings whose composites have been given ports.
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
from typing import Self, final

from networkx.utils import UnionFind

from ..diagrams import Junction, Port, Wiring
from .scheduled import Composite, ScheduledWiring

if __debug__:
    from typing_validation import validate

logger = logging.getLogger(__name__)


@final
class NestedWiring(ScheduledWiring):
    """
    A scheduled wiring whose composites have been given ports, making explicit the
    intermediate boxes in the composition.

    The ports of a composite are connected to its outgoing junctions: the junctions
    touching a box in the composite's subtree which also touch an outer port or a box
    outside of the subtree. They are listed in increasing junction order.
    """

    @classmethod
    def _new(  # type: ignore[override]
        cls,
        wiring: Wiring,
        parents: tuple[Composite, ...],
        box_parents: tuple[Composite, ...],
        composite_junctions: tuple[tuple[Junction, ...], ...],
    ) -> Self:
        """Protected constructor."""
        self = super()._new(wiring, parents, box_parents)
        self.__composite_junctions = composite_junctions
        return self

    __composite_junctions: tuple[tuple[Junction, ...], ...]

    __slots__ = ("__composite_junctions",)

    def __new__(  # type: ignore[misc]
        cls,
        wiring: Wiring,
        parents: Sequence[Composite],
        box_parents: Sequence[Composite],
        composite_junctions: Sequence[Sequence[Junction]],
    ) -> Self:
        """
        Constructs a nested wiring, given the junction for each port of each
        composite in addition to the data for a scheduled wiring.

        Use :func:`to_nested` to compute composite ports from a scheduled wiring.

        :raises ValueError: if the scheduled wiring data is invalid
        :raises ValueError: if composite ports are given for the wrong number of
                            composites, or are connected to invalid junctions
        """
        composite_junctions = tuple(map(tuple, composite_junctions))
        assert validate(composite_junctions, tuple[tuple[Junction, ...], ...])
        scheduled = ScheduledWiring(wiring, parents, box_parents)
        if len(composite_junctions) != scheduled.num_composites:
            raise ValueError(
                f"Expected ports for each of the {scheduled.num_composites}"
                f" composites, got {len(composite_junctions)}."
            )
        junctions = wiring.junctions
        for c, js in enumerate(composite_junctions):
            for j in js:
                if j not in junctions:
                    raise ValueError(f"Invalid junction {j} for a port of composite {c}.")
        return cls._new(
            wiring, scheduled.parents, scheduled.box_parents, composite_junctions
        )

    def composite_ports(self, composite: Composite) -> Sequence[Port]:
        """Sequence of (the indices of) ports for the given composite."""
        return range(len(self.__composite_junctions[composite]))

    def composite_junctions(self, composite: Composite) -> tuple[Junction, ...]:
        """The junction for each port of the given composite."""
        return self.__composite_junctions[composite]

    def composite_junction(self, composite: Composite, port: Port) -> Junction:
        """The junction to which the given port of the given composite is connected."""
        return self.__composite_junctions[composite][port]

    @property
    def num_composite_ports(self) -> int:
        """Total number of composite ports."""
        return sum(map(len, self.__composite_junctions))

    @property
    def width(self) -> int:
        """
        Largest number of ports of any composite, a measure of the size of the
        intermediate results in an evaluation of the schedule.
        """
        return max(map(len, self.__composite_junctions), default=0)


def to_nested(scheduled: ScheduledWiring) -> NestedWiring:
    """
    Converts a scheduled wiring to a nested wiring, by computing the ports of each
    composite. Nested wirings are returned unchanged.

    Composites are visited children first: the boxes and child composites of each
    composite are merged into its set in a disjoint-set structure, so that a box
    lies in the composite's subtree iff it is in the same set as the composite.
    A junction touching the composite's boxes or child composite ports becomes a
    port of the composite iff it also touches an outer port or a box outside of the
    subtree.
    """
    if isinstance(scheduled, NestedWiring):
        return scheduled
    assert validate(scheduled, ScheduledWiring)
    wiring = scheduled.wiring
    box_junctions = wiring.box_junctions
    ports_with_junction = wiring.ports_with_junction
    outer_ports_with_junction = wiring.outer_ports_with_junction
    n = wiring.num_boxes
    sets = UnionFind(range(n + scheduled.num_composites))
    composite_junctions: list[tuple[Junction, ...]] = [()] * scheduled.num_composites
    for root in scheduled.roots:
        for c in scheduled.post_order(root):
            boxes, children = scheduled.box_children(c), scheduled.children(c)
            js: set[Junction] = set()
            for b in boxes:
                js.update(box_junctions[b])
            for child in children:
                js.update(composite_junctions[child])
            sets.union(n + c, *boxes, *(n + child for child in children))
            c_set = sets[n + c]
            composite_junctions[c] = tuple(
                j
                for j in sorted(js)
                if outer_ports_with_junction(j)
                or any(sets[b] != c_set for b, _ in ports_with_junction(j))
            )
    nested = NestedWiring._new(
        wiring, scheduled.parents, scheduled.box_parents, tuple(composite_junctions)
    )
    logger.debug(
        "Nested %d composites with %d ports in total, width %d.",
        nested.num_composites,
        nested.num_composite_ports,
        nested.width,
    )
    return nested
