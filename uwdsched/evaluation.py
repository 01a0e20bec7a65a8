"""
Evaluation of scheduled wirings, by combining the values of boxes one composite at
a time with a user-supplied combination function.
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
from collections.abc import Callable, Sequence
import logging

from .diagrams import Junction, Shape, Type, Wiring
from .schedules import Composite, ScheduledWiring, to_nested

if __debug__:
    from typing_validation import validate

logger = logging.getLogger(__name__)


def local_wiring(
    junction_types: Shape[Type],
    box_junctions: Sequence[Sequence[Junction]],
    outer_junctions: Sequence[Junction],
) -> Wiring:
    """
    Builds a wiring from boxes and outer ports connected to some of the junctions
    of a larger wiring, with given junction types.
    Junctions are renumbered densely, in order of first appearance amongst box ports
    and then outer ports.
    """
    box_junctions = tuple(map(tuple, box_junctions))
    outer_junctions = tuple(outer_junctions)
    index: dict[Junction, Junction] = {}
    for js in (*box_junctions, outer_junctions):
        for j in js:
            index.setdefault(j, len(index))
    return Wiring._new(
        junction_types[tuple(index)],
        tuple(tuple(index[j] for j in js) for js in box_junctions),
        tuple(index[j] for j in outer_junctions),
    )


def eval_schedule[V](
    f: Callable[[Wiring, Sequence[V]], V],
    schedule: ScheduledWiring,
    generators: Sequence[V],
) -> V:
    """
    Evaluates a scheduled wiring, given a value for each box.

    Composites are evaluated children first, starting from the unique root.
    Each composite is evaluated by calling ``f`` once on its local wiring, whose
    boxes are the boxes of the composite followed by its child composites, together
    with the corresponding values. The outer ports of the local wiring are the
    ports of the composite, or the outer ports of the wiring for the root.
    Scheduled wirings which are not nested are nested first, by :func:`to_nested`.

    Exceptions raised by ``f`` are propagated unchanged.

    :raises ValueError: if the number of generators does not match the boxes
    :raises ValueError: if the schedule does not have exactly one root
    """
    assert validate(schedule, ScheduledWiring)
    nested = to_nested(schedule)
    wiring = nested.wiring
    if len(generators) != wiring.num_boxes:
        raise ValueError(
            f"Expected a generator for each of the {wiring.num_boxes} boxes,"
            f" got {len(generators)}."
        )
    root = nested.root
    junction_types, box_junctions = wiring.junction_types, wiring.box_junctions
    results: dict[Composite, V] = {}
    for c in nested.post_order(root):
        boxes, children = nested.box_children(c), nested.children(c)
        values = [generators[b] for b in boxes]
        values.extend(results.pop(child) for child in children)
        outer_junctions = (
            wiring.outer_junctions if c == root else nested.composite_junctions(c)
        )
        local = local_wiring(
            junction_types,
            [
                *(box_junctions[b] for b in boxes),
                *(nested.composite_junctions(child) for child in children),
            ],
            outer_junctions,
        )
        logger.debug(
            "Evaluating composite %d: %d boxes, %d children, %d ports.",
            c,
            len(boxes),
            len(children),
            len(outer_junctions),
        )
        results[c] = f(local, values)
    return results.pop(root)
