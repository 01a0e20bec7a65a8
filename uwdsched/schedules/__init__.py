"""
Schedules for the evaluation of wirings.

A scheduled wiring (cf. :class:`ScheduledWiring`) assigns the boxes of a wiring to
the composites of a rooted forest, each composite standing for an intermediate
evaluation step. Scheduled wirings are produced by :func:`schedule`, and nested by
:func:`to_nested` into a :class:`NestedWiring`, where each composite has ports.
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

from .scheduled import Composite, ScheduledWiring
from .nested import NestedWiring, to_nested
from .decomposition import (
    DEFAULT_ELIMINATION,
    DEFAULT_SUPERNODE,
    EliminationHeuristic,
    EliminationPolicy,
    SupernodePolicy,
    SupernodeTree,
    dual_graph,
    supernode_tree,
)
from .algorithms import (
    SchedulingAlgorithm,
    SequentialOptions,
    TreeDecompositionOptions,
    ScheduleOptions,
    schedule,
    sequential_schedule,
    tree_decomposition_schedule,
)

__all__ = (
    "Composite",
    "ScheduledWiring",
    "NestedWiring",
    "to_nested",
    "DEFAULT_ELIMINATION",
    "DEFAULT_SUPERNODE",
    "EliminationHeuristic",
    "EliminationPolicy",
    "SupernodePolicy",
    "SupernodeTree",
    "dual_graph",
    "supernode_tree",
    "SchedulingAlgorithm",
    "SequentialOptions",
    "TreeDecompositionOptions",
    "ScheduleOptions",
    "schedule",
    "sequential_schedule",
    "tree_decomposition_schedule",
)
