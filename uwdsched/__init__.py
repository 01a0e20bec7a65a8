"""
UWDSched schedules the evaluation of undirected wiring diagrams, assigning their
boxes to a tree of nested composites (either a sequential chain or the bags of a
tree decomposition), and evaluates them one composite at a time with any
combination function, such as the contraction of finite relations.
"""

# UWDSched - scheduling, nesting and evaluation of undirected wiring diagrams

# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.

# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

from .diagrams import Wiring, WiringBuilder
from .schedules import (
    NestedWiring,
    ScheduledWiring,
    SchedulingAlgorithm,
    schedule,
    to_nested,
)
from .evaluation import eval_schedule, local_wiring
from .contraction import Contraction

__all__ = (
    "Wiring",
    "WiringBuilder",
    "NestedWiring",
    "ScheduledWiring",
    "SchedulingAlgorithm",
    "schedule",
    "to_nested",
    "eval_schedule",
    "local_wiring",
    "Contraction",
)
