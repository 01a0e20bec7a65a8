"""
Undirected wiring diagrams.

A wiring (cf. :class:`Wiring`) consists of boxes with ports, together with an outer
interface of ports, all connected to typed junctions (cf. :class:`Type`).
Values for the boxes are morphisms (cf. :class:`Morphism`) of some value algebra,
whose shapes must match the types of the junctions to which box ports are connected.
"""

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

from .types import Type, TypeT_co, TypeT_inv, Shape
from .wirings import (
    Box,
    Port,
    Junction,
    WiringData,
    Shaped,
    Wiring,
    WiringBuilder,
)
from .morphisms import Morphism, MorphismT_inv

__all__ = (
    "Type",
    "TypeT_co",
    "TypeT_inv",
    "Shape",
    "Box",
    "Port",
    "Junction",
    "WiringData",
    "Shaped",
    "Wiring",
    "WiringBuilder",
    "Morphism",
    "MorphismT_inv",
)
