"""
Implementation of wirings and their builders for the :mod:`uwdsched.diagrams` module.
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


from __future__ import annotations
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import (
    ClassVar,
    Generic,
    Self,
    TypeAlias,
    TypedDict,
    Unpack,
    final,
)
from hashcons import InstanceStore

if __debug__:
    from typing_validation import validate

from .types import Type, Shape, TypeT_co


Box: TypeAlias = int
"""Type alias for (the index of) a box in a wiring."""

Port: TypeAlias = int
"""
Type alias for (the index of) a port, either of a box or of the outer interface.
Ports are numbered from zero separately for each box and for the outer interface.
"""

Junction: TypeAlias = int
"""
Type alias for (the index of) a junction in a wiring.
Each port is connected to exactly one junction, but a junction can connect any
number of ports, including none.
"""


class WiringData(TypedDict, total=True):
    """Data for a wiring."""

    junction_types: Sequence[Type]
    """Junction types."""

    box_junctions: Sequence[Sequence[Junction]]
    """Assignment of a junction to each port of each box."""

    outer_junctions: Sequence[Junction]
    """Assignment of a junction to each outer port."""


class Shaped(Generic[TypeT_co], ABC):
    """Interface and mixin properties for objects with a shape."""

    __slots__ = ()

    @property
    @abstractmethod
    def shape(self) -> Shape[TypeT_co]:
        """Shape of the object."""

    @final
    @property
    def num_ports(self) -> int:
        """Number of ports in the object, aka the length of its shape."""
        return len(self.shape)

    @final
    @property
    def ports(self) -> Sequence[Port]:
        """Sequence of (the indices of) ports in the object."""
        return range(self.num_ports)


@final
class Wiring(Shaped[Type]):
    """
    An immutable undirected wiring diagram, consisting of boxes with ports, outer
    ports, and typed junctions to which all ports are connected.

    Boxes, junctions and ports are dense integer indices. The incidence of ports on
    junctions is computed once, when the wiring is first constructed, and wirings
    are hash-consed: constructing a wiring from the same data twice returns the
    same object.
    """

    _store: ClassVar[InstanceStore] = InstanceStore()

    @classmethod
    def _new(
        cls,
        junction_types: Shape[Type],
        box_junctions: tuple[tuple[Junction, ...], ...],
        outer_junctions: tuple[Junction, ...],
    ) -> Self:
        """Protected constructor."""
        instance_key = (junction_types, box_junctions, outer_junctions)
        with Wiring._store.instance(cls, instance_key) as self:
            if self is None:
                self = super().__new__(cls)
                self.__junction_types = junction_types
                self.__box_junctions = box_junctions
                self.__outer_junctions = outer_junctions
                self.__box_shapes = tuple(
                    junction_types[js] for js in box_junctions
                )
                self.__shape = junction_types[outer_junctions]
                wired_ports: dict[Junction, list[tuple[Box, Port]]] = {}
                for box, js in enumerate(box_junctions):
                    for port, j in enumerate(js):
                        wired_ports.setdefault(j, []).append((box, port))
                wired_outer_ports: dict[Junction, list[Port]] = {}
                for port, j in enumerate(outer_junctions):
                    wired_outer_ports.setdefault(j, []).append(port)
                self.__ports_with_junction = tuple(
                    tuple(wired_ports.get(j, ())) for j in range(len(junction_types))
                )
                self.__outer_ports_with_junction = tuple(
                    tuple(wired_outer_ports.get(j, ()))
                    for j in range(len(junction_types))
                )
                Wiring._store.register(self)
            return self

    __junction_types: Shape[Type]
    __box_junctions: tuple[tuple[Junction, ...], ...]
    __outer_junctions: tuple[Junction, ...]
    __box_shapes: tuple[Shape[Type], ...]
    __shape: Shape[Type]
    __ports_with_junction: tuple[tuple[tuple[Box, Port], ...], ...]
    __outer_ports_with_junction: tuple[tuple[Port, ...], ...]

    __slots__ = (
        "__weakref__",
        "__junction_types",
        "__box_junctions",
        "__outer_junctions",
        "__box_shapes",
        "__shape",
        "__ports_with_junction",
        "__outer_ports_with_junction",
    )

    def __new__(cls, **data: Unpack[WiringData]) -> Self:
        """Constructs a wiring from the given data."""
        assert validate(data, WiringData)
        junction_types = Shape(data["junction_types"])
        box_junctions = tuple(map(tuple, data["box_junctions"]))
        outer_junctions = tuple(data["outer_junctions"])
        num_junctions = len(junction_types)
        for box, js in enumerate(box_junctions):
            for j in js:
                if j not in range(num_junctions):
                    raise ValueError(f"Invalid junction {j} for a port of box {box}.")
        for j in outer_junctions:
            if j not in range(num_junctions):
                raise ValueError(f"Invalid junction {j} for an outer port.")
        return cls._new(junction_types, box_junctions, outer_junctions)

    @property
    def junction_types(self) -> Shape[Type]:
        """Junction types."""
        return self.__junction_types

    @property
    def box_junctions(self) -> tuple[tuple[Junction, ...], ...]:
        """Assignment of (the index of) a junction to each port of each box."""
        return self.__box_junctions

    @property
    def outer_junctions(self) -> tuple[Junction, ...]:
        """Assignment of (the index of) a junction to each outer port."""
        return self.__outer_junctions

    @property
    def shape(self) -> Shape[Type]:
        """Shape of the outer interface."""
        return self.__shape

    @property
    def box_shapes(self) -> tuple[Shape[Type], ...]:
        """Shapes of the boxes."""
        return self.__box_shapes

    @property
    def num_boxes(self) -> int:
        """Number of boxes."""
        return len(self.__box_junctions)

    @property
    def boxes(self) -> Sequence[Box]:
        """Sequence of (the indices of) boxes."""
        return range(self.num_boxes)

    @property
    def num_junctions(self) -> int:
        """Number of junctions."""
        return len(self.__junction_types)

    @property
    def junctions(self) -> Sequence[Junction]:
        """Sequence of (the indices of) junctions."""
        return range(self.num_junctions)

    @property
    def outer_ports(self) -> Sequence[Port]:
        """Sequence of (the indices of) outer ports."""
        return range(len(self.__outer_junctions))

    def box_ports(self, box: Box) -> Sequence[Port]:
        """Sequence of (the indices of) ports for the given box."""
        return range(len(self.__box_junctions[box]))

    def junction(self, box: Box, port: Port) -> Junction:
        """The junction to which the given port of the given box is connected."""
        return self.__box_junctions[box][port]

    def outer_junction(self, port: Port) -> Junction:
        """The junction to which the given outer port is connected."""
        return self.__outer_junctions[port]

    def ports_with_junction(self, junction: Junction) -> tuple[tuple[Box, Port], ...]:
        """The ``(box, port)`` pairs connected to the given junction."""
        return self.__ports_with_junction[junction]

    def outer_ports_with_junction(self, junction: Junction) -> tuple[Port, ...]:
        """The outer ports connected to the given junction."""
        return self.__outer_ports_with_junction[junction]

    @property
    def wired_boxes(self) -> Mapping[Junction, tuple[Box, ...]]:
        """
        Computes and returns a mapping of junctions to the boxes they touch,
        without repetition.
        """
        return MappingProxyType(
            {
                j: tuple(dict.fromkeys(box for box, _ in ports))
                for j, ports in enumerate(self.__ports_with_junction)
                if ports
            }
        )

    def __repr__(self) -> str:
        num_junctions = self.num_junctions
        num_boxes = self.num_boxes
        num_outer_ports = len(self.__outer_junctions)
        attrs: list[str] = []
        if num_junctions > 0:
            attrs.append(f"{num_junctions} junction{'s' if num_junctions!=1 else ''}")
        if num_boxes > 0:
            attrs.append(f"{num_boxes} box{'es' if num_boxes!=1 else ''}")
        if num_outer_ports > 0:
            attrs.append(
                f"{num_outer_ports} outer port{'s' if num_outer_ports!=1 else ''}"
            )
        return f"<Wiring {id(self):#x}: {", ".join(attrs)}>"


@final
class WiringBuilder:
    """Utility class to build wirings."""

    __junction_types: list[Type]
    __box_junctions: list[list[Junction]]
    __outer_junctions: list[Junction]

    __slots__ = (
        "__weakref__",
        "__junction_types",
        "__box_junctions",
        "__outer_junctions",
    )

    def __new__(cls) -> Self:
        """Constructs a blank wiring builder."""
        self = super().__new__(cls)
        self.__junction_types = []
        self.__box_junctions = []
        self.__outer_junctions = []
        return self

    @property
    def num_junctions(self) -> int:
        """Number of junctions added thus far."""
        return len(self.__junction_types)

    @property
    def num_boxes(self) -> int:
        """Number of boxes added thus far."""
        return len(self.__box_junctions)

    @property
    def wiring(self) -> Wiring:
        """The wiring built thus far."""
        return Wiring._new(
            Shape._new(tuple(self.__junction_types)),
            tuple(map(tuple, self.__box_junctions)),
            tuple(self.__outer_junctions),
        )

    def copy(self) -> WiringBuilder:
        """Returns a deep copy of this wiring builder."""
        clone: WiringBuilder = WiringBuilder.__new__(WiringBuilder)
        clone.__junction_types = self.__junction_types.copy()
        clone.__box_junctions = [js.copy() for js in self.__box_junctions]
        clone.__outer_junctions = self.__outer_junctions.copy()
        return clone

    def add_junction(self, t: Type) -> Junction:
        """Adds a new junction with the given type."""
        assert validate(t, Type)
        return self._add_junctions([t])[0]

    def add_junctions(self, ts: Sequence[Type]) -> tuple[Junction, ...]:
        """Adds new junctions with the given types."""
        assert validate(ts, Sequence[Type])
        return self._add_junctions(ts)

    def _add_junctions(self, ts: Sequence[Type]) -> tuple[Junction, ...]:
        junction_types = self.__junction_types
        len_before = len(junction_types)
        junction_types.extend(ts)
        return tuple(range(len_before, len(junction_types)))

    def _validate_junctions(self, junctions: Sequence[Junction]) -> None:
        num_junctions = self.num_junctions
        for j in junctions:
            if j not in range(num_junctions):
                raise ValueError(f"Invalid junction index {j}.")

    def add_box(self, junctions: Sequence[Junction] = ()) -> Box:
        """Adds a new box, with one port for each of the given junctions."""
        assert validate(junctions, Sequence[Junction])
        self._validate_junctions(junctions)
        box_junctions = self.__box_junctions
        box_junctions.append(list(junctions))
        return len(box_junctions) - 1

    def add_box_ports(self, box: Box, junctions: Sequence[Junction]) -> tuple[Port, ...]:
        """Adds new ports to the given box, connected to the given junctions."""
        assert validate(junctions, Sequence[Junction])
        if box not in range(self.num_boxes):
            raise ValueError(f"Invalid box {box}.")
        self._validate_junctions(junctions)
        box_junctions = self.__box_junctions[box]
        len_before = len(box_junctions)
        box_junctions.extend(junctions)
        return tuple(range(len_before, len(box_junctions)))

    def add_outer_port(self, junction: Junction) -> Port:
        """Adds a new outer port, connected to the given junction."""
        return self.add_outer_ports([junction])[0]

    def add_outer_ports(self, junctions: Sequence[Junction]) -> tuple[Port, ...]:
        """Adds new outer ports, connected to the given junctions."""
        assert validate(junctions, Sequence[Junction])
        self._validate_junctions(junctions)
        outer_junctions = self.__outer_junctions
        len_before = len(outer_junctions)
        outer_junctions.extend(junctions)
        return tuple(range(len_before, len(outer_junctions)))

    def __repr__(self) -> str:
        num_junctions = self.num_junctions
        num_boxes = self.num_boxes
        num_outer_ports = len(self.__outer_junctions)
        attrs: list[str] = []
        if num_junctions > 0:
            attrs.append(f"{num_junctions} junction{'s' if num_junctions!=1 else ''}")
        if num_boxes > 0:
            attrs.append(f"{num_boxes} box{'es' if num_boxes!=1 else ''}")
        if num_outer_ports > 0:
            attrs.append(
                f"{num_outer_ports} outer port{'s' if num_outer_ports!=1 else ''}"
            )
        return f"<WiringBuilder {id(self):#x}: {", ".join(attrs)}>"
