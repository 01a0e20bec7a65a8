"""
Abstract base class for the morphisms of value algebras, for the
:mod:`uwdsched.diagrams` module.
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
from abc import ABCMeta, abstractmethod
from collections.abc import Sequence
from typing import ClassVar, Self, TypeVar, final

if __debug__:
    from typing_validation import validate

from .types import TypeT_co
from .wirings import Junction, Port, Shaped


class Morphism(Shaped[TypeT_co], metaclass=ABCMeta):
    """
    Abstract base class for morphisms in a value algebra, i.e. the values which
    can be assigned to the boxes of a wiring and combined by contraction.

    A morphism has a shape, the types of its ports. Two morphisms of the same
    class can be contracted along shared junctions with :meth:`contract2`.
    """

    __final__: ClassVar[bool] = False

    @final
    @classmethod
    def contract2(
        cls,
        lhs: Self,
        lhs_junctions: Sequence[Junction],
        rhs: Self,
        rhs_junctions: Sequence[Junction],
        out_junctions: Sequence[Junction] | None = None,
    ) -> Self:
        """
        Contracts two morphisms, whose ports are labelled by the given junctions.
        The ports of the result are labelled by ``out_junctions``, which defaults to
        the sorted junctions appearing in exactly one of the two morphisms.
        """
        assert validate(lhs_junctions, Sequence[Junction])
        assert validate(rhs_junctions, Sequence[Junction])
        assert validate(out_junctions, Sequence[Junction] | None)
        if len(lhs_junctions) != lhs.num_ports:
            raise ValueError(
                f"Number of junctions in lhs ({len(lhs_junctions)}) does not match"
                f" the number of ports in lhs shape ({lhs.num_ports})."
            )
        if len(rhs_junctions) != rhs.num_ports:
            raise ValueError(
                f"Number of junctions in rhs ({len(rhs_junctions)}) does not match"
                f" the number of ports in rhs shape ({rhs.num_ports})."
            )
        if out_junctions is None:
            out_junctions = sorted(
                set(lhs_junctions).symmetric_difference(rhs_junctions)
            )
        else:
            out_junctions_set = set(out_junctions)
            if len(out_junctions) != len(out_junctions_set):
                raise ValueError("Output junctions cannot be repeated.")
            out_junctions_set.difference_update(lhs_junctions)
            out_junctions_set.difference_update(rhs_junctions)
            if out_junctions_set:
                raise ValueError("Every output junction must appear in lhs or rhs.")
        return cls._contract2(lhs, lhs_junctions, rhs, rhs_junctions, out_junctions)

    @classmethod
    @abstractmethod
    def _contract2(
        cls,
        lhs: Self,
        lhs_junctions: Sequence[Junction],
        rhs: Self,
        rhs_junctions: Sequence[Junction],
        out_junctions: Sequence[Junction],
    ) -> Self:
        """
        Protected version of :meth:`Morphism.contract2`, to be implemented by
        subclasses. It is guaranteed that:

        - The length of ``lhs_junctions`` matches the length of ``lhs.shape``
        - The length of ``rhs_junctions`` matches the length of ``rhs.shape``
        - Junctions in ``out_junctions`` are not repeated
        - Every junction in ``out_junctions`` appears in ``lhs_junctions`` or
          ``rhs_junctions``

        Junctions may be repeated within ``lhs_junctions`` or ``rhs_junctions``.
        """

    @classmethod
    @abstractmethod
    def unit(cls) -> Self:
        """
        The morphism with no ports which is neutral for contraction, i.e. the value
        of the empty composite.
        """

    __slots__ = ("__weakref__",)

    def __new__(cls) -> Self:
        """Constructs a new morphism."""
        if not cls.__final__:
            raise TypeError("Only final subclasses of Morphism can be instantiated.")
        return super().__new__(cls)

    @final
    def transpose(self, perm: Sequence[Port]) -> Self:
        """Transposes the ports into the given order."""
        assert validate(perm, Sequence[Port])
        if len(perm) != self.num_ports or set(perm) != set(self.ports):
            raise ValueError(
                "Input to transpose method must be a permutation of the ports."
            )
        return self._transpose(perm)

    @abstractmethod
    def _transpose(self, perm: Sequence[Port]) -> Self:
        """
        Protected version of :meth:`Morphism.transpose`, to be implemented by
        subclasses. It is guaranteed that ``perm`` is a permutation of the ports.
        """

    def __mul__(self, other: Self) -> Self:
        """
        Takes the product of this morphism with another morphism of the same class.
        The resulting morphism has as its ports the ports of this morphism followed
        by the ports of the other morphism.
        """
        lhs_len, rhs_len = self.num_ports, other.num_ports
        lhs_junctions = range(lhs_len)
        rhs_junctions = range(lhs_len, lhs_len + rhs_len)
        out_junctions = range(lhs_len + rhs_len)
        return type(self)._contract2(
            self, lhs_junctions, other, rhs_junctions, out_junctions
        )

    def __repr__(self) -> str:
        cls_name = type(self).__name__
        return f"<{cls_name} {id(self):#x}: {self.num_ports} ports>"


MorphismT_inv = TypeVar("MorphismT_inv", bound=Morphism)
"""Invariant type variable for morphism classes."""
