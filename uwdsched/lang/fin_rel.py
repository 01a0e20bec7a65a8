"""
The language ``fin_rel`` of finite, explicitly enumerated sets (cf. :class:`FinSet`)
and relations between them, represented as Boolean tensors (cf. :class:`FinRel`).

Contraction of relations is relational composition: junctions which are contracted
away are existentially quantified.
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
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from math import prod
from typing import Any, ClassVar, Self, TypeAlias, final

import numpy as np
from hashcons import InstanceStore
import xxhash

from ..diagrams import Junction, Morphism, Port, Shape, Type

if __debug__:
    from typing_validation import validate

Size: TypeAlias = int
"""Type alias for integers used as sizes of :class:`FinSet`."""

El: TypeAlias = int
"""Type alias for integers used as elements of :class:`FinSet`."""

Point: TypeAlias = tuple[El, ...]
"""Type alias for tuples of integers, used as points of :class:`FinRel`."""


def _wrap_el(el_or_point: El | Point, /) -> Point:
    """
    Wraps an element of a finite set into a singleton point of a relation.
    If a point is passed, it is returned unchanged.
    """
    if isinstance(el_or_point, (int, np.integer)):
        return (int(el_or_point),)
    return tuple(el_or_point)


type ItemOrIterable[T] = T | Iterable[T]


def _extract_sizes(
    sizes_or_finsets: ItemOrIterable[Size | FinSet], /
) -> tuple[Size, ...]:
    if isinstance(sizes_or_finsets, int):
        return (sizes_or_finsets,)
    if isinstance(sizes_or_finsets, FinSet):
        return (sizes_or_finsets.size,)
    return tuple(
        size if isinstance(size, int) else size.size for size in sizes_or_finsets
    )


@final
class FinSet(Type):
    """
    Type class for finite, explicitly enumerated sets.
    Parametrises sets in the form ``{0, ..., size-1}`` by their ``size >= 1``.
    """

    __final__: ClassVar[bool] = True

    _store: ClassVar[InstanceStore] = InstanceStore()

    @classmethod
    def _new(cls, size: Size) -> Self:
        """Protected constructor."""
        with FinSet._store.instance(cls, size) as self:
            if self is None:
                self = super().__new__(cls)
                self.__size = size
                FinSet._store.register(self)
            return self

    __size: Size

    __slots__ = ("__size",)

    def __new__(cls, size: int) -> Self:
        """
        Public constructor.

        :meta public:
        """
        assert validate(size, int)
        if size <= 0:
            raise ValueError("Finite set size must be strictly positive.")
        return cls._new(size)

    @property
    def size(self) -> Size:
        """Size of the finite set."""
        return self.__size

    @property
    def dim(self) -> int:
        return self.__size

    def _spider(self, num_ports: int) -> FinRel:
        size = self.__size
        tensor = np.zeros(shape=(size,) * num_ports, dtype=np.uint8)
        for i in range(size):
            tensor[(i,) * num_ports] = 1
        return FinRel._new(tensor)

    def __repr__(self) -> str:
        return f"FinSet({self.__size})"


NumpyUInt8Array: TypeAlias = np.ndarray[tuple[Size, ...], np.dtype[np.uint8]]
"""Type alias for Numpy's UInt8 arrays."""


@final
class FinRel(Morphism[FinSet]):
    """
    Type class for finite, densely represented relations between finite, explicitly
    enumerated sets.
    Relations are parametrised by their representation as Boolean tensors, where each
    component of the relation corresponds to a component of the tensor.
    """

    __final__: ClassVar[bool] = True

    @classmethod
    def from_set(
        cls,
        shape: ItemOrIterable[Size | FinSet],
        points: Iterable[El | Point],
    ) -> Self:
        """Constructs a relation from a set of points."""
        shape = _extract_sizes(shape)
        assert validate(shape, tuple[Size, ...])
        if any(dim <= 0 for dim in shape):
            raise ValueError("Zero dimension in shape.")
        data = np.zeros(shape, dtype=np.uint8)
        for point in points:
            point = _wrap_el(point)
            if len(point) != len(shape):
                raise ValueError(f"Length of {point = } is invalid for {shape = }.")
            if not all(0 <= i < d for i, d in zip(point, shape)):
                raise ValueError(f"Values of {point = } are invalid for {shape = }.")
            data[point] = 1
        return cls._new(data)

    @classmethod
    def from_mapping(
        cls,
        input_shape: ItemOrIterable[Size | FinSet],
        output_shape: ItemOrIterable[Size | FinSet],
        mapping: Mapping[Point, El | Point],
    ) -> Self:
        """
        Constructs a function graph from a mapping of points to points.
        The relation shape is given by ``input_shape + output_shape``.
        """
        input_shape = _extract_sizes(input_shape)
        output_shape = _extract_sizes(output_shape)
        rel = cls.from_set(
            input_shape + output_shape,
            (k + _wrap_el(v) for k, v in mapping.items()),
        )
        if len(mapping) != prod(input_shape):
            raise ValueError("Mapping does not cover the entire input space.")
        return rel

    @classmethod
    def from_callable(
        cls,
        input_shape: ItemOrIterable[Size | FinSet],
        output_shape: ItemOrIterable[Size | FinSet],
        func: Callable[..., El | Point],
    ) -> Self:
        """
        Constructs a function graph from a callable mapping points to points.
        The relation shape is given by ``input_shape + output_shape``, and the
        callable takes as many integer arguments as the length of ``input_shape``.
        """
        input_shape = _extract_sizes(input_shape)
        output_shape = _extract_sizes(output_shape)
        mapping = {
            tuple(map(int, idx)): func(*idx) for idx in np.ndindex(input_shape)
        }
        return cls.from_mapping(input_shape, output_shape, mapping)

    @classmethod
    def singleton(
        cls,
        shape: ItemOrIterable[Size | FinSet],
        point: El | Point,
    ) -> Self:
        """Constructs a singleton relation with the given point."""
        return cls.from_mapping((), shape, {(): point})

    @classmethod
    def unit(cls) -> Self:
        return cls._new(np.ones((), dtype=np.uint8))

    @classmethod
    def _contract2(
        cls,
        lhs: FinRel,
        lhs_junctions: Sequence[Junction],
        rhs: FinRel,
        rhs_junctions: Sequence[Junction],
        out_junctions: Sequence[Junction],
    ) -> Self:
        lhs_tensor, rhs_tensor = lhs.__tensor, rhs.__tensor
        # Einsum sublists only accept small labels, so junctions are relabelled:
        labels: dict[Junction, int] = {}
        for j in (*lhs_junctions, *rhs_junctions):
            labels.setdefault(j, len(labels))
        dims = dict(zip(lhs_junctions, lhs_tensor.shape))
        dims.update(zip(rhs_junctions, rhs_tensor.shape))
        contracted_size = prod(dims[j] for j in labels if j not in set(out_junctions))
        if contracted_size >= 256:
            dt: np.dtype[Any]
            if contracted_size < 2**16:
                dt = np.dtype("uint16")
            elif contracted_size < 2**32:
                dt = np.dtype("uint32")
            else:
                dt = np.dtype("uint64")
            lhs_tensor, rhs_tensor = lhs_tensor.astype(dt), rhs_tensor.astype(dt)
        res_tensor = np.einsum(
            lhs_tensor,
            [labels[j] for j in lhs_junctions],
            rhs_tensor,
            [labels[j] for j in rhs_junctions],
            [labels[j] for j in out_junctions],
        )
        return cls._new(np.asarray(res_tensor > 0, dtype=np.uint8))

    @classmethod
    def _new(cls, tensor: NumpyUInt8Array) -> Self:
        """
        Protected constructor.
        Presumes that the tensor is already validated, and that it is not going to be
        accessible from anywhere else (i.e. no copy is performed).
        """
        if tensor.flags["OWNDATA"]:
            tensor.setflags(write=False)
            tensor = tensor.view()
        self = super().__new__(cls)
        self.__tensor = tensor
        self.__shape = Shape(map(FinSet._new, tensor.shape))
        return self

    __tensor: NumpyUInt8Array
    __shape: Shape[FinSet]
    __hash_cache: int

    __slots__ = ("__tensor", "__shape", "__hash_cache")

    def __new__(cls, tensor: NumpyUInt8Array) -> Self:
        """
        Constructs a relation from a Boolean tensor, which is copied.

        :meta public:
        """
        tensor = np.array(tensor, dtype=np.uint8)
        if not np.all(tensor <= 1):
            raise ValueError("Values in a Boolean tensor must be 0 or 1.")
        if any(dim <= 0 for dim in tensor.shape):
            raise ValueError("Zero dimension in shape.")
        return cls._new(tensor)

    @property
    def tensor(self) -> NumpyUInt8Array:
        """The Boolean tensor defining the relation."""
        return self.__tensor

    @property
    def shape(self) -> Shape[FinSet]:
        """The shape of the relation."""
        return self.__shape

    def _transpose(self, perm: Sequence[Port]) -> Self:
        return FinRel._new(np.transpose(self.__tensor, tuple(perm)).copy())

    def to_set(self) -> Iterator[Point]:
        """
        Iterates over the subset of points in the relation.
        An inverse to the constructor :meth:`FinRel.from_set`.
        """
        tensor = self.__tensor
        for idxs in np.ndindex(tensor.shape):
            if tensor[idxs]:
                yield tuple(map(int, idxs))

    def __bool__(self) -> bool:
        """Whether the relation is non-empty."""
        return bool(np.any(self.__tensor))

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, FinRel):
            return NotImplemented
        if self is other:
            return True
        try:
            if self.__hash_cache != other.__hash_cache:
                return False
        except AttributeError:
            pass
        return np.array_equal(self.__tensor, other.__tensor)

    def __hash__(self) -> int:
        """Computes the hash of the finite relation, based on the bytes in the tensor."""
        try:
            return self.__hash_cache
        except AttributeError:
            tensor = np.ascontiguousarray(self.__tensor)
            h = xxhash.xxh64(tensor.tobytes(), seed=len(tensor.shape)).intdigest()
            self.__hash_cache = h
            return h

    def __repr__(self) -> str:
        dims = "x".join(map(str, self.__tensor.shape)) or "()"
        return f"<FinRel {id(self):#x}: {dims}, {int(np.sum(self.__tensor))} points>"
