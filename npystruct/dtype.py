"""
# Descriptor model

An element type describes how one element of an array is laid out in bytes;
it can be one of two things

 1. a primitive leaf: a kind (integer, float, string, ...), a width and a
    byte order;
 2. a structured type: an ordered sequence of named fields, each one placed
    at a given byte offset and with its own element type, possibly repeated
    a fixed number of times.

The byte order lives on the leaves since the fields of a structured type
can legitimately differ; use with_endianess() to apply one order to the
whole tree.

Element types are values: they are immutable after construction and two of
them compare equal when they describe the same byte layout.
"""
import logging
import operator
from functools import reduce

from .enum import Endianess, Kind
from .exceptions import LayoutError


logger = logging.getLogger(__name__)


_VALID_WIDTHS = {
    Kind.BOOL:      (1,),
    Kind.INT:       (1, 2, 4, 8),
    Kind.UINT:      (1, 2, 4, 8),
    Kind.FLOAT:     (2, 4, 8),
    Kind.COMPLEX:   (8, 16),
    Kind.DATETIME:  (8,),
    Kind.TIMEDELTA: (8,),
}

# kinds where the width is a count and not fixed by the kind itself
_SIZED_KINDS = (Kind.BYTES, Kind.UNICODE, Kind.VOID)


def shape_count(shape):
    '''Number of elements described by a shape, 1 for the scalar shape ().'''
    return reduce(operator.mul, shape, 1)


def _normalize_shape(shape):
    if shape is None:
        return ()
    if isinstance(shape, int):
        shape = (shape,)

    shape = tuple(shape)
    for dim in shape:
        if not isinstance(dim, int) or isinstance(dim, bool) or dim < 0:
            raise LayoutError('invalid dimension %r in shape %r' % (dim, shape))

    return shape


class ElementType(object):
    '''Base class for the descriptors, it's not meant to be instantiated.'''

    @property
    def size(self) -> int:
        raise NotImplementedError(f"{self.__class__.__name__}.size not implemented")

    def with_endianess(self, endianess):
        raise NotImplementedError()

    def incompatibility(self, other):
        '''Returns None if other has the same layout of this type, not taking
        into account the byte order, otherwise a couple (chain, reason).'''
        raise NotImplementedError()

    def is_compatible(self, other) -> bool:
        return self.incompatibility(other) is None

    def __ne__(self, other):
        return not self == other


class Primitive(ElementType):

    def __init__(self, kind, width, endianess=Endianess.LITTLE_ENDIAN, unit=None):
        try:
            self.kind = Kind(kind)
        except ValueError:
            raise LayoutError(f'unknown kind {kind!r}')

        if not isinstance(width, int) or isinstance(width, bool) or width < 0:
            raise LayoutError(f'invalid width {width!r} for kind {self.kind.name}')

        if self.kind in _VALID_WIDTHS and width not in _VALID_WIDTHS[self.kind]:
            raise LayoutError(f'width {width} not supported for kind {self.kind.name}')

        if unit is not None and self.kind not in (Kind.DATETIME, Kind.TIMEDELTA):
            raise LayoutError(f'a unit is meaningful only for datetimes, not for {self.kind.name}')

        self.width = width
        self.unit = unit
        self.endianess = self._normalize_endianess(Endianess(endianess))

    def _normalize_endianess(self, endianess):
        if self.kind in (Kind.BYTES, Kind.VOID) or (self.kind is not Kind.UNICODE and self.width == 1):
            return Endianess.NOT_APPLICABLE

        # '|' on a multi-byte type is read as native, like numpy does
        if endianess is Endianess.NOT_APPLICABLE:
            return Endianess.native()

        return endianess.resolve()

    @property
    def size(self):
        return self.width * 4 if self.kind is Kind.UNICODE else self.width

    @property
    def type_string(self):
        unit = f'[{self.unit}]' if self.unit else ''
        return f'{self.endianess.value}{self.kind.value}{self.width}{unit}'

    def with_endianess(self, endianess):
        return Primitive(self.kind, self.width, endianess=endianess, unit=self.unit)

    def incompatibility(self, other):
        if not isinstance(other, Primitive):
            return [], f'expected primitive {self.type_string}, found a structured type'

        if (self.kind, self.width, self.unit) != (other.kind, other.width, other.unit):
            return [], f'expected {self.type_string}, found {other.type_string}'

        return None

    def _key(self):
        return (self.kind, self.width, self.endianess, self.unit)

    def __eq__(self, other):
        return isinstance(other, Primitive) and self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.type_string!r})>'


class Field(object):
    '''A named sub-element of a structured type.

    The shape, when not empty, turns the field into a fixed-length array
    of elements of the given type.'''

    def __init__(self, name, offset, dtype, shape=()):
        if not isinstance(name, str) or not name:
            raise LayoutError(f'field names must be non-empty strings, not {name!r}')

        if not isinstance(offset, int) or offset < 0:
            raise LayoutError(f'invalid offset {offset!r}', chain=[name])

        if not isinstance(dtype, ElementType):
            raise LayoutError(f'{dtype!r} is not an element type', chain=[name])

        self.name = name
        self.offset = offset
        self.dtype = dtype
        try:
            self.shape = _normalize_shape(shape)
        except LayoutError as e:
            raise LayoutError(e.message, chain=[name])

    @property
    def count(self):
        return shape_count(self.shape)

    @property
    def size(self):
        return self.dtype.size * self.count

    @property
    def end(self):
        return self.offset + self.size

    def with_endianess(self, endianess):
        return Field(self.name, self.offset, self.dtype.with_endianess(endianess), self.shape)

    def _key(self):
        return (self.name, self.offset, self.dtype, self.shape)

    def __eq__(self, other):
        return isinstance(other, Field) and self._key() == other._key()

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        shape = f', shape={self.shape!r}' if self.shape else ''
        return f'<{self.__class__.__name__}({self.name!r}, offset={self.offset}, {self.dtype!r}{shape})>'


class Structured(ElementType):
    '''Record layout made of named fields.

    Fields must be ordered by offset and cannot overlap; the space between
    them, and after the last one up to itemsize, is padding.'''

    def __init__(self, fields, itemsize=None):
        self.fields = tuple(_ if isinstance(_, Field) else Field(*_) for _ in fields)

        seen = set()
        end = 0
        previous = None
        for field in self.fields:
            if field.name in seen:
                raise LayoutError('duplicate field name', chain=[field.name])
            seen.add(field.name)

            if previous is not None and field.offset < previous.offset:
                raise LayoutError(
                    f'offset {field.offset} comes before the one of the previous field {previous.name!r}',
                    chain=[field.name])

            if field.offset < end:
                raise LayoutError(
                    f'bytes [{field.offset}, {field.end}) overlap with field {previous.name!r}',
                    chain=[field.name])

            end = field.end
            previous = field

        if itemsize is None:
            itemsize = end
        elif itemsize < end:
            raise LayoutError(f'itemsize {itemsize} is smaller than the fields ({end} bytes)')

        self.itemsize = itemsize

    @classmethod
    def packed(cls, specs, itemsize=None):
        '''Build a structured type from (name, dtype[, shape]) tuples laying
        the fields one after the other without padding.'''
        fields = []
        offset = 0
        for spec in specs:
            name, dtype, *rest = spec
            field = Field(name, offset, dtype, *rest)
            fields.append(field)
            offset = field.end

        return cls(fields, itemsize=itemsize)

    @property
    def size(self):
        return self.itemsize

    @property
    def names(self):
        return [_.name for _ in self.fields]

    def __len__(self):
        return len(self.fields)

    def __iter__(self):
        return iter(self.fields)

    def __getitem__(self, name):
        for field in self.fields:
            if field.name == name:
                return field

        raise KeyError(name)

    def with_endianess(self, endianess):
        return Structured([_.with_endianess(endianess) for _ in self.fields], itemsize=self.itemsize)

    def incompatibility(self, other):
        if not isinstance(other, Structured):
            return [], 'expected a structured type, found %s' % other.type_string

        if self.names != other.names:
            return [], f'expected fields {self.names}, found {other.names}'

        for mine, theirs in zip(self.fields, other.fields):
            if mine.offset != theirs.offset or mine.shape != theirs.shape:
                return [mine.name], (
                    f'expected offset {mine.offset} and shape {mine.shape}, '
                    f'found offset {theirs.offset} and shape {theirs.shape}')

            reason = mine.dtype.incompatibility(theirs.dtype)
            if reason is not None:
                chain, message = reason
                return [mine.name] + chain, message

        if self.itemsize != other.itemsize:
            return [], f'expected itemsize {self.itemsize}, found {other.itemsize}'

        return None

    def _key(self):
        return (self.fields, self.itemsize)

    def __eq__(self, other):
        return isinstance(other, Structured) and self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        fields = ', '.join(repr(_) for _ in self.fields)
        return f'<{self.__class__.__name__}([{fields}], itemsize={self.itemsize})>'


bool_ = Primitive(Kind.BOOL, 1)
int8 = Primitive(Kind.INT, 1)
int16 = Primitive(Kind.INT, 2)
int32 = Primitive(Kind.INT, 4)
int64 = Primitive(Kind.INT, 8)
uint8 = Primitive(Kind.UINT, 1)
uint16 = Primitive(Kind.UINT, 2)
uint32 = Primitive(Kind.UINT, 4)
uint64 = Primitive(Kind.UINT, 8)
float16 = Primitive(Kind.FLOAT, 2)
float32 = Primitive(Kind.FLOAT, 4)
float64 = Primitive(Kind.FLOAT, 8)
complex64 = Primitive(Kind.COMPLEX, 8)
complex128 = Primitive(Kind.COMPLEX, 16)


def bytes_(length):
    return Primitive(Kind.BYTES, length)


def unicode(length, endianess=Endianess.LITTLE_ENDIAN):
    return Primitive(Kind.UNICODE, length, endianess=endianess)


def void(length):
    return Primitive(Kind.VOID, length)


def datetime64(unit=None, endianess=Endianess.LITTLE_ENDIAN):
    return Primitive(Kind.DATETIME, 8, endianess=endianess, unit=unit)


def timedelta64(unit=None, endianess=Endianess.LITTLE_ENDIAN):
    return Primitive(Kind.TIMEDELTA, 8, endianess=endianess, unit=unit)
