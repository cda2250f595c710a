"""
A field declaration maps an attribute of a record onto a sub-element of the
structured type the record is stored as.

    class Point(Record):
        x = fields.Float32()
        y = fields.Float32()
        tags = fields.Int16(count=3)

Each declaration knows its element type, its optional fixed shape (turning
it into a small array) and the default value used for new records.
"""
import copy

from . import dtype as dtypes
from .descr import parse_type_string
from .dtype import ElementType, Structured
from .enum import Kind
from .exceptions import BadTypeString, LayoutError
from .meta import FieldBase


_PYTHON_TYPES = {
    bool:    dtypes.bool_,
    int:     dtypes.int64,
    float:   dtypes.float64,
    complex: dtypes.complex128,
}

_ZERO_VALUES = {
    Kind.BOOL:      False,
    Kind.INT:       0,
    Kind.UINT:      0,
    Kind.FLOAT:     0.0,
    Kind.COMPLEX:   0j,
    Kind.BYTES:     b'',
    Kind.UNICODE:   '',
    Kind.DATETIME:  0,
    Kind.TIMEDELTA: 0,
}


def is_record(host):
    return isinstance(host, type) and hasattr(host, '_meta')


def host_to_dtype(host) -> ElementType:
    '''Element type a host type maps to; LayoutError if there is none.'''
    if isinstance(host, ElementType):
        return host

    if isinstance(host, str):
        try:
            return parse_type_string(host)
        except BadTypeString as e:
            raise LayoutError(e.message)

    if is_record(host):
        return host._meta.dtype

    if isinstance(host, type) and host in _PYTHON_TYPES:
        return _PYTHON_TYPES[host]

    raise LayoutError(f'no element type for host type {host!r}')


def zero_value(dtype: ElementType):
    '''The value of an element with all the bytes set to zero.'''
    if isinstance(dtype, Structured):
        return {_.name: repeat(zero_value(_.dtype), _.shape) for _ in dtype.fields}

    if dtype.kind is Kind.VOID:
        return b'\x00' * dtype.size

    return _ZERO_VALUES[dtype.kind]


def repeat(value, shape):
    '''Nested lists of the given shape filled with copies of value.'''
    if not shape:
        return copy.deepcopy(value)

    return [repeat(value, shape[1:]) for _ in range(shape[0])]


class Field(FieldBase):
    """Declaration of a record field from a host type: an element type, a
    type string like '<f8', a record class or one of the python types
    bool, int, float and complex.

    The mapping is checked when the record class is created."""

    def __init__(self, host, shape=None, count=None, endianess=None, offset=None, default=None):
        super().__init__()
        if shape is not None and count is not None:
            raise LayoutError('indicate only one between shape and count')

        self.host = host
        self.record = host if is_record(host) else None
        self.name = None
        self.shape = self._normalize_shape(count if count is not None else shape)
        self.endianess = endianess
        self.offset = offset
        self.default = default
        self.dtype = None

    def __repr__(self):
        return '<%s(%r, name=%r, shape=%r)>' % (self.__class__.__name__, self.dtype or self.host, self.name, self.shape)

    @staticmethod
    def _normalize_shape(shape):
        if shape is None:
            return ()
        if isinstance(shape, int):
            shape = (shape,)

        shape = tuple(shape)
        if not all(isinstance(_, int) and not isinstance(_, bool) and _ >= 0 for _ in shape):
            raise LayoutError(f'invalid shape {shape!r}')

        return shape

    def resolve(self, default_endianess=None) -> ElementType:
        '''Compute the element type, the byte order of the declaration
        wins over the one of the record.'''
        dtype = host_to_dtype(self.host)

        endianess = self.endianess or default_endianess
        if endianess is not None:
            dtype = dtype.with_endianess(endianess)

        self.dtype = dtype

        return dtype

    def element_default(self):
        if self.record is not None:
            return self.record()

        return zero_value(self.dtype)

    def value_from_default(self):
        if self.default is not None:
            return copy.deepcopy(self.default)

        return repeat(self.element_default(), self.shape)


class PrimitiveField(Field):
    '''Subclasses indicate the element type via the "element" attribute'''
    element = None

    def __init__(self, **kw):
        super().__init__(self.element, **kw)


class Bool(PrimitiveField):
    element = dtypes.bool_


class Int8(PrimitiveField):
    element = dtypes.int8


class Int16(PrimitiveField):
    element = dtypes.int16


class Int32(PrimitiveField):
    element = dtypes.int32


class Int64(PrimitiveField):
    element = dtypes.int64


class UInt8(PrimitiveField):
    element = dtypes.uint8


class UInt16(PrimitiveField):
    element = dtypes.uint16


class UInt32(PrimitiveField):
    element = dtypes.uint32


class UInt64(PrimitiveField):
    element = dtypes.uint64


class Float16(PrimitiveField):
    element = dtypes.float16


class Float32(PrimitiveField):
    element = dtypes.float32


class Float64(PrimitiveField):
    element = dtypes.float64


class Complex64(PrimitiveField):
    element = dtypes.complex64


class Complex128(PrimitiveField):
    element = dtypes.complex128


class Bytes(Field):
    """Fixed length binary string, NUL padded."""

    def __init__(self, length, **kw):
        super().__init__(dtypes.bytes_(length), **kw)


class Unicode(Field):
    """Fixed length string of length code points."""

    def __init__(self, length, **kw):
        super().__init__(dtypes.unicode(length), **kw)


class Void(Field):
    """Opaque bytes."""

    def __init__(self, length, **kw):
        super().__init__(dtypes.void(length), **kw)


class Datetime64(Field):

    def __init__(self, unit=None, **kw):
        super().__init__(dtypes.datetime64(unit), **kw)


class Timedelta64(Field):

    def __init__(self, unit=None, **kw):
        super().__init__(dtypes.timedelta64(unit), **kw)


class Nested(Field):
    """A record inside a record."""

    def __init__(self, record, **kw):
        if not is_record(record):
            raise LayoutError(f'{record!r} is not a record class')

        super().__init__(record, **kw)
