"""
Element codecs translate between the bytes of a single element and a python
value, walking the element type once to build a tree of codecs that is then
reused for every element.

The python values used by default are

 - bool, int, float and complex for the numeric kinds (int for datetimes);
 - bytes for 'S' (without the trailing NULs) and 'V';
 - str for 'U' (without the trailing NULs);
 - dict for structured elements, nested lists for fixed-size array fields.

A caller can ask for a specific host type with the "into" argument of
codec_for(): the request is checked against the element type before any
data is touched.
"""
import logging
import numbers
import operator
import struct
from collections.abc import Mapping

from .dtype import ElementType, Primitive, Structured
from .enum import Endianess, Kind
from .exceptions import DecodeError, EncodeError, Truncated, TypeMismatch


logger = logging.getLogger(__name__)


_STRUCT_CODES = {
    (Kind.BOOL, 1):      '?',
    (Kind.INT, 1):       'b',
    (Kind.INT, 2):       'h',
    (Kind.INT, 4):       'i',
    (Kind.INT, 8):       'q',
    (Kind.UINT, 1):      'B',
    (Kind.UINT, 2):      'H',
    (Kind.UINT, 4):      'I',
    (Kind.UINT, 8):      'Q',
    (Kind.FLOAT, 2):     'e',
    (Kind.FLOAT, 4):     'f',
    (Kind.FLOAT, 8):     'd',
    (Kind.COMPLEX, 8):   'ff',
    (Kind.COMPLEX, 16):  'dd',
    (Kind.DATETIME, 8):  'q',
    (Kind.TIMEDELTA, 8): 'q',
}

# which kinds can be decoded into which python type
_HOST_KINDS = {
    bool:    (Kind.BOOL,),
    int:     (Kind.INT, Kind.UINT, Kind.DATETIME, Kind.TIMEDELTA),
    float:   (Kind.FLOAT,),
    complex: (Kind.COMPLEX,),
    bytes:   (Kind.BYTES, Kind.VOID),
    str:     (Kind.UNICODE,),
}


class ElementCodec(object):
    '''Base class to subclass from'''

    def __init__(self, dtype: ElementType):
        self.dtype = dtype

    @property
    def size(self):
        return self.dtype.size

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.dtype!r})>'

    def decode(self, buffer, offset=0):
        raise NotImplementedError(f"method {self.__class__.__name__}.decode() not implemented")

    def encode(self, value, buffer, offset=0):
        raise NotImplementedError(f"method {self.__class__.__name__}.encode() not implemented")

    def decode_many(self, buffer, count, offset=0):
        size = self.size
        return [self.decode(buffer, offset + index * size) for index in range(count)]

    def pack(self, value) -> bytes:
        '''Encode a single element into a new bytes object.'''
        buffer = bytearray(self.size)
        self.encode(value, buffer, 0)
        return bytes(buffer)

    def unpack(self, raw):
        '''Decode a single element from the start of raw.'''
        if len(raw) < self.size:
            raise Truncated(0, self.size, len(raw))

        return self.decode(raw, 0)


class NumberCodec(ElementCodec):
    '''Booleans, integers, floats and datetimes: a plain struct format.'''

    def __init__(self, dtype):
        super().__init__(dtype)
        self.code = _STRUCT_CODES[(dtype.kind, dtype.width)]
        self._struct = struct.Struct(dtype.endianess.struct_prefix + self.code)

    def decode(self, buffer, offset=0):
        return self._struct.unpack_from(buffer, offset)[0]

    def decode_many(self, buffer, count, offset=0):
        if count == 0:
            return []
        many = struct.Struct('%s%d%s' % (self.dtype.endianess.struct_prefix, count, self.code))
        return list(many.unpack_from(buffer, offset))

    def _coerce(self, value):
        kind = self.dtype.kind
        if kind is Kind.BOOL:
            if not isinstance(value, (bool, int)):
                raise EncodeError(f'expected a boolean, not {value!r}')
            return bool(value)

        if kind is Kind.FLOAT:
            if not isinstance(value, numbers.Real):
                raise EncodeError(f'expected a real number, not {value!r}')
            return float(value)

        try:
            return operator.index(value)
        except TypeError:
            raise EncodeError(f'expected an integer, not {value!r}')

    def encode(self, value, buffer, offset=0):
        try:
            self._struct.pack_into(buffer, offset, self._coerce(value))
        except (struct.error, OverflowError) as e:
            raise EncodeError(f'cannot encode {value!r} as {self.dtype.type_string}: {e}')


class ComplexCodec(ElementCodec):

    def __init__(self, dtype):
        super().__init__(dtype)
        self._struct = struct.Struct(dtype.endianess.struct_prefix + _STRUCT_CODES[(dtype.kind, dtype.width)])

    def decode(self, buffer, offset=0):
        real, imag = self._struct.unpack_from(buffer, offset)
        return complex(real, imag)

    def encode(self, value, buffer, offset=0):
        if not isinstance(value, numbers.Complex):
            raise EncodeError(f'expected a complex number, not {value!r}')

        value = complex(value)
        try:
            self._struct.pack_into(buffer, offset, value.real, value.imag)
        except (struct.error, OverflowError) as e:
            raise EncodeError(f'cannot encode {value!r} as {self.dtype.type_string}: {e}')


class BytesCodec(ElementCodec):
    '''Fixed-width byte strings, NUL padded.'''

    def decode(self, buffer, offset=0):
        return bytes(buffer[offset:offset + self.size]).rstrip(b'\x00')

    def encode(self, value, buffer, offset=0):
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise EncodeError(f'expected bytes, not {value!r}')

        value = bytes(value)
        if len(value) > self.size:
            raise EncodeError(f'{value!r} is longer than {self.size} bytes')

        buffer[offset:offset + self.size] = value.ljust(self.size, b'\x00')


class VoidCodec(ElementCodec):
    '''Opaque bytes, kept as they are.'''

    def decode(self, buffer, offset=0):
        return bytes(buffer[offset:offset + self.size])

    def encode(self, value, buffer, offset=0):
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise EncodeError(f'expected bytes, not {value!r}')

        if len(value) != self.size:
            raise EncodeError(f'expected exactly {self.size} bytes, got {len(value)}')

        buffer[offset:offset + self.size] = bytes(value)


class UnicodeCodec(ElementCodec):
    '''Fixed-width UCS-4 strings, NUL padded.'''

    def __init__(self, dtype):
        super().__init__(dtype)
        self.encoding = 'utf-32-be' if dtype.endianess is Endianess.BIG_ENDIAN else 'utf-32-le'

    def decode(self, buffer, offset=0):
        raw = bytes(buffer[offset:offset + self.size])
        try:
            return raw.decode(self.encoding).rstrip('\x00')
        except UnicodeDecodeError as e:
            raise DecodeError(f'invalid code point in {raw!r}: {e}')

    def encode(self, value, buffer, offset=0):
        if not isinstance(value, str):
            raise EncodeError(f'expected a string, not {value!r}')

        if len(value) > self.dtype.width:
            raise EncodeError(f'{value!r} is longer than {self.dtype.width} characters')

        try:
            raw = value.encode(self.encoding)
        except UnicodeEncodeError as e:
            raise EncodeError(f'cannot encode {value!r}: {e}')

        buffer[offset:offset + self.size] = raw.ljust(self.size, b'\x00')


class ArrayCodec(ElementCodec):
    '''A fixed-size (possibly multidimensional) array of elements, as
    found in the fields of structured types. Values are nested lists.'''

    def __init__(self, element, shape):
        super().__init__(element.dtype)
        self.element = element
        self.shape = shape
        self._size = element.size
        for dim in shape:
            self._size *= dim

    @property
    def size(self):
        return self._size

    def _decode(self, buffer, offset, shape):
        if len(shape) == 1:
            return self.element.decode_many(buffer, shape[0], offset)

        stride = self.element.size
        for dim in shape[1:]:
            stride *= dim

        return [self._decode(buffer, offset + index * stride, shape[1:]) for index in range(shape[0])]

    def decode(self, buffer, offset=0):
        return self._decode(buffer, offset, self.shape)

    def _encode(self, value, buffer, offset, shape):
        if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, '__len__'):
            raise EncodeError(f'expected a sequence of {shape[0]} elements, not {value!r}')

        if len(value) != shape[0]:
            raise EncodeError(f'expected {shape[0]} elements, got {len(value)}')

        stride = self.element.size
        for dim in shape[1:]:
            stride *= dim

        for index, item in enumerate(value):
            if len(shape) == 1:
                self.element.encode(item, buffer, offset + index * stride)
            else:
                self._encode(item, buffer, offset + index * stride, shape[1:])

    def encode(self, value, buffer, offset=0):
        self._encode(value, buffer, offset, self.shape)


class StructCodec(ElementCodec):
    '''Structured elements: each field is decoded at its own offset inside
    the element. The generic value is a dict with the fields in order.'''

    def __init__(self, dtype, fields):
        super().__init__(dtype)
        self.fields = fields  # list of (name, offset, codec)
        self.names = [_[0] for _ in fields]

    def _decode_values(self, buffer, offset):
        values = []
        for name, field_offset, codec in self.fields:
            try:
                values.append(codec.decode(buffer, offset + field_offset))
            except DecodeError as e:
                e.chain.insert(0, name)
                raise

        return values

    def decode(self, buffer, offset=0):
        return dict(zip(self.names, self._decode_values(buffer, offset)))

    def _values_from(self, value):
        if isinstance(value, Mapping):
            missing = [_ for _ in self.names if _ not in value]
            if missing:
                raise EncodeError(f'missing fields {missing}')
            extra = [_ for _ in value if _ not in self.names]
            if extra:
                raise EncodeError(f'unknown fields {extra}')
            return [value[_] for _ in self.names]

        if isinstance(value, (tuple, list)):
            if len(value) != len(self.names):
                raise EncodeError(f'expected {len(self.names)} fields, got {len(value)}')
            return value

        raise EncodeError(f'expected a mapping or a sequence of fields, not {value!r}')

    def encode(self, value, buffer, offset=0):
        values = self._values_from(value)

        # padding is always zero
        buffer[offset:offset + self.size] = bytes(self.size)

        for (name, field_offset, codec), item in zip(self.fields, values):
            try:
                codec.encode(item, buffer, offset + field_offset)
            except EncodeError as e:
                e.chain.insert(0, name)
                raise


class RecordCodec(StructCodec):
    '''Like StructCodec but building instances of a record class.'''

    def __init__(self, dtype, fields, record):
        super().__init__(dtype, fields)
        self.record = record

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.record.__name__})>'

    def decode(self, buffer, offset=0):
        return self.record._from_values(self._decode_values(buffer, offset))

    def _values_from(self, value):
        if isinstance(value, self.record):
            return [getattr(value, _) for _ in self.names]

        return super()._values_from(value)


def _primitive_codec(dtype: Primitive):
    if dtype.kind is Kind.COMPLEX:
        return ComplexCodec(dtype)
    if dtype.kind is Kind.BYTES:
        return BytesCodec(dtype)
    if dtype.kind is Kind.VOID:
        return VoidCodec(dtype)
    if dtype.kind is Kind.UNICODE:
        return UnicodeCodec(dtype)

    return NumberCodec(dtype)


def _field_codec(field, into=None):
    codec = codec_for(field.dtype, into=into)
    if field.shape:
        codec = ArrayCodec(codec, field.shape)

    return codec


def check_compatible(expected: ElementType, found: ElementType):
    reason = expected.incompatibility(found)
    if reason is not None:
        chain, message = reason
        raise TypeMismatch(message, chain=chain)


def record_codec(dtype: Structured, record):
    '''Codec for a record class; dtype is the one found in the data, that
    must be compatible with the one of the record.'''
    check_compatible(record._meta.dtype, dtype)

    fields = [
        (field.name, field.offset, _field_codec(field, into=record._meta.nested.get(field.name)))
        for field in dtype.fields
    ]

    return RecordCodec(dtype, fields, record)


def codec_for(dtype: ElementType, into=None) -> ElementCodec:
    '''Build the codec for the given element type.

    into can be None, a python type (bool, int, float, complex, bytes, str),
    an element type or a record class.'''
    if into is not None:
        if isinstance(into, ElementType):
            check_compatible(into, dtype)
        elif isinstance(into, type) and hasattr(into, '_meta'):
            if not isinstance(dtype, Structured):
                raise TypeMismatch(f'cannot decode {dtype!r} into record {into.__name__}')
            return record_codec(dtype, into)
        elif isinstance(into, type) and into in _HOST_KINDS:
            if not isinstance(dtype, Primitive) or dtype.kind not in _HOST_KINDS[into]:
                raise TypeMismatch(f'cannot decode {dtype!r} into {into.__name__}')
        else:
            raise TypeError(f'don\'t know how to decode into {into!r}')

    if isinstance(dtype, Primitive):
        return _primitive_codec(dtype)

    if isinstance(dtype, Structured):
        return StructCodec(dtype, [(_.name, _.offset, _field_codec(_)) for _ in dtype.fields])

    raise TypeError(f'{dtype!r} is not an element type')
