import struct

import pytest

from npystruct import dtype
from npystruct.dtype import Structured
from npystruct.enum import Endianess
from npystruct.exceptions import DecodeError, EncodeError, Truncated, TypeMismatch
from npystruct.serialize import codec_for


BIG = Endianess.BIG_ENDIAN


@pytest.mark.parametrize('element,fmt,value', [
    (dtype.bool_, '?', True),
    (dtype.int8, 'b', -5),
    (dtype.int16, '<h', -300),
    (dtype.int32.with_endianess(BIG), '>i', -70000),
    (dtype.int64, '<q', -2 ** 40),
    (dtype.uint8, 'B', 200),
    (dtype.uint16.with_endianess(BIG), '>H', 0xcafe),
    (dtype.uint32, '<I', 0xdeadbeef),
    (dtype.uint64, '<Q', 2 ** 63),
    (dtype.float16, '<e', 1.5),
    (dtype.float32.with_endianess(BIG), '>f', 0.25),
    (dtype.float64, '<d', 3.14),
    (dtype.datetime64('D'), '<q', 18262),
])
def test_numbers(element, fmt, value):
    codec = codec_for(element)
    raw = struct.pack(fmt, value)

    assert codec.size == element.size
    assert codec.pack(value) == raw
    assert codec.unpack(raw) == value


def test_complex():
    codec = codec_for(dtype.complex64)

    assert codec.pack(1 + 2j) == struct.pack('<ff', 1.0, 2.0)
    assert codec.unpack(struct.pack('<ff', 1.0, 2.0)) == 1 + 2j
    assert codec.pack(3) == struct.pack('<ff', 3.0, 0.0)

    codec = codec_for(dtype.complex128.with_endianess(BIG))

    assert codec.pack(complex(0.0, -1.0)) == struct.pack('>dd', 0.0, -1.0)
    assert codec.pack(-1j) == struct.pack('>dd', -0.0, -1.0)


def test_decode_many():
    codec = codec_for(dtype.int16)
    raw = struct.pack('<5h', 1, 2, 3, 4, 5)

    assert codec.decode_many(raw, 5) == [1, 2, 3, 4, 5]
    assert codec.decode_many(raw, 2, offset=4) == [3, 4]
    assert codec.decode_many(raw, 0) == []


def test_bytes():
    codec = codec_for(dtype.bytes_(4))

    assert codec.pack(b'ab') == b'ab\x00\x00'
    assert codec.pack(b'abcd') == b'abcd'
    assert codec.unpack(b'ab\x00\x00') == b'ab'

    with pytest.raises(EncodeError):
        codec.pack(b'abcde')

    with pytest.raises(EncodeError):
        codec.pack('ab')


def test_void():
    codec = codec_for(dtype.void(3))

    assert codec.pack(b'\x00\x01\x00') == b'\x00\x01\x00'
    assert codec.unpack(b'\x00\x01\x00') == b'\x00\x01\x00'

    with pytest.raises(EncodeError):
        codec.pack(b'\x00')


def test_unicode():
    codec = codec_for(dtype.unicode(3))

    assert codec.size == 12
    assert codec.pack('hé') == 'hé'.encode('utf-32-le') + b'\x00' * 4
    assert codec.unpack('hé'.encode('utf-32-le') + b'\x00' * 4) == 'hé'

    codec = codec_for(dtype.unicode(2, BIG))

    assert codec.pack('a') == b'\x00\x00\x00a' + b'\x00' * 4
    assert codec.unpack(b'\x00\x00\x00a\x00\x00\x00b') == 'ab'

    with pytest.raises(EncodeError):
        codec.pack('abc')

    with pytest.raises(DecodeError):
        codec.unpack(b'\xff\xff\xff\xff' * 2)


@pytest.mark.parametrize('element,value', [
    (dtype.int8, 300),
    (dtype.uint8, -1),
    (dtype.uint64, 2 ** 64),
    (dtype.int32, 'a'),
    (dtype.int32, 1.5),
    (dtype.float32, 'a'),
    (dtype.float32, 1e300),
    (dtype.bool_, None),
    (dtype.complex64, 'a'),
])
def test_encode_error(element, value):
    with pytest.raises(EncodeError):
        codec_for(element).pack(value)


def test_truncated():
    with pytest.raises(Truncated) as excinfo:
        codec_for(dtype.int64).unpack(b'\x00' * 5)

    assert excinfo.value.expected == 8
    assert excinfo.value.available == 5


def test_structured():
    """Check that fields are placed at their offset and padding is zeroed."""
    element = Structured([
        ('a', 0, dtype.int16),
        ('b', 4, dtype.float32),
    ], itemsize=12)

    codec = codec_for(element)
    raw = struct.pack('<h', 1) + b'\x00\x00' + struct.pack('<f', 2.0) + b'\x00' * 4

    assert codec.size == 12
    assert codec.pack({'a': 1, 'b': 2.0}) == raw
    assert codec.pack((1, 2.0)) == raw
    assert codec.unpack(raw) == {'a': 1, 'b': 2.0}
    assert list(codec.unpack(raw).keys()) == ['a', 'b']

    # padding bytes are ignored when reading
    assert codec.unpack(raw[:2] + b'\xff\xff' + raw[4:]) == {'a': 1, 'b': 2.0}


def test_structured_invalid_values():
    codec = codec_for(Structured.packed([('a', dtype.int16), ('b', dtype.float32)]))

    with pytest.raises(EncodeError):
        codec.pack({'a': 1})

    with pytest.raises(EncodeError):
        codec.pack({'a': 1, 'b': 2.0, 'c': 3})

    with pytest.raises(EncodeError):
        codec.pack((1,))

    with pytest.raises(EncodeError):
        codec.pack(1)

    with pytest.raises(EncodeError) as excinfo:
        codec.pack({'a': 1, 'b': 'x'})

    assert excinfo.value.chain == ['b']


def test_nested_error_chain():
    inner = Structured.packed([('a', dtype.int8), ('s', dtype.unicode(1))])
    codec = codec_for(Structured.packed([('p', inner)]))

    with pytest.raises(EncodeError) as excinfo:
        codec.pack({'p': {'a': 1000, 's': 'x'}})

    assert excinfo.value.chain == ['p', 'a']
    assert "in field 'p.a'" in str(excinfo.value)

    with pytest.raises(DecodeError) as excinfo:
        codec.unpack(b'\x01\xff\xff\xff\xff')

    assert excinfo.value.chain == ['p', 's']


def test_array_field():
    codec = codec_for(Structured.packed([
        ('v', dtype.int16, (2, 3)),
        ('flag', dtype.bool_),
    ]))

    raw = struct.pack('<6h?', 1, 2, 3, 4, 5, 6, True)

    assert codec.pack({'v': [[1, 2, 3], [4, 5, 6]], 'flag': True}) == raw
    assert codec.unpack(raw) == {'v': [[1, 2, 3], [4, 5, 6]], 'flag': True}

    with pytest.raises(EncodeError):
        codec.pack({'v': [[1, 2, 3]], 'flag': True})

    with pytest.raises(EncodeError):
        codec.pack({'v': [[1, 2, 3], [4, 5]], 'flag': True})

    with pytest.raises(EncodeError):
        codec.pack({'v': 1, 'flag': True})


def test_empty_array_field():
    codec = codec_for(Structured.packed([('v', dtype.float64, (0,)), ('a', dtype.int8)]))

    assert codec.size == 1
    assert codec.pack({'v': [], 'a': 1}) == b'\x01'
    assert codec.unpack(b'\x01') == {'v': [], 'a': 1}


def test_into_host_type():
    assert codec_for(dtype.int32, into=int).unpack(b'\x01\x00\x00\x00') == 1
    assert codec_for(dtype.datetime64('s'), into=int) is not None
    assert codec_for(dtype.bytes_(3), into=bytes) is not None
    assert codec_for(dtype.unicode(3), into=str) is not None

    with pytest.raises(TypeMismatch):
        codec_for(dtype.float64, into=int)

    with pytest.raises(TypeMismatch):
        codec_for(dtype.int8, into=bool)

    with pytest.raises(TypeMismatch):
        codec_for(Structured.packed([('a', dtype.int8)]), into=int)


def test_into_element_type():
    """The byte order is not part of the compatibility check."""
    codec = codec_for(dtype.int32.with_endianess(BIG), into=dtype.int32)

    assert codec.unpack(b'\x00\x00\x00\x01') == 1

    with pytest.raises(TypeMismatch):
        codec_for(dtype.int32, into=dtype.int64)

    with pytest.raises(TypeMismatch) as excinfo:
        codec_for(
            Structured.packed([('a', dtype.int8), ('b', dtype.int8)]),
            into=Structured.packed([('a', dtype.int8), ('b', dtype.uint8)]),
        )

    assert excinfo.value.chain == ['b']


@pytest.mark.parametrize('into', [list, object(), 'i4'])
def test_into_unknown(into):
    with pytest.raises(TypeError):
        codec_for(dtype.int32, into=into)
