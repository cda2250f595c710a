import io
import struct

import pytest

import npystruct.read
from npystruct import dtype
from npystruct.dtype import Structured
from npystruct.enum import Order, ReaderPhase
from npystruct.exceptions import BadMagic, Truncated, TypeMismatch
from npystruct.header import Header, encode_header
from npystruct.read import NpyFile, from_bytes, load
from npystruct.write import save, to_bytes


def _npy(header, payload):
    return encode_header(header) + payload


def test_read():
    data = _npy(Header(dtype.int64, (5,)), struct.pack('<5q', 0, 1, 2, 3, 4))

    npy = NpyFile(data)

    assert npy.phase is ReaderPhase.READY
    assert npy.dtype == dtype.int64
    assert npy.shape == (5,)
    assert npy.order is Order.C
    assert npy.count == len(npy) == 5

    assert list(npy.data()) == [0, 1, 2, 3, 4]
    assert npy.phase is ReaderPhase.DONE


def test_read_is_lazy():
    data = _npy(Header(dtype.int16, (3,)), struct.pack('<3h', 7, 8, 9))

    npy = NpyFile(data)
    elements = npy.data()

    assert npy.phase is ReaderPhase.STREAMING
    assert next(elements) == 7
    assert list(elements) == [8, 9]
    assert npy.phase is ReaderPhase.DONE


def test_read_chunks(monkeypatch):
    """Elements spanning more than one read are produced in order."""
    monkeypatch.setattr(npystruct.read, 'BUFFER_SIZE', 10)

    values = list(range(100))
    data = _npy(Header(dtype.int32, (100,)), struct.pack('<100i', *values))

    assert from_bytes(data) == values


def test_read_structured():
    element = Structured.packed([('x', dtype.float32), ('label', dtype.bytes_(4))])
    payload = struct.pack('<f4s', 1.5, b'ab') + struct.pack('<f4s', -2.0, b'cdef')

    assert from_bytes(_npy(Header(element, (2,)), payload)) == [
        {'x': 1.5, 'label': b'ab'},
        {'x': -2.0, 'label': b'cdef'},
    ]


def test_read_multidimensional():
    """Elements are produced in storage order whatever the order."""
    payload = struct.pack('<6b', 0, 1, 2, 3, 4, 5)

    npy = NpyFile(_npy(Header(dtype.int8, (3, 2), order=Order.FORTRAN), payload))

    assert npy.shape == (3, 2)
    assert npy.order is Order.FORTRAN
    assert npy.to_list() == [0, 1, 2, 3, 4, 5]


def test_read_scalar():
    npy = NpyFile(_npy(Header(dtype.float64, ()), struct.pack('<d', 2.5)))

    assert npy.shape == ()
    assert npy.count == 1
    assert npy.to_list() == [2.5]


def test_read_empty():
    npy = NpyFile(_npy(Header(dtype.float64, (0, 4)), b''))

    assert npy.count == 0
    assert npy.to_list() == []
    assert npy.phase is ReaderPhase.DONE


def test_read_zero_size_elements():
    assert from_bytes(_npy(Header(dtype.bytes_(0), (3,)), b'')) == [b'', b'', b'']


def test_read_truncated():
    """The complete elements are produced before the error."""
    data = _npy(Header(dtype.int32, (10,)), struct.pack('<10i', *range(10)))[:-6]

    npy = NpyFile(data)
    produced = []

    with pytest.raises(Truncated) as excinfo:
        for value in npy.data():
            produced.append(value)

    assert produced == list(range(8))
    assert excinfo.value.offset == 128 + 8 * 4
    assert excinfo.value.expected == 4
    assert excinfo.value.available == 2
    assert npy.phase is ReaderPhase.FAILED


def test_read_restart():
    """A seekable source can be iterated again from the beginning."""
    npy = NpyFile(_npy(Header(dtype.uint8, (4,)), b'\x01\x02\x03\x04'))

    elements = npy.data()
    assert next(elements) == 1

    assert list(npy.data()) == [1, 2, 3, 4]
    assert list(npy) == [1, 2, 3, 4]


def test_read_at():
    npy = NpyFile(_npy(Header(dtype.int16, (4,)), struct.pack('<4h', 10, 20, 30, 40)))

    assert npy.read_at(0) == 10
    assert npy.read_at(2) == 30
    assert npy[-1] == 40

    with pytest.raises(IndexError):
        npy.read_at(4)

    with pytest.raises(IndexError):
        npy.read_at(-5)

    # random access doesn't disturb streaming
    assert npy.to_list() == [10, 20, 30, 40]


def test_read_unseekable(unseekable):
    data = _npy(Header(dtype.int16, (3,)), struct.pack('<3h', 1, 2, 3))

    npy = NpyFile(unseekable(data))

    with pytest.raises(io.UnsupportedOperation):
        npy.read_at(0)

    assert npy.to_list() == [1, 2, 3]

    with pytest.raises(io.UnsupportedOperation):
        npy.data()


def test_read_unseekable_truncated(unseekable):
    data = _npy(Header(dtype.int16, (3,)), struct.pack('<3h', 1, 2, 3))[:-1]

    npy = NpyFile(unseekable(data))

    with pytest.raises(Truncated) as excinfo:
        npy.to_list()

    assert excinfo.value.offset == 128 + 4


def test_read_into():
    data = _npy(Header(dtype.int32.with_endianess('>'), (2,)), struct.pack('>2i', 1, -1))

    assert from_bytes(data, into=int) == [1, -1]
    assert from_bytes(data, into=dtype.int32) == [1, -1]

    with pytest.raises(TypeMismatch):
        NpyFile(data, into=str)

    with pytest.raises(TypeMismatch):
        NpyFile(data, into=dtype.uint32)


def test_read_bad_file():
    with pytest.raises(BadMagic):
        NpyFile(b'PK\x03\x04' + b'\x00' * 200)


def test_read_file_object_left_open():
    fp = io.BytesIO(to_bytes([1, 2], dtype.int8))

    with NpyFile(fp) as npy:
        assert npy.to_list() == [1, 2]

    assert not fp.closed


def test_read_path(tmp_path):
    path = tmp_path / 'array.npy'
    save(path, [1.0, 2.0], dtype.float32)

    assert load(path) == [1.0, 2.0]
    assert load(str(path)) == [1.0, 2.0]

    with NpyFile(path) as npy:
        stream = npy.stream
        assert npy.read_at(1) == 2.0

    assert stream.obj.closed
