"""
# npystruct: NPY/NPZ files for humans.

An NPY file is the serialization of an array as used by numpy: a textual
header describing shape, storage order and element type, followed by the
elements packed one after the other. An NPZ file is a zip archive of NPY
files.

Two basic main operations are defined for the elements of an array:

 1. decode: take the bytes of an element and build its python value,
    honoring the byte order of each component

 2. encode: the inverse, placing each field of a structured element at
    its offset

A record class declares the fields of a structured element in order and
obtains the element type and the codec for free:

    class Point(Record):
        x = fields.Float32()
        y = fields.Float32()

    npystruct.save('points.npy', [Point(1.0, 2.0), Point(3.0, 4.0)], Point)

    with NpyFile('points.npy', into=Point) as npy:
        for point in npy:
            ...

A writer can be in one of the following phases

 1. OPEN
 2. FINALIZED
 3. FAILED

and a reader in one of

 1. HEADER_PENDING
 2. READY
 3. STREAMING
 4. DONE
 5. FAILED
"""
from . import dtype, fields
from .core import Record
from .descr import from_descr, to_descr
from .dtype import ElementType, Primitive, Field, Structured
from .enum import Endianess, Kind, Order
from .exceptions import (
    NpyException,
    FormatError,
    BadMagic,
    UnsupportedVersion,
    BadHeader,
    MissingKey,
    BadValue,
    BadTypeString,
    LayoutError,
    DecodeError,
    Truncated,
    TypeMismatch,
    EncodeError,
    WriteError,
    HeaderGrew,
    NotFinalized,
    WriteAfterFinalize,
    ShapeMismatch,
    ArchiveError,
    NotFound,
    DuplicateName,
)
from .header import Header, HeaderVersion, encode_header, decode_header
from .npz import NpzArchive, NpzWriter
from .read import NpyFile, load, from_bytes
from .write import NpyWriter, save, to_bytes
