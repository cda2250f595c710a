"""
# NPY header

The layout of the start of a file is the following

  .--------------------------------------------------.
  | magic "\\x93NUMPY"                     (6 bytes)  |
  | major version                          (1 byte)   |
  | minor version                          (1 byte)   |
  | header length, little endian           (2/4 bytes)|
  | header text                                       |
  '--------------------------------------------------'

followed by the raw elements. The header text is the repr() of a dictionary
with the keys 'descr', 'fortran_order' and 'shape', padded with spaces and
terminated by a newline so that the whole preamble is a multiple of
ARRAY_ALIGN bytes.

Version 1.0 has a 2 bytes length, 2.0 a 4 bytes one; 3.0 is like 2.0 but the
text is utf8 encoded instead of latin1.

Right after the dictionary some spare spaces are reserved, so that the
length of the growth axis (the first one, or the last one for fortran order)
can be rewritten in place up to GROWTH_AXIS_MAX_DIGITS digits.
"""
import ast
import logging
import struct
from enum import Enum

from .descr import from_descr, to_descr
from .dtype import ElementType, shape_count
from .enum import Order
from .exceptions import (
    BadHeader,
    BadMagic,
    BadValue,
    FormatError,
    LayoutError,
    MissingKey,
    Truncated,
    UnsupportedVersion,
)


logger = logging.getLogger(__name__)

MAGIC = b'\x93NUMPY'
MAGIC_LEN = len(MAGIC) + 2
ARRAY_ALIGN = 64
GROWTH_AXIS_MAX_DIGITS = 21

REQUIRED_KEYS = ('descr', 'fortran_order', 'shape')


class HeaderVersion(Enum):
    V1_0 = (1, 0)
    V2_0 = (2, 0)
    V3_0 = (3, 0)

    @property
    def major(self):
        return self.value[0]

    @property
    def minor(self):
        return self.value[1]

    @property
    def length_format(self):
        return '<H' if self is HeaderVersion.V1_0 else '<I'

    @property
    def max_length(self):
        return 0xffff if self is HeaderVersion.V1_0 else 0xffffffff

    @property
    def encoding(self):
        return 'utf8' if self is HeaderVersion.V3_0 else 'latin1'

    @property
    def prefix_size(self):
        return MAGIC_LEN + struct.calcsize(self.length_format)


class Header(object):
    '''Metadata of an array: element type, shape and storage order.

    When obtained from decode_header() it also carries the version
    and the total size (in bytes) of the header it was read from.'''

    def __init__(self, dtype, shape, order=Order.C):
        if not isinstance(dtype, ElementType):
            raise LayoutError(f'{dtype!r} is not an element type')

        shape = tuple(shape)
        for dim in shape:
            if not isinstance(dim, int) or isinstance(dim, bool) or dim < 0:
                raise LayoutError(f'invalid dimension {dim!r} in shape {shape!r}')

        self.dtype = dtype
        self.shape = tuple(int(_) for _ in shape)
        self.order = Order(order)
        self.version = None
        self.size = None

    @property
    def count(self):
        '''Total number of elements'''
        return shape_count(self.shape)

    @property
    def growth_axis(self):
        '''Index of the dimension that can grow while streaming, None for scalars.'''
        if not self.shape:
            return None

        return len(self.shape) - 1 if self.order.is_fortran else 0

    def with_shape(self, shape):
        return Header(self.dtype, shape, order=self.order)

    def to_dict(self):
        return {
            'descr': to_descr(self.dtype),
            'fortran_order': self.order.is_fortran,
            'shape': self.shape,
        }

    def __eq__(self, other):
        return isinstance(other, Header) and \
            (self.dtype, self.shape, self.order) == (other.dtype, other.shape, other.order)

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return '<%s(dtype=%r, shape=%r, order=%s)>' % (
            self.__class__.__name__, self.dtype, self.shape, self.order.name)


def render_header_text(header: Header, reserve_digits=GROWTH_AXIS_MAX_DIGITS) -> str:
    '''Dictionary literal with sorted keys followed by the spare room for the growth axis.'''
    text = ['{']
    for key, value in sorted(header.to_dict().items()):
        text.append("'%s': %s, " % (key, repr(value)))
    text.append('}')
    text = ''.join(text)

    axis = header.growth_axis
    if axis is not None:
        text += ' ' * max(reserve_digits - len(repr(header.shape[axis])), 0)

    return text


def _framed_length(text_size, version):
    '''Value of the length field for a text of the given size'''
    hlen = text_size + 1  # the final newline
    padlen = ARRAY_ALIGN - ((version.prefix_size + hlen) % ARRAY_ALIGN)
    return hlen + padlen


def choose_version(text: str) -> HeaderVersion:
    '''The oldest version able to represent the header text.'''
    try:
        data = text.encode('latin1')
    except UnicodeEncodeError:
        return HeaderVersion.V3_0

    if _framed_length(len(data), HeaderVersion.V1_0) <= HeaderVersion.V1_0.max_length:
        return HeaderVersion.V1_0

    return HeaderVersion.V2_0


def frame_header(text: str, version: HeaderVersion) -> bytes:
    data = text.encode(version.encoding)
    length = _framed_length(len(data), version)
    if length > version.max_length:
        raise FormatError(f'header of {length} bytes is too long for version {version.major}.{version.minor}')

    padlen = length - len(data) - 1

    return MAGIC + bytes(version.value) + struct.pack(version.length_format, length) + data + b' ' * padlen + b'\n'


def encode_header(header: Header, version=None, reserve_digits=GROWTH_AXIS_MAX_DIGITS) -> bytes:
    text = render_header_text(header, reserve_digits=reserve_digits)
    if version is None:
        version = choose_version(text)

    logger.debug('encoding header %r with version %d.%d' % (header, version.major, version.minor))

    return frame_header(text, version)


def parse_literal(text: str):
    '''Parse the header text as a python literal.'''
    try:
        return ast.literal_eval(text)
    except (SyntaxError, ValueError, TypeError, MemoryError, RecursionError) as e:
        raise BadHeader(f'cannot parse header {text!r}: {e}')


def _validate(value):
    if not isinstance(value, dict):
        raise BadHeader(f'header is not a dictionary: {value!r}')

    for key in REQUIRED_KEYS:
        if key not in value:
            raise MissingKey(f'header is missing the key {key!r}')

    descr = value['descr']
    if not isinstance(descr, (str, list)):
        raise BadValue(f'descr must be a string or a list, not {descr!r}', chain=['descr'])

    fortran_order = value['fortran_order']
    if not isinstance(fortran_order, bool):
        raise BadValue(f'fortran_order must be a boolean, not {fortran_order!r}', chain=['fortran_order'])

    shape = value['shape']
    if not isinstance(shape, tuple) or \
            not all(isinstance(_, int) and not isinstance(_, bool) and _ >= 0 for _ in shape):
        raise BadValue(f'shape must be a tuple of non-negative integers, not {shape!r}', chain=['shape'])

    unknown = set(value) - set(REQUIRED_KEYS)
    if unknown:
        logger.debug('ignoring unknown header keys %s' % sorted(unknown, key=repr))

    return descr, fortran_order, shape


def decode_header(stream) -> Header:
    '''Read the header from the stream, leaving it at the start of the data.'''
    start = stream.tell()
    preamble = stream.read_upto(MAGIC_LEN)
    magic = preamble[:len(MAGIC)]
    if not MAGIC.startswith(magic):
        raise BadMagic(f'the magic doesn\'t correspond: {magic!r}')

    # a prefix of the magic is a file cut short, not a different format
    if len(preamble) < MAGIC_LEN:
        raise Truncated(start, MAGIC_LEN, len(preamble))

    try:
        version = HeaderVersion((preamble[6], preamble[7]))
    except ValueError:
        raise UnsupportedVersion(f'version {preamble[6]}.{preamble[7]} is not supported')

    size = struct.calcsize(version.length_format)
    length, = struct.unpack(version.length_format, stream.read_exact(size))
    raw = stream.read_exact(length)

    try:
        text = raw.decode(version.encoding)
    except UnicodeDecodeError as e:
        raise BadHeader(f'header is not valid {version.encoding}: {e}')

    descr, fortran_order, shape = _validate(parse_literal(text))

    header = Header(from_descr(descr), shape, order=Order.FORTRAN if fortran_order else Order.C)
    header.version = version
    header.size = version.prefix_size + length

    logger.debug('decoded header %r (version %d.%d, %d bytes)' % (header, version.major, version.minor, header.size))

    return header
