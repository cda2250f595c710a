"""
Writing of NPY files.

The header must precede the data but the number of elements is usually
known only at the end, so two strategies are used depending on the sink:

 1. seekable: the header is written immediately with the growth axis set
    to zero; since the header text reserves room for the digits of the
    growth axis, finalize() can seek back and rewrite it in place.
 2. not seekable: the encoded elements are buffered in memory and the
    header followed by the data is written by finalize().

Both produce exactly the same bytes.
"""
import io
import logging

from .dtype import ElementType, shape_count
from .enum import Order, WriterPhase
from .exceptions import (
    FormatError,
    HeaderGrew,
    LayoutError,
    NotFinalized,
    ShapeMismatch,
    WriteAfterFinalize,
    WriteError,
)
from .header import GROWTH_AXIS_MAX_DIGITS, Header, encode_header, render_header_text, choose_version
from .serialize import codec_for
from .streams import Stream


logger = logging.getLogger(__name__)


def _parse_shape(dtype, shape, order):
    if shape is None:
        return (None,)

    shape = tuple(shape)
    unknown = [index for index, dim in enumerate(shape) if dim is None]
    if not unknown:
        Header(dtype, shape)  # validate the dimensions
        return shape

    growth_axis = len(shape) - 1 if order.is_fortran else 0
    if unknown != [growth_axis]:
        raise LayoutError(f'only the {"last" if order.is_fortran else "first"} dimension of {shape!r} can be unknown')

    Header(dtype, [_ for _ in shape if _ is not None])

    return shape


def prepare(dtype, shape=None, order=Order.C):
    '''Check a request to write an array without touching any sink.

    Returns the element type, its codec and the shape template.'''
    if isinstance(dtype, type) and hasattr(dtype, '_meta'):
        codec = codec_for(dtype._meta.dtype, into=dtype)
        dtype = dtype._meta.dtype
    elif isinstance(dtype, ElementType):
        codec = codec_for(dtype)
    else:
        raise TypeError(f'{dtype!r} is not an element type nor a record')

    return dtype, codec, _parse_shape(dtype, shape, Order(order))


class NpyWriter(object):
    '''Streaming writer of a single array.

    The dtype can be an element type or a record class. The shape can be

     - None: a 1-d array as long as the pushed elements;
     - a tuple with None in place of the growth axis (the first one, or
       the last one for fortran order), the other dimensions fixed;
     - a complete tuple, checked against the number of elements by finalize().
    '''

    def __init__(self, sink, dtype, shape=None, order=Order.C, reserve_digits=GROWTH_AXIS_MAX_DIGITS):
        self.dtype, self.codec, self._template = prepare(dtype, shape=shape, order=order)
        self.order = Order(order)
        self.reserve_digits = reserve_digits
        self.header = None
        self._count = 0

        self.stream = sink if isinstance(sink, Stream) else Stream(sink, flags='wb')
        self._phase = WriterPhase.OPEN

        if self.stream.seekable:
            self._start = self.stream.tell()
            placeholder = Header(self.dtype, [0 if _ is None else _ for _ in self._template], order=self.order)
            self._version = choose_version(render_header_text(placeholder, reserve_digits=reserve_digits))
            self._placeholder = encode_header(placeholder, version=self._version, reserve_digits=reserve_digits)
            self.stream.write(self._placeholder)
            logger.debug('writing to seekable %r, header of %d bytes reserved at offset %d' % (
                self.stream, len(self._placeholder), self._start))
        else:
            self._buffer = bytearray()
            logger.debug('writing to non seekable %r, buffering the data' % self.stream)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_type is None:
            if self._phase is WriterPhase.OPEN:
                self.finalize()
            return

        # no cleanup: the sink is left as it is and must be considered invalid
        if self._phase is WriterPhase.OPEN:
            logger.debug('aborting writer after %d elements because of %r' % (self._count, exc_value))
            self._phase = WriterPhase.FAILED
        self.stream.close()

    def __del__(self):
        if getattr(self, '_phase', None) is WriterPhase.OPEN:
            logger.warning('%s dropped without finalize(): the output is invalid' % self.__class__.__name__)

    def __repr__(self):
        return '<%s(dtype=%r, count=%d, phase=%s)>' % (
            self.__class__.__name__, self.dtype, self._count, self._phase.name)

    @property
    def phase(self):
        return self._phase

    @property
    def count(self):
        '''Number of elements pushed so far'''
        return self._count

    def _check_open(self):
        if self._phase is WriterPhase.FINALIZED:
            raise WriteAfterFinalize('the writer has already been finalized')
        if self._phase is WriterPhase.FAILED:
            raise WriteError('the writer failed and can\'t be used anymore')

    def push(self, value):
        '''Encode and append a single element.'''
        self._check_open()

        # a value that can't be encoded doesn't reach the sink
        raw = self.codec.pack(value)

        if self.stream.seekable:
            self.stream.write(raw)
        else:
            self._buffer += raw

        self._count += 1

    def extend(self, values):
        for value in values:
            self.push(value)

    def _final_shape(self):
        if None not in self._template:
            expected = shape_count(self._template)
            if expected != self._count:
                raise ShapeMismatch(f'shape {self._template!r} needs {expected} elements, {self._count} were written')
            return self._template

        inner = shape_count(_ for _ in self._template if _ is not None)
        if inner == 0:
            if self._count:
                raise ShapeMismatch(f'shape {self._template!r} can\'t hold any element, {self._count} were written')
            growth = 0
        else:
            growth, rest = divmod(self._count, inner)
            if rest:
                raise ShapeMismatch(f'{self._count} elements don\'t fill a whole number of rows of {inner}')

        return tuple(growth if _ is None else _ for _ in self._template)

    def _patch_header(self, header):
        try:
            data = encode_header(header, version=self._version, reserve_digits=self.reserve_digits)
        except FormatError as e:
            raise HeaderGrew(e.message)

        if len(data) != len(self._placeholder):
            raise HeaderGrew(
                f'the header for shape {header.shape!r} needs {len(data)} bytes, '
                f'{len(self._placeholder)} were reserved')

        logger.debug('patching header at offset %d with shape %r' % (self._start, header.shape))

        with self.stream.saved():
            self.stream.seek(self._start)
            self.stream.write(data)

    def finalize(self):
        '''Write the definitive header; it must be the last operation on the writer.'''
        self._check_open()

        try:
            header = Header(self.dtype, self._final_shape(), order=self.order)

            if self.stream.seekable:
                self._patch_header(header)
            else:
                self.stream.write(encode_header(header, reserve_digits=self.reserve_digits))
                self.stream.write(bytes(self._buffer))
                self._buffer = None

            self.stream.flush()
        except Exception:
            self._phase = WriterPhase.FAILED
            self.stream.close()
            raise

        self.header = header
        self._phase = WriterPhase.FINALIZED
        self.stream.close()

        logger.debug('finalized %r' % header)

        return header

    def close(self):
        if self._phase is WriterPhase.OPEN:
            self._phase = WriterPhase.FAILED
            self.stream.close()
            raise NotFinalized('the writer has been closed before finalize()')

        self.stream.close()


def save(sink, values, dtype, shape=None, order=Order.C):
    '''Write all the values as an array, returns the header written.'''
    with NpyWriter(sink, dtype, shape=shape, order=order) as writer:
        writer.extend(values)

    return writer.header


def to_bytes(values, dtype, shape=None, order=Order.C) -> bytes:
    buffer = io.BytesIO()
    save(buffer, values, dtype, shape=shape, order=order)
    return buffer.getvalue()
