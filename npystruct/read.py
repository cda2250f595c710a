"""
Reading of NPY files.

The reader goes through the following phases

 1. HEADER_PENDING: nothing has been read yet
 2. READY: the header has been decoded, element type and shape are known
 3. STREAMING: data() has been called and elements are being produced
 4. DONE: all the elements have been produced
 5. FAILED: something went wrong while producing the elements

A seekable source can be streamed again from the start and supports random
access by index, a non-seekable one can be consumed only once and in order.
"""
import io
import logging

from .enum import ReaderPhase
from .exceptions import Truncated
from .header import decode_header
from .serialize import codec_for
from .streams import Stream


logger = logging.getLogger(__name__)

BUFFER_SIZE = 2 ** 18


class NpyFile(object):
    '''Reader of a single array.

    The source can be a path, a bytes object or a binary file object; in
    the last case it's up to the caller to close it.'''

    def __init__(self, source, into=None):
        self._phase = ReaderPhase.HEADER_PENDING
        self.stream = source if isinstance(source, Stream) else Stream(source)

        try:
            self.header = decode_header(self.stream)
            self.codec = codec_for(self.header.dtype, into=into)
        except Exception:
            self._phase = ReaderPhase.FAILED
            self.stream.close()
            raise

        self._data_offset = self.stream.tell()
        self._phase = ReaderPhase.READY

        logger.debug('ready to read %d elements of %r from %r' % (self.count, self.dtype, self.stream))

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __repr__(self):
        return '<%s(dtype=%r, shape=%r, order=%s)>' % (
            self.__class__.__name__, self.dtype, self.shape, self.order.name)

    def close(self):
        self.stream.close()

    @property
    def phase(self):
        return self._phase

    @property
    def dtype(self):
        return self.header.dtype

    @property
    def shape(self):
        return self.header.shape

    @property
    def order(self):
        return self.header.order

    @property
    def version(self):
        return self.header.version

    @property
    def count(self):
        return self.header.count

    def __len__(self):
        return self.count

    def __iter__(self):
        return self.data()

    def __getitem__(self, index):
        return self.read_at(index)

    def data(self):
        '''Lazy iterator over the elements, in the order they are stored.

        Once it raises it must not be resumed.'''
        if not self.stream.seekable and self._phase is not ReaderPhase.READY:
            raise io.UnsupportedOperation('a non seekable source can be iterated only once')

        self._phase = ReaderPhase.STREAMING

        return self._iter_elements()

    def _iter_elements(self):
        size = self.codec.size
        count = self.count

        if size == 0:
            for _ in range(count):
                yield self.codec.decode(b'', 0)
            self._phase = ReaderPhase.DONE
            return

        per_chunk = max(BUFFER_SIZE // size, 1)
        index = 0
        while index < count:
            offset = self._data_offset + index * size
            if self.stream.seekable:
                self.stream.seek(offset)

            wanted = min(per_chunk, count - index)
            chunk = self.stream.read_upto(wanted * size)
            available = len(chunk) // size

            try:
                values = self.codec.decode_many(chunk, available)
            except Exception:
                self._phase = ReaderPhase.FAILED
                raise

            yield from values
            index += available

            if available < wanted:
                self._phase = ReaderPhase.FAILED
                raise Truncated(self._data_offset + index * size, size, len(chunk) - available * size)

        self._phase = ReaderPhase.DONE

    def read_at(self, index):
        '''Random access to the element at the given flat index.'''
        if not self.stream.seekable:
            raise io.UnsupportedOperation('random access needs a seekable source')

        count = self.count
        if index < 0:
            index += count
        if not 0 <= index < count:
            raise IndexError(f'index {index} out of range for {count} elements')

        size = self.codec.size
        self.stream.seek(self._data_offset + index * size)

        return self.codec.decode(self.stream.read_exact(size), 0)

    def to_list(self):
        return list(self.data())


def load(source, into=None):
    '''Read all the elements of an array; use NpyFile to have its metadata too.'''
    with NpyFile(source, into=into) as npy:
        return npy.to_list()


def from_bytes(data, into=None):
    return load(bytes(data), into=into)
