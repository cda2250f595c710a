import io
import logging
from contextlib import contextmanager

from .exceptions import Truncated


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around bytes/path/file objects to
    uniform their properties: mainly we need to know if the underlying
    object can seek() and where we are, also when it can't.

    A path is opened (and closed) by the stream itself, file objects
    passed by the caller are left open.'''

    def __init__(self, obj, flags='rb', owned=False):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        self.flags = flags
        self.obj = obj
        self.owned = owned
        self.history = []

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, self.init_file)

        init_method()

        self._seekable = self._detect_seekable()
        self._position = self.obj.tell() if self._seekable else 0

    def __getattr__(self, name):
        return getattr(self.obj, name)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __repr__(self):
        return '<%s(%r, seekable=%s)>' % (self.__class__.__name__, self.obj, self._seekable)

    def init_str(self):
        '''We think this is a path'''
        logger.debug('opening path \'%s\' with flags \'%s\'' % (self.obj, self.flags))
        self.obj = open(self.obj, self.flags)
        self.owned = True

    init_PosixPath = init_str
    init_WindowsPath = init_str

    def init_bytes(self):
        '''We think these are raw bytes'''
        if 'r' not in self.flags:
            raise ValueError('a bytes object can only be read from')
        self.obj = io.BytesIO(self.obj)

    init_bytearray = init_bytes
    init_memoryview = init_bytes

    def init_file(self):
        '''Anything else must quack like a file object'''
        method = 'read' if 'r' in self.flags else 'write'
        if not hasattr(self.obj, method):
            raise TypeError('\'%s\' is not a path nor a file object' % self.obj.__class__.__name__)

    def _detect_seekable(self):
        try:
            return bool(self.obj.seekable())
        except (AttributeError, ValueError, OSError):
            return False

    @property
    def seekable(self):
        return self._seekable

    def tell(self):
        return self.obj.tell() if self._seekable else self._position

    def seek(self, offset):
        if not self._seekable:
            raise io.UnsupportedOperation('%r is not seekable' % self.obj)

        if not isinstance(offset, int):
            raise ValueError('\'%s\' is the wrong kind of offset to use' % offset.__class__.__name__)

        self.obj.seek(offset)

    def read(self, size):
        data = self.obj.read(size)
        self._position += len(data)
        return data

    def read_upto(self, size):
        '''Raw streams are allowed to return less data than requested
        so we loop until we have all of it or EOF.'''
        chunks = []
        missing = size
        while missing > 0:
            chunk = self.read(missing)
            if not chunk:
                break
            chunks.append(chunk)
            missing -= len(chunk)

        return b''.join(chunks)

    def read_exact(self, size):
        offset = self.tell()
        data = self.read_upto(size)
        if len(data) != size:
            raise Truncated(offset, size, len(data))

        return data

    def write(self, data):
        self.obj.write(data)
        self._position += len(data)

    def flush(self):
        flush = getattr(self.obj, 'flush', None)
        if flush is not None:
            flush()

    def close(self):
        if self.owned and not self.obj.closed:
            logger.debug('closing %r' % self.obj)
            self.obj.close()

    def save(self):
        self.history.append(self.obj.tell())

    def restore(self):
        old_seek = self.history.pop()
        self.obj.seek(old_seek)

    @contextmanager
    def saved(self):
        '''Restore the current position whatever happens in the block.'''
        self.save()
        try:
            yield self
        finally:
            self.restore()
