"""
# NPZ archives

An archive is a plain zip file where each member is an NPY file named
after the array it contains plus the '.npy' suffix; there is no other
metadata than the list of members.

Members are written one at a time, in sequence: a zip member can't be
seeked while writing so the arrays are buffered by the writer until they
are finalized. Reading is random access by name.
"""
import logging
import zipfile

from .enum import Order
from .exceptions import DuplicateName, NotFound
from .header import decode_header
from .read import NpyFile
from .streams import Stream
from .write import NpyWriter, prepare


logger = logging.getLogger(__name__)

SUFFIX = '.npy'


def member_name(name):
    return name if name.endswith(SUFFIX) else name + SUFFIX


def array_name(member):
    return member[:-len(SUFFIX)] if member.endswith(SUFFIX) else member


class NpzEntry(object):
    '''Name and metadata of one array of the archive.'''

    def __init__(self, name, header):
        self.name = name
        self.header = header

    def __repr__(self):
        return '<%s(%r, %r)>' % (self.__class__.__name__, self.name, self.header)


class NpzArchive(object):
    '''Read access to an archive; the source is a path or a seekable binary file object.'''

    def __init__(self, source):
        self.zip = zipfile.ZipFile(source, 'r')

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __contains__(self, name):
        return member_name(name) in self.zip.namelist()

    def __iter__(self):
        return iter(self.array_names())

    def __getitem__(self, name):
        return self.by_name(name)

    def close(self):
        self.zip.close()

    def list_members(self):
        '''Names of the members as they are in the archive'''
        return self.zip.namelist()

    def array_names(self):
        return [array_name(_) for _ in self.zip.namelist()]

    def by_name(self, name, into=None) -> NpyFile:
        '''Open the array with the given name, with or without suffix.'''
        member = member_name(name)
        try:
            info = self.zip.getinfo(member)
        except KeyError:
            raise NotFound(f'no array named {name!r} in the archive')

        logger.debug('opening member \'%s\'' % member)

        return NpyFile(Stream(self.zip.open(info), owned=True), into=into)

    def entries(self):
        '''Iterate over the arrays in the order they are stored, reading only their headers.'''
        for member in self.zip.namelist():
            with self.zip.open(member) as fp:
                yield NpzEntry(array_name(member), decode_header(Stream(fp)))


class NpzWriter(object):
    '''Write access to an archive: arrays are appended one at a time.'''

    def __init__(self, sink, compress=False):
        self.compression = zipfile.ZIP_DEFLATED if compress else zipfile.ZIP_STORED
        self.zip = zipfile.ZipFile(sink, 'w', compression=self.compression, allowZip64=True)
        self._names = set()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        self.zip.close()

    def array(self, name, dtype, shape=None, order=Order.C) -> NpyWriter:
        '''Begin a new member: the writer must be finalized (or used as
        context manager) before beginning the next one.'''
        member = member_name(name)
        if member in self._names:
            raise DuplicateName(f'an array named {name!r} is already in the archive')

        # nothing reaches the archive for an invalid request
        prepare(dtype, shape=shape, order=order)

        logger.debug('beginning member \'%s\'' % member)

        fp = self.zip.open(member, 'w', force_zip64=True)
        self._names.add(member)

        try:
            writer = NpyWriter(Stream(fp, flags='wb', owned=True), dtype, shape=shape, order=order)
        except Exception:
            fp.close()
            raise

        return writer

    def write(self, name, values, dtype, shape=None, order=Order.C):
        with self.array(name, dtype, shape=shape, order=order) as writer:
            writer.extend(values)

        return writer.header

