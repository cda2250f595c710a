class NpyException(Exception):
    '''Base class to extend in order to throw exception in npystruct.

    It takes a message and optionally the chain of fields that caused
    the exception, outermost first.
    '''

    def __init__(self, message='', chain=None):
        self.message = message
        self.chain = chain if chain is not None else []
        super().__init__(message)

    def __str__(self):
        if not self.chain:
            return self.message

        return "%s (in field '%s')" % (self.message, '.'.join(str(_) for _ in self.chain))


class FormatError(NpyException):
    '''The byte stream doesn't look like a valid NPY file.'''
    pass


class BadMagic(FormatError):
    pass


class UnsupportedVersion(FormatError):
    pass


class BadHeader(FormatError):
    '''The header text is not a dictionary literal.'''
    pass


class MissingKey(FormatError):
    pass


class BadValue(FormatError):
    pass


class BadTypeString(FormatError):
    pass


class LayoutError(NpyException):
    '''Invalid descriptor construction.'''
    pass


class DecodeError(NpyException):
    pass


class Truncated(DecodeError):

    def __init__(self, offset, expected, available, chain=None):
        self.offset = offset
        self.expected = expected
        self.available = available
        super().__init__(
            'truncated data at offset %d: expected %d bytes, %d available' % (offset, expected, available),
            chain=chain,
        )


class TypeMismatch(DecodeError):
    pass


class EncodeError(NpyException):
    '''A value can't be represented with the requested element type.'''
    pass


class WriteError(NpyException):
    pass


class HeaderGrew(WriteError):
    pass


class NotFinalized(WriteError):
    pass


class WriteAfterFinalize(WriteError):
    pass


class ShapeMismatch(WriteError):
    pass


class ArchiveError(NpyException):
    pass


class NotFound(ArchiveError, KeyError):
    pass


class DuplicateName(ArchiveError):
    pass
