import sys
from enum import Enum, auto


class Endianess(Enum):
    '''Byte order of a primitive leaf. The value is the marker used in type strings.'''
    LITTLE_ENDIAN  = '<'
    BIG_ENDIAN     = '>'
    NATIVE         = '='
    NOT_APPLICABLE = '|'

    @classmethod
    def native(cls):
        return cls.LITTLE_ENDIAN if sys.byteorder == 'little' else cls.BIG_ENDIAN

    def resolve(self):
        '''Replace NATIVE with the actual byte order of the host.'''
        return Endianess.native() if self is Endianess.NATIVE else self

    @property
    def struct_prefix(self):
        return '>' if self is Endianess.BIG_ENDIAN else '<'


class Kind(Enum):
    '''Kind letter of a primitive element type.'''
    BOOL      = 'b'
    INT       = 'i'
    UINT      = 'u'
    FLOAT     = 'f'
    COMPLEX   = 'c'
    BYTES     = 'S'
    UNICODE   = 'U'
    VOID      = 'V'
    DATETIME  = 'M'
    TIMEDELTA = 'm'


class Order(Enum):
    '''Storage order of the array payload.'''
    C       = auto()
    FORTRAN = auto()

    @property
    def is_fortran(self):
        return self is Order.FORTRAN


class ReaderPhase(Enum):
    HEADER_PENDING = auto()
    READY          = auto()
    STREAMING      = auto()
    DONE           = auto()
    FAILED         = auto()


class WriterPhase(Enum):
    OPEN      = auto()
    FINALIZED = auto()
    FAILED    = auto()
