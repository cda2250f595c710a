"""
Core module for the mapping of python classes onto structured elements
"""
import logging
from typing import Any, Dict, List, Tuple

from .meta import MetaRecord


logger = logging.getLogger(__name__)


class Record(metaclass=MetaRecord):
    """
    Base class of the records: subclass it declaring the fields, in the
    same order they have in the element.

        class Point(Record):
            x = fields.Float32()
            y = fields.Float32()

    The class obtains a structured element type (Point.dtype) laid out
    exactly as Structured.packed() would do with the same fields, and the
    codec to read and write its instances.

    An inner class named Meta can indicate the itemsize (to have trailing
    padding) and the endianess to use for all the fields.
    """

    def __init__(self, *args, **kwargs):
        names = self.get_ordered_fields_name()
        if len(args) > len(names):
            raise TypeError(f'{self.__class__.__name__} takes at most {len(names)} positional arguments')

        for name, value in zip(names, args):
            setattr(self, name, value)

        for name, value in kwargs.items():
            if name not in names:
                raise TypeError(f'{self.__class__.__name__} has no field named {name!r}')
            if names.index(name) < len(args):
                raise TypeError(f'multiple values for field {name!r}')
            setattr(self, name, value)

    @classmethod
    def _from_values(cls, values):
        '''Build an instance from the values of the fields in order, used by the codec.'''
        instance = cls.__new__(cls)
        instance.__dict__.update(zip(cls._meta.fields, values))
        return instance

    @classmethod
    def get_ordered_fields_name(cls) -> List[str]:
        return cls._meta.fields

    def get_fields(self) -> List[Tuple[str, Any]]:
        '''It returns a list of couples (name, value) for each field.'''
        return [(_, getattr(self, _)) for _ in self.get_ordered_fields_name()]

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.get_fields())

    @property
    def layout(self) -> Dict[str, Tuple[int, int]]:
        result = {}
        for field in self._meta.dtype.fields:
            result[field.name] = (field.offset, field.size)

        return result

    def pack(self) -> bytes:
        '''Encode this record as the bytes of one element.'''
        return self._meta.codec.pack(self)

    @classmethod
    def unpack(cls, raw):
        '''Decode one element from the start of raw.'''
        return cls._meta.codec.unpack(raw)

    def __eq__(self, other):
        return type(self) is type(other) and self.get_fields() == other.get_fields()

    __hash__ = None

    def __repr__(self):
        msg = []
        for field_name, value in self.get_fields():
            msg.append('%s=%s' % (field_name, repr(value)))
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(msg))

    def __str__(self):
        msg = ''
        for field_name, value in self.get_fields():
            msg += '%s: %s\n' % (field_name, repr(value))
        return msg
