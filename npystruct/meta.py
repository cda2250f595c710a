import copy
import logging

from .dtype import Field, Structured
from .exceptions import LayoutError
from .serialize import record_codec


class FieldDescriptor(object):
    """Wrapper around field access of a Record related class."""

    def __init__(self, field_instance: "FieldBase", field_name: str):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")
        self.field = field_instance
        self.field.name = field_name

    def __get__(self, instance, type=None):
        # from the class we want the declaration itself
        if instance is None:
            return self.field

        data = instance.__dict__

        if self.field.name not in data:
            self.logger.debug("default value for field named '%s'", self.field.name)
            data[self.field.name] = self.field.value_from_default()

        return data[self.field.name]

    def __set__(self, instance, value):
        instance.__dict__[self.field.name] = value


class FieldBase(object):

    def contribute_to_record(self, cls, name):
        if not getattr(cls, name, None):
            setattr(cls, name, FieldDescriptor(self, name))
        else:
            raise AttributeError(f'field {name} is already present in class {cls.__name__}')

    def create(self):
        return copy.deepcopy(self)


class Meta(object):
    """Class containing metadata about the record: the declared fields in
    order and what is derived from them."""

    def __init__(self, options=None):
        self.fields = []
        self.declarations = {}
        self.nested = {}
        self.itemsize = getattr(options, 'itemsize', None)
        self.endianess = getattr(options, 'endianess', None)
        self.dtype = None
        self.codec = None

    def add_field(self, name, declaration):
        self.fields.append(name)
        self.declarations[name] = declaration
        record = getattr(declaration, 'record', None)
        if record is not None:
            self.nested[name] = record

    def build(self, cls):
        '''Derive the structured type and the codec from the declarations.'''
        specs = []
        for name in self.fields:
            declaration = self.declarations[name]
            try:
                dtype = declaration.resolve(self.endianess)
            except LayoutError as e:
                raise LayoutError(f'{cls.__name__}: {e.message}', chain=[name] + e.chain)
            specs.append((name, dtype, declaration.shape))

        if all(self.declarations[_].offset is None for _ in self.fields):
            self.dtype = Structured.packed(specs, itemsize=self.itemsize)
        else:
            fields = []
            end = 0
            for (name, dtype, shape) in specs:
                offset = self.declarations[name].offset
                field = Field(name, end if offset is None else offset, dtype, shape)
                fields.append(field)
                end = field.end
            self.dtype = Structured(fields, itemsize=self.itemsize)

        self.codec = record_codec(self.dtype, cls)


class MetaRecord(type):
    logger = logging.getLogger(__name__)

    def __new__(cls, names, bases, attrs):
        '''All of this is a big hack, maybe too inspired by how Django does a similar thing!'''
        module = attrs.pop('__module__')
        classcell = attrs.pop('__classcell__', None)
        options = attrs.pop('Meta', None)

        new_attrs = {
            '__module__': module,
        }
        if classcell is not None:
            new_attrs['__classcell__'] = classcell
        new_cls = super(MetaRecord, cls).__new__(cls, names, bases, new_attrs)

        new_cls._meta = Meta(options)

        # handle inheritance
        parents = [_ for _ in bases if isinstance(_, MetaRecord)]
        for parent in parents:
            for obj_name in parent._meta.fields:
                obj = parent._meta.declarations[obj_name].create()
                setattr(new_cls, obj_name, FieldDescriptor(obj, obj_name))
                new_cls._meta.add_field(obj_name, obj)

        for obj_name, obj in attrs.items():
            new_cls.add_to_class(obj_name, obj)

        new_cls._meta.build(new_cls)
        cls.logger.debug('record %s mapped to %r' % (new_cls.__name__, new_cls._meta.dtype))

        return new_cls

    def add_to_class(cls, name, value):
        if hasattr(value, 'contribute_to_record'):
            cls.logger.debug('contribute_to_record() found for field \'%s\'' % name)
            value.contribute_to_record(cls, name)
            cls._meta.add_field(name, value)
        else:
            setattr(cls, name, value)

    @property
    def dtype(cls):
        return cls._meta.dtype
