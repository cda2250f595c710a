"""
Textual representation of the element types as it appears in the 'descr'
key of the header.

A primitive is a type string like '<i4': the first char is the byte order,
then a kind letter and the width (number of bytes, or of characters for 'U');
datetimes carry their unit between brackets, like '<M8[ns]'.

A structured type is a list of (name, descr) or (name, descr, shape) tuples;
the fields follow one another, padding is represented by unnamed void
fields like ('', '|V4').
"""
import re

from .dtype import ElementType, Primitive, Field, Structured, shape_count
from .enum import Endianess, Kind
from .exceptions import BadTypeString, LayoutError


_TYPE_STRING = re.compile(r'^(?P<order>[<>=|])(?P<kind>[a-zA-Z])(?P<width>\d+)(?:\[(?P<unit>[^\]]+)\])?$')
_UNIT = re.compile(r'^\d*(Y|M|W|D|h|m|s|ms|us|ns|ps|fs|as)$')


def parse_type_string(text: str) -> Primitive:
    match = _TYPE_STRING.match(text)
    if not match:
        raise BadTypeString(f'malformed type string {text!r}')

    try:
        kind = Kind(match.group('kind'))
    except ValueError:
        raise BadTypeString(f'unknown kind {match.group("kind")!r} in type string {text!r}')

    unit = match.group('unit')
    if unit is not None and not _UNIT.match(unit):
        raise BadTypeString(f'unknown unit {unit!r} in type string {text!r}')

    try:
        return Primitive(
            kind,
            int(match.group('width')),
            endianess=Endianess(match.group('order')),
            unit=unit,
        )
    except LayoutError as e:
        raise BadTypeString(f'invalid type string {text!r}: {e.message}')


def _parse_shape(value, name):
    if isinstance(value, int) and not isinstance(value, bool):
        value = (value,)

    if not isinstance(value, tuple) or not all(isinstance(_, int) and not isinstance(_, bool) and _ >= 0 for _ in value):
        raise BadTypeString(f'invalid shape {value!r}', chain=[name])

    return value


def _parse_fields(items) -> Structured:
    fields = []
    offset = 0
    for item in items:
        if not isinstance(item, (tuple, list)) or len(item) not in (2, 3):
            raise BadTypeString(f'a structured field must be a (name, descr[, shape]) tuple, not {item!r}')

        name, value = item[0], item[1]
        if not isinstance(name, str):
            raise BadTypeString(f'field name must be a string, not {name!r}')

        try:
            dtype = from_descr(value)
        except BadTypeString as e:
            raise BadTypeString(e.message, chain=[name] + e.chain)

        shape = _parse_shape(item[2], name) if len(item) == 3 else ()

        if name == '':
            if not (isinstance(dtype, Primitive) and dtype.kind is Kind.VOID):
                raise BadTypeString(f'unnamed field with type {value!r} is not padding')
            offset += dtype.size * shape_count(shape)
            continue

        try:
            field = Field(name, offset, dtype, shape)
        except LayoutError as e:
            raise BadTypeString(e.message, chain=e.chain)

        fields.append(field)
        offset = field.end

    try:
        return Structured(fields, itemsize=offset)
    except LayoutError as e:
        raise BadTypeString(e.message, chain=e.chain)


def from_descr(value) -> ElementType:
    '''Rebuild an element type from the value of the 'descr' key.'''
    if isinstance(value, str):
        return parse_type_string(value)

    if isinstance(value, list):
        return _parse_fields(value)

    raise BadTypeString(f'descr must be a type string or a list of fields, not {value!r}')


def to_descr(dtype: ElementType):
    '''Inverse of from_descr(): returns a string or a list ready to be repr()-ed.'''
    if isinstance(dtype, Primitive):
        return dtype.type_string

    if not isinstance(dtype, Structured):
        raise TypeError(f'{dtype!r} is not an element type')

    result = []
    offset = 0
    for field in dtype.fields:
        if field.offset > offset:
            result.append(('', '|V%d' % (field.offset - offset)))

        entry = (field.name, to_descr(field.dtype))
        if field.shape:
            entry += (field.shape,)

        result.append(entry)
        offset = field.end

    if dtype.itemsize > offset:
        result.append(('', '|V%d' % (dtype.itemsize - offset)))

    return result
