#  -*- coding: utf-8 -*-
"""
dtokit: typed, validated data transfer objects.

A DTO class declares named properties with union types. Property metadata is
derived once per class, then used to make instances from loosely typed
mappings, enforcing required properties, nullability, defaults, nested object
and collection casting, immutability and partial construction.

Modules
-------
flags
    Behaviour flags of construction and access
errors
    Failure kinds raised by dtokit
property_type
    Per-property validation, coercion and default policy
casts
    Converters between raw data and rich property types
class_data
    Property declarations (TypedProperty) and the class data derived from them
factory
    Metadata cache and construction algorithm
dto
    DataTransferObject, the instance surface
display
    Rich terminal display of DTOs

Examples
--------
>>> from dtokit import DataTransferObject, TypedProperty, Flags
>>>
>>> class UserData(DataTransferObject):
...     first_name = TypedProperty('string')
...     last_name = TypedProperty('null|string', default=None)
...     parent = TypedProperty('null|UserData', default=None)
...     children = TypedProperty('UserData[]', default=[])
>>>
>>> user = UserData.make({'first_name': 'Ada', 'children': [{'first_name': 'Byron'}]})
>>> user.children[0].first_name
'Byron'
>>> user.to_array()['children'][0]['last_name'] is None
True
"""


from .flags import *
from .errors import (DataTransferObjectError,
                     DataTransferObjectTypeError,
                     ImmutableError,
                     InvalidTypeError,
                     UnknownPropertiesError,
                     UndefinedPropertiesError,
                     UnexpectedlyDefinedPropertiesError,
                     SerializationUnsupportedError,
                     PropertyTypeCheck)
from .type_error_data import TypeErrorData
from .property_type import PropertyType
from .casts import (PropertyCast,
                    DataTransferObjectPropertyCast,
                    NDArrayPropertyCast,
                    TimestampPropertyCast,
                    NamespacePropertyCast)
from .class_data import TypedProperty, ClassData, ClassDataProvider, get_full_qualified_name
from .factory import Factory, DTOMetadata
from .dto import DataTransferObject, IsDefinedReference, PropertyReference
from .display import Displayable, DisplaySettings


__all__ = [
    "Flags",
    "DataTransferObjectError",
    "DataTransferObjectTypeError",
    "ImmutableError",
    "InvalidTypeError",
    "UnknownPropertiesError",
    "UndefinedPropertiesError",
    "UnexpectedlyDefinedPropertiesError",
    "SerializationUnsupportedError",
    "PropertyTypeCheck",
    "TypeErrorData",
    "PropertyType",
    "PropertyCast",
    "DataTransferObjectPropertyCast",
    "NDArrayPropertyCast",
    "TimestampPropertyCast",
    "NamespacePropertyCast",
    "TypedProperty",
    "ClassData",
    "ClassDataProvider",
    "get_full_qualified_name",
    "Factory",
    "DTOMetadata",
    "DataTransferObject",
    "PropertyReference",
    "IsDefinedReference",
    "Displayable",
    "DisplaySettings",
]


try:
    # this will run if dtokit is installed
    from importlib.metadata import metadata, PackageNotFoundError

    meta = metadata('dtokit')

    __author__ = meta.get('Author-email')
    __license__ = meta.get('License-Expression') or meta.get('License')
    __version__ = meta['Version']

except PackageNotFoundError:
    # this will run during development
    import toml
    from pathlib import Path

    pyproject_filepath = Path(__file__).parent.parent / "pyproject.toml"

    with pyproject_filepath.open() as file:
        pyproject = toml.load(file)

    __version__ = pyproject["project"]["version"]
    __author__ = pyproject["project"]["authors"][0]["name"]
    __license__ = pyproject["project"]["license"]
