#  -*- coding: utf-8 -*-
"""
Data transfer objects.

A DTO class declares typed properties and is only ever instantiated through
its factory, which guarantees that every instance holds valid values::

    class UserData(DataTransferObject):
        id = TypedProperty('string')
        first_name = TypedProperty('string')
        last_name = TypedProperty('null|string', default=None)
        parent = TypedProperty('null|UserData', default=None)
        children = TypedProperty('UserData[]', default=[])

    user = UserData.make({'id': '1', 'first_name': 'Ada'})
    user.last_name                  # None
    user.to_array()                 # plain nested data
    user.remake({'first_name': 'Grace'})

Instances are immutable unless made with ``Flags.MUTABLE``.
"""

from __future__ import annotations

import copy

import numpy

from collections.abc import Mapping

from dtokit.class_data import DataTransferObjectMetatype, get_full_qualified_name, is_dto
from dtokit.errors import (ImmutableError,
                           UndefinedPropertiesError,
                           UnexpectedlyDefinedPropertiesError,
                           UnknownPropertiesError)
from dtokit.factory import Factory
from dtokit.flags import Flags
from dtokit.property_type import PropertyType, is_scalar, is_sequential

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Iterable, Self


def _as_names(names: str | Iterable[str]) -> list[str]:
    if isinstance(names, str):
        return [names]

    return list(names)


def _values_equal(a: Any, b: Any) -> bool:
    if isinstance(a, numpy.ndarray) or isinstance(b, numpy.ndarray):
        return numpy.array_equal(a, b)

    # containers are walked so that arrays are never compared by list.__eq__
    if is_sequential(a) and is_sequential(b):
        return len(a) == len(b) and all(_values_equal(x, y) for x, y in zip(a, b))

    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(_values_equal(a[key], b[key]) for key in a)

    return bool(numpy.all(a == b))


class PropertyReference:
    """
    Property names of a DTO class as attributes.

    Reading an attribute returns its name, so references survive refactoring
    where string literals would not::

        UserData.ref().first_name   # 'first_name'
        UserData.ref().blim         # UnknownPropertiesError

    Parameters
    ----------
    class_name : str
        Fully qualified name of the DTO class.
    property_names : iterable of str
        Declared property names.
    """

    __slots__ = ('_class_name', '_property_names')

    def __init__(self, class_name: str, property_names: Iterable[str]) -> None:
        object.__setattr__(self, '_class_name', class_name)
        object.__setattr__(self, '_property_names', frozenset(property_names))

    def __getattr__(self, name: str) -> str:
        # dunder lookups (copy, pickle) must fail the usual way
        if name.startswith('__'):
            raise AttributeError(name)

        if name not in self._property_names:
            raise UnknownPropertiesError(self._class_name, [name])

        return name

    def __setattr__(self, key: str, value: Any) -> None:
        raise AttributeError('Property references are read only')

    def __dir__(self) -> list[str]:
        return sorted(self._property_names)


class IsDefinedReference:
    """
    Definedness of the properties of a DTO instance as attributes.

    ::

        user.ref_is_defined().last_name    # user.is_defined('last_name')
    """

    __slots__ = ('_dto',)

    def __init__(self, dto: DataTransferObject) -> None:
        object.__setattr__(self, '_dto', dto)

    def __getattr__(self, name: str) -> bool:
        if name.startswith('__'):
            raise AttributeError(name)

        return self._dto.is_defined(name)

    def __setattr__(self, key: str, value: Any) -> None:
        raise AttributeError('Definedness references are read only')

    def __dir__(self) -> list[str]:
        return sorted(self._dto.property_types)


class DataTransferObject(metaclass=DataTransferObjectMetatype):
    """
    Base class of typed, validated data objects.

    Subclasses declare their properties with ``TypedProperty`` and may set
    ``__base_flags__`` to flags merged into every ``make`` call.

    Construction
    ------------
    DataTransferObject.make(data, flags)
        The only supported way to create an instance. The constructor is
        internal to the factory.

    Equality
    --------
    ``a == b`` holds for objects of the same type with equal defined
    properties. Arrays are compared element-wise.

    See Also
    --------
    Factory.make : The construction algorithm.
    """

    # ========== ========== ========== ========== ========== class attributes
    __base_flags__: Flags = Flags.NONE

    _factory: Factory | None = None

    # ========== ========== ========== ========== ========== special methods
    def __init__(self,
                 property_types: dict[str, PropertyType],
                 properties: dict[str, Any],
                 unknown_properties: dict[str, Any],
                 flags: Flags) -> None:

        self._property_types: dict[str, PropertyType] = property_types
        self._properties: dict[str, Any] = properties
        self._unknown_properties: dict[str, Any] = unknown_properties
        self._flags: Flags = Flags(flags)

    def __eq__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return False

        if self._properties.keys() != other._properties.keys():
            return False

        for name, value in self._properties.items():
            if not _values_equal(value, other._properties[name]):
                return False

        return True

    def __repr__(self) -> str:
        properties = ', '.join(f'{name}={value!r}' for name, value in self._properties.items())
        return f'{type(self).__name__}({properties})'

    def __copy__(self) -> Self:
        return type(self)(self._property_types, {**self._properties}, {**self._unknown_properties}, self._flags)

    def __deepcopy__(self, memo: dict) -> Self:
        # property types are shared, never copied
        return type(self)(self._property_types,
                          copy.deepcopy(self._properties, memo),
                          copy.deepcopy(self._unknown_properties, memo),
                          self._flags)

    # ========== ========== ========== ========== ========== private methods
    @classmethod
    def _class_name(cls) -> str:
        return get_full_qualified_name(cls)

    def _assert_known_property_names(self, names: Iterable[str]) -> None:
        unknown = [name for name in names if name not in self._property_types]

        if unknown:
            raise UnknownPropertiesError(self._class_name(), unknown)

    def _to_data(self, with_defaults: bool) -> dict[str, Any]:

        if with_defaults:
            properties = self.get_properties_with_defaults()
            flags = self._flags | Flags.WITH_DEFAULTS
        else:
            properties = self._properties
            flags = self._flags

        return {
            name: self._property_types[name].process_value_to_data(value, flags)
            for name, value in properties.items()
        }

    # ========== ========== ========== ========== ========== public methods
    @classmethod
    def make(cls, data: Mapping[str, Any] | None = None, flags: Flags = Flags.NONE) -> Self:
        """
        Make a valid instance from raw data.

        Parameters
        ----------
        data : mapping, optional
            Raw property values by name. Nested DTOs may be given as
            mappings, lists of nested DTOs as lists of mappings.
        flags : Flags
            Construction flags, merged with the class base flags.

        Returns
        -------
        DataTransferObject

        Raises
        ------
        UnknownPropertiesError, InvalidTypeError, UndefinedPropertiesError
            See ``Factory.make``.
        """
        return cls.get_factory().make(cls, data, flags)

    @classmethod
    def get_factory(cls) -> Factory:
        """Return the factory of the class, falling back to the shared default factory."""
        if cls._factory is not None:
            return cls._factory

        if DataTransferObject._factory is None:
            DataTransferObject._factory = Factory.make_default_factory()

        return DataTransferObject._factory

    @classmethod
    def set_factory(cls, factory: Factory | None) -> None:
        """
        Replace the factory used by this class and its subclasses.

        Passing None on a subclass falls back to the shared factory. Passing
        None on ``DataTransferObject`` discards the shared factory, and with
        it every cached metadata, so that a fresh default factory is created
        on next use.
        """
        cls._factory = factory

    @classmethod
    def ref(cls) -> PropertyReference:
        """Return a reference to the property names of the class."""
        metadata = cls.get_factory().get_class_metadata(cls)
        return PropertyReference(metadata.class_name, metadata.property_names)

    def ref_is_defined(self) -> IsDefinedReference:
        """Return a reference answering ``is_defined`` for each property name."""
        return IsDefinedReference(self)

    def get(self, name: str) -> Any:
        """
        Return the value of a property.

        Under ``WITH_DEFAULTS`` an undefined property falls back to its
        computed default, if it has one.

        Raises
        ------
        UnknownPropertiesError
            If the class has no such property.
        UndefinedPropertiesError
            If the property has no value.
        """
        property_type = self._property_types.get(name)

        if property_type is None:
            raise UnknownPropertiesError(self._class_name(), [name])

        if name in self._properties:
            return self._properties[name]

        if Flags.WITH_DEFAULTS in self._flags:
            default = property_type.map_processed_default(self._flags)

            if name in default:
                return default[name]

        raise UndefinedPropertiesError(self._class_name(), [name])

    def set(self, name: str, value: Any) -> None:
        """
        Cast, validate and store the value of a property.

        Raises
        ------
        ImmutableError
            If the instance was not made ``MUTABLE``.
        UnknownPropertiesError
            If the class has no such property.
        InvalidTypeError
            If the value is not valid for the property.
        """
        if Flags.MUTABLE not in self._flags:
            raise ImmutableError(self._class_name(), name)

        property_type = self._property_types.get(name)

        if property_type is None:
            raise UnknownPropertiesError(self._class_name(), [name])

        self._properties[name] = property_type.cast_value_to_type(value, self._flags)

    def is_defined(self, name: str) -> bool:
        """
        Return True if the property was assigned a value, None included.

        Dotted paths are followed into nested DTOs, mappings, lists (by index)
        and plain objects, eg ``'parent.children.0.first_name'``. A path
        through anything else, or through a missing entry, is not defined.

        Raises
        ------
        UnknownPropertiesError
            If a DTO along the path has no such property. The error names the
            path up to that property.
        """
        if name in self._properties:
            return True

        current: Any = self
        path: list[str] = []

        for section in name.split('.'):

            path.append(section)

            if is_dto(current):
                if section not in current._property_types:
                    raise UnknownPropertiesError(self._class_name(), ['.'.join(path)])

                if section not in current._properties:
                    return False

                current = current._properties[section]

            elif isinstance(current, Mapping):
                if section not in current:
                    return False

                current = current[section]

            elif is_sequential(current):
                if not section.isdigit() or int(section) >= len(current):
                    return False

                current = current[int(section)]

            elif is_scalar(current) or not hasattr(current, section):
                return False

            else:
                current = getattr(current, section)

        return True

    def is_undefined(self, name: str) -> bool:
        return not self.is_defined(name)

    def is_mutable(self) -> bool:
        return Flags.MUTABLE in self._flags

    def get_defined_properties(self) -> dict[str, Any]:
        return {**self._properties}

    def get_properties_with_defaults(self) -> dict[str, Any]:
        """Return the defined properties, plus the defaults of undefined ones."""
        properties: dict[str, Any] = {}

        for name, property_type in self._property_types.items():
            if name in self._properties:
                properties[name] = self._properties[name]
            else:
                properties.update(property_type.map_processed_default(self._flags))

        return properties

    def get_defined_property_names(self) -> list[str]:
        return list(self._properties)

    def get_undefined_property_names(self) -> list[str]:
        return [name for name in self._property_types if name not in self._properties]

    def get_unknown_properties(self) -> dict[str, Any]:
        """Return the unknown input kept under ``TRACK_UNKNOWN_PROPERTIES``."""
        return {**self._unknown_properties}

    def get_unknown_property_names(self) -> list[str]:
        return list(self._unknown_properties)

    def assert_defined(self, names: str | Iterable[str]) -> None:
        """
        Raise if any of the named properties is undefined.

        Raises
        ------
        UnknownPropertiesError
            If any name is not a declared property.
        UndefinedPropertiesError
            Naming every undefined property.
        """
        names = _as_names(names)
        self._assert_known_property_names(names)

        undefined = [name for name in names if self.is_undefined(name)]

        if undefined:
            raise UndefinedPropertiesError(self._class_name(), undefined)

    def assert_undefined(self, names: str | Iterable[str]) -> None:
        """
        Raise if any of the named properties is defined.

        Raises
        ------
        UnknownPropertiesError
            If any name is not a declared property.
        UnexpectedlyDefinedPropertiesError
            Naming every defined property.
        """
        names = _as_names(names)
        self._assert_known_property_names(names)

        defined = [name for name in names if self.is_defined(name)]

        if defined:
            raise UnexpectedlyDefinedPropertiesError(self._class_name(), defined)

    def to_array(self) -> dict[str, Any]:
        """
        Return the defined properties as plain nested data.

        Raises
        ------
        SerializationUnsupportedError
            If a value has no cast back to data and no native data form.
        """
        return self._to_data(with_defaults=False)

    def to_array_with_defaults(self) -> dict[str, Any]:
        """Same as ``to_array``, with the defaults of undefined properties included."""
        return self._to_data(with_defaults=True)

    def remake(self, override: Mapping[str, Any] | None = None, flags: Flags | None = None) -> Self:
        """
        Make a new instance from the defined properties and ``override``.

        Parameters
        ----------
        override : mapping, optional
            Values replacing the current ones.
        flags : Flags, optional
            Flags of the new instance. The current flags are reused if None.
        """
        data = {**self._properties, **(override or {})}

        return type(self).make(data, self._flags if flags is None else flags)

    def remake_only(self,
                    names: Iterable[str],
                    override: Mapping[str, Any] | None = None,
                    flags: Flags | None = None) -> Self:
        """
        Make a new instance from some of the defined properties.

        Raises
        ------
        UnknownPropertiesError
            If any name is not a declared property.
        """
        names = _as_names(names)
        self._assert_known_property_names(names)

        data = {name: value for name, value in self._properties.items() if name in names}
        data.update(override or {})

        return type(self).make(data, self._flags if flags is None else flags)

    def remake_except(self,
                      names: Iterable[str],
                      override: Mapping[str, Any] | None = None,
                      flags: Flags | None = None) -> Self:
        """
        Make a new instance from the defined properties but some.

        Raises
        ------
        UnknownPropertiesError
            If any name is not a declared property.
        """
        names = _as_names(names)
        self._assert_known_property_names(names)

        data = {name: value for name, value in self._properties.items() if name not in names}
        data.update(override or {})

        return type(self).make(data, self._flags if flags is None else flags)

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def flags(self) -> Flags:
        return self._flags

    @property
    def property_types(self) -> dict[str, PropertyType]:
        return self._property_types
