#  -*- coding: utf-8 -*-
"""
Per-property type metadata: validation, coercion and default policy.

A ``PropertyType`` is built once per declared property of a DTO class and
shared by every instance of that class. It never changes after construction.
"""

from __future__ import annotations

import copy
import re

import numpy

from types import MappingProxyType

from dtokit.class_data import is_dto, resolve_type
from dtokit.errors import (InvalidTypeError,
                           PropertyTypeCheck,
                           SerializationUnsupportedError,
                           UndefinedPropertiesError,
                           UnknownPropertiesError)
from dtokit.flags import Flags
from dtokit.type_error_data import TypeErrorData

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Callable, Mapping, TYPE_CHECKING

if TYPE_CHECKING:
    from dtokit.casts import PropertyCast


TYPE_ALIASES: dict[str, str] = {
    'integer': 'int',
    'boolean': 'bool',
    'double': 'float',
}

SCALARS = (bool, int, float, str)

_PRIMITIVE_CHECKS: dict[str, Callable[[Any], bool]] = {
    'string': lambda value: isinstance(value, str),
    'int': lambda value: isinstance(value, int) and not isinstance(value, bool),
    'bool': lambda value: isinstance(value, bool),
    'float': lambda value: isinstance(value, float),
    'array': lambda value: isinstance(value, (list, tuple, dict)),
    'null': lambda value: value is None,
    'mixed': lambda value: value is not None,
}

_INTEGER_STRING = re.compile(r'[+-]?\d+')

_NESTED_ERRORS = (InvalidTypeError, UnknownPropertiesError, UndefinedPropertiesError)


def is_sequential(value: Any) -> bool:
    """Return True for list-like collections (never for mappings)."""
    return isinstance(value, (list, tuple))


def is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, SCALARS)


class PropertyType:
    """
    Immutable type descriptor of a single DTO property.

    Parameters
    ----------
    name : str
        Property name.
    types : list of str
        Simple type tokens, eg ``['null', 'string']``.
    array_types : list of str
        Element type tokens of accepted sequential collections, without the
        ``[]`` suffix.
    type_casts : dict[str, PropertyCast]
        Casts for simple types, in resolution order.
    array_type_casts : dict[str, PropertyCast]
        Casts for array element types, in resolution order.
    is_nullable, is_bool, is_array, is_string, is_int : bool
        Flags derived from the declared tokens.
    has_default : bool
        Whether a default was declared.
    default : object
        The declared default (ignored if ``has_default`` is False).
    class_name : str
        Fully qualified name of the owning class, used in errors.

    Notes
    -----
    Any attempt to set an attribute after construction raises
    ``AttributeError``.
    """

    # ========== ========== ========== ========== ========== class attributes
    __slots__ = ('name', 'types', 'array_types', 'type_casts', 'array_type_casts',
                 'is_nullable', 'is_bool', 'is_array', 'is_string', 'is_int',
                 'has_default', 'default', 'class_name', '_classes')

    # ========== ========== ========== ========== ========== special methods
    def __init__(self,
                 name: str,
                 types: list[str],
                 array_types: list[str],
                 type_casts: dict[str, PropertyCast],
                 array_type_casts: dict[str, PropertyCast],
                 is_nullable: bool,
                 is_bool: bool,
                 is_array: bool,
                 is_string: bool,
                 is_int: bool,
                 has_default: bool,
                 default: Any,
                 class_name: str = '') -> None:

        init = super().__setattr__

        init('name', name)
        init('types', tuple(types))
        init('array_types', tuple(array_types))
        init('type_casts', MappingProxyType(dict(type_casts)))
        init('array_type_casts', MappingProxyType(dict(array_type_casts)))
        init('is_nullable', is_nullable)
        init('is_bool', is_bool)
        init('is_array', is_array)
        init('is_string', is_string)
        init('is_int', is_int)
        init('has_default', has_default)
        init('default', default if has_default else None)
        init('class_name', class_name)

        classes = {}
        for token in (*self.types, *self.array_types):
            if self._normalize(token) not in _PRIMITIVE_CHECKS:
                classes[token] = resolve_type(token)

        init('_classes', MappingProxyType(classes))

    def __setattr__(self, key: str, value: Any) -> None:
        raise AttributeError(f"PropertyType '{self.name}' is immutable")

    def __delattr__(self, key: str) -> None:
        raise AttributeError(f"PropertyType '{self.name}' is immutable")

    def __repr__(self) -> str:
        return f'PropertyType({self.name!r}, {self.type_string!r})'

    # shared by reference, never copied
    def __copy__(self) -> PropertyType:
        return self

    def __deepcopy__(self, memo: dict) -> PropertyType:
        return self

    # ========== ========== ========== ========== ========== private methods
    @staticmethod
    def _normalize(token: str) -> str:
        return TYPE_ALIASES.get(token, token)

    def _is_nullable(self, flags: Flags) -> bool:
        if Flags.NOT_NULLABLE in flags:
            return False

        return self.is_nullable or Flags.NULLABLE in flags

    def _value_matches_type(self, value: Any, type_: str) -> bool:

        check = _PRIMITIVE_CHECKS.get(self._normalize(type_))

        if check is not None:
            return check(value)

        cls = self._classes.get(type_) or resolve_type(type_)

        return cls is not None and isinstance(value, cls)

    def _is_collection_of_structures(self, value: Any) -> bool:
        return is_sequential(value) and len(value) > 0 and not is_scalar(value[0])

    @staticmethod
    def _claiming_cast(casts: Mapping[str, PropertyCast], value: Any) -> tuple[str | None, PropertyCast | None]:
        for type_, cast in casts.items():
            if cast.should_cast_value(value):
                return type_, cast

        return None, None

    def _cast_single_value(self, value: Any, flags: Flags) -> Any:

        type_, cast = self._claiming_cast(self.type_casts, value)

        if cast is not None:
            return cast.cast_to_type(self.name, value, type_, flags)

        # numeric strings can be safely cast to int
        if self.is_int and not self.is_string and isinstance(value, str) and _INTEGER_STRING.fullmatch(value):
            return int(value)

        return value

    def _cast_items_to_type(self, type_: str, cast: PropertyCast, value: list | tuple, flags: Flags) -> list:

        items = []
        error_data = TypeErrorData(self.class_name)

        # every item is cast, failures are re-tagged with their index
        # eg children.0.first_name
        for index, item in enumerate(value):
            try:
                items.append(cast.cast_to_type(self.name, item, type_, flags))
            except _NESTED_ERRORS as error:
                error_data.map_error(error, str(index))

        error_data.raise_errors()

        return items

    def _item_to_data(self, item: Any, flags: Flags) -> Any:

        for cast in self.array_type_casts.values():
            if cast.should_map_to_data(item):
                return self._to_native(cast.to_data(self.name, item, flags), flags)

        return self._to_native(item, flags)

    def _to_native(self, value: Any, flags: Flags) -> Any:

        if is_scalar(value):
            return value

        if is_sequential(value):
            return [self._to_native(item, flags) for item in value]

        if isinstance(value, dict):
            return {key: self._to_native(item, flags) for key, item in value.items()}

        if is_dto(value):
            return value.to_array_with_defaults() if Flags.WITH_DEFAULTS in flags else value.to_array()

        if isinstance(value, numpy.generic):
            return value.item()

        raise SerializationUnsupportedError(self.class_name, self.name, value)

    # ========== ========== ========== ========== ========== public methods
    def is_valid_value(self, value: Any, flags: Flags = Flags.NONE) -> bool:
        """
        Return True if ``value`` is acceptable for this property.

        ``NULLABLE`` and ``NOT_NULLABLE`` in ``flags`` override the declared
        nullability for this call only.
        """
        flags = Flags(flags)

        if value is None:
            return self._is_nullable(flags)

        for type_ in self.types:
            if self._value_matches_type(value, type_):
                return True

        # If single types didn't match and the value isn't a list there is
        # nothing left to check
        if not is_sequential(value):
            return False

        for type_ in self.array_types:
            if all(self._value_matches_type(item, type_) for item in value):
                return True

        return False

    def check_value(self, value: Any, flags: Flags = Flags.NONE) -> PropertyTypeCheck:
        return PropertyTypeCheck(self.name, self.all_types, value, self.is_valid_value(value, flags))

    def cast_value_to_type(self, value: Any, flags: Flags = Flags.NONE) -> Any:
        """
        Cast a raw value with the property's casts, then validate it.

        Lists whose first item is a structure are cast item by item with the
        first array cast claiming that first item. Everything else is cast
        with the first simple type cast claiming it. Without a claiming cast,
        an ``int`` (but not ``string``) property turns integer strings into
        integers.

        Raises
        ------
        InvalidTypeError
            If the processed value is not valid, or a nested value is not.
        UnknownPropertiesError, UndefinedPropertiesError
            If a nested DTO could not be made. Nested failures are reported
            under this property's name, eg ``parent.first_name`` or
            ``children.0.first_name``.
        """
        flags = Flags(flags)
        cast = None

        try:
            if self._is_collection_of_structures(value):
                # homogeneity is assumed, validation still checks every item
                type_, cast = self._claiming_cast(self.array_type_casts, value[0])

                if cast is not None:
                    value = self._cast_items_to_type(type_, cast, value, flags)

            if cast is None:
                value = self._cast_single_value(value, flags)

        except _NESTED_ERRORS as error:
            error_data = TypeErrorData(self.class_name)
            error_data.map_error(error, self.name)
            error_data.raise_errors()

        check = self.check_value(value, flags)

        if not check.valid:
            raise InvalidTypeError(self.class_name, [check])

        return value

    def process_value_to_data(self, value: Any, flags: Flags = Flags.NONE) -> Any:
        """
        Map a property value back to plain data.

        Raises
        ------
        SerializationUnsupportedError
            If the value has no cast back to data and no native data form.
        """
        flags = Flags(flags)

        for cast in self.type_casts.values():
            if cast.should_map_to_data(value):
                return self._to_native(cast.to_data(self.name, value, flags), flags)

        if is_sequential(value) and self.array_type_casts:
            return [self._item_to_data(item, flags) for item in value]

        return self._to_native(value, flags)

    def map_processed_default(self, flags: Flags = Flags.NONE) -> dict[str, Any]:
        """
        Return ``{name: default}`` for the default applying under ``flags``.

        Later rules override earlier ones:

        1. nullable with ``NULLABLE_DEFAULT_TO_NULL``: None
        2. bool with ``BOOL_DEFAULT_TO_FALSE``: False
        3. array with ``ARRAY_DEFAULT_TO_EMPTY_ARRAY``: empty list
        4. declared default, regardless of flags

        Returns
        -------
        dict
            Empty if no default applies.
        """
        flags = Flags(flags)
        defaults: dict[str, Any] = {}

        if self.is_nullable and Flags.NULLABLE_DEFAULT_TO_NULL in flags:
            defaults[self.name] = None

        if self.is_bool and Flags.BOOL_DEFAULT_TO_FALSE in flags:
            defaults[self.name] = False

        if self.is_array and Flags.ARRAY_DEFAULT_TO_EMPTY_ARRAY in flags:
            defaults[self.name] = []

        if self.has_default:
            defaults[self.name] = copy.deepcopy(self.default)

        return defaults

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def all_types(self) -> list[str]:
        """Every accepted type token, array types with their ``[]`` suffix."""
        return [*self.types, *(f'{type_}[]' for type_ in self.array_types)]

    @property
    def type_string(self) -> str:
        return '|'.join(self.all_types)
