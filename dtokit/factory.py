#  -*- coding: utf-8 -*-
"""
Metadata cache and construction algorithm for DTOs.

The ``Factory`` derives the ``PropertyType`` map of a DTO class once, from the
class data of its ``ClassDataProvider``, and keeps it for the lifetime of the
factory (or until ``clear_cache``). Every instance of the class then shares
that map by reference.

Construction
------------
``Factory.make(cls, data, flags)``:

1. Unknown keys are skipped under ``IGNORE_UNKNOWN_PROPERTIES`` or
   ``TRACK_UNKNOWN_PROPERTIES`` (and kept under the latter), otherwise one
   ``UnknownPropertiesError`` names all of them.
2. Every known key is cast and validated. Failures are collected, with nested
   paths, instead of raised one at a time.
3. Unless ``PARTIAL`` is set without ``WITH_DEFAULTS``, defaults are filled
   for the properties still undefined.
4. Unless ``PARTIAL`` is set, properties still undefined are required and are
   all reported in one ``UndefinedPropertiesError``.
5. Collected failures are raised as one aggregated error, or the instance is
   built.
"""

from __future__ import annotations

import logging
import threading

from collections.abc import Mapping

from dtokit.casts import (DataTransferObjectPropertyCast,
                          NamespacePropertyCast,
                          NDArrayPropertyCast,
                          PropertyCast,
                          TimestampPropertyCast)
from dtokit.class_data import ClassDataProvider, get_full_qualified_name, normalize_types
from dtokit.errors import (InvalidTypeError,
                           UndefinedPropertiesError,
                           UnknownPropertiesError)
from dtokit.flags import Flags
from dtokit.property_type import TYPE_ALIASES, PropertyType
from dtokit.type_error_data import TypeErrorData

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Iterable, Self, TypeVar, TYPE_CHECKING

if TYPE_CHECKING:
    from dtokit.dto import DataTransferObject


logger = logging.getLogger(__name__)

D = TypeVar('D', bound='DataTransferObject')

Casts = PropertyCast | Iterable[PropertyCast]


class DTOMetadata:
    """
    Cached metadata of a DTO class.

    Attributes
    ----------
    class_name : str
        Fully qualified class name.
    property_types : dict[str, PropertyType]
        Shared by every instance of the class.
    base_flags : Flags
        Flags merged into every ``make`` call for the class.
    """

    __slots__ = ('class_name', 'property_types', 'base_flags')

    def __init__(self, class_name: str, property_types: dict[str, PropertyType], base_flags: Flags) -> None:
        self.class_name: str = class_name
        self.property_types: dict[str, PropertyType] = property_types
        self.base_flags: Flags = Flags(base_flags)

    @property
    def property_names(self) -> list[str]:
        return list(self.property_types)


class Factory:
    """
    Builds, caches and applies DTO metadata.

    Parameters
    ----------
    class_data_provider : ClassDataProvider, optional
        Source of property declarations. Defaults to the provider reading
        ``TypedProperty`` declarations.

    Notes
    -----
    A factory created directly has no default casts, so nested DTOs are not
    cast. Use ``Factory.make_default_factory`` for the usual setup.
    """

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, class_data_provider: ClassDataProvider | None = None) -> None:

        if class_data_provider is None:
            class_data_provider = ClassDataProvider()

        self._class_data_provider: ClassDataProvider = class_data_provider
        self._class_metadata: dict[type, DTOMetadata] = {}
        self._casts: list[PropertyCast] = []

        # only the populate-on-miss step of the cache needs it
        self._lock = threading.RLock()

    # ========== ========== ========== ========== ========== private methods
    @staticmethod
    def _as_cast_list(casts: Casts | None) -> list[PropertyCast]:
        if casts is None:
            return []

        if isinstance(casts, PropertyCast):
            return [casts]

        return list(casts)

    # ========== ========== ========== ========== ========== public methods
    @classmethod
    def make_default_factory(cls) -> Self:
        """Return a factory with every built-in cast registered."""
        factory = cls(ClassDataProvider())
        factory.register_default_type_cast(DataTransferObjectPropertyCast(factory))
        factory.register_default_type_cast(NDArrayPropertyCast())
        factory.register_default_type_cast(TimestampPropertyCast())
        factory.register_default_type_cast(NamespacePropertyCast())

        return factory

    def register_default_type_cast(self, cast: PropertyCast) -> None:
        """
        Register a cast for every class made by this factory.

        Casts declared by a class are checked before these. Metadata already
        cached is not affected.
        """
        self._casts.append(cast)

    def get_class_metadata(self, cls: type) -> DTOMetadata:
        """
        Return the metadata of a DTO class, building it on first request.

        Raises
        ------
        InvalidTypeError
            If a declared default is not valid for its own property.
        """
        metadata = self._class_metadata.get(cls)

        if metadata is not None:
            return metadata

        with self._lock:

            metadata = self._class_metadata.get(cls)

            if metadata is None:
                logger.debug("Building metadata for %s", get_full_qualified_name(cls))

                class_data = self._class_data_provider.get_class_data(cls)

                metadata = self.set_class_metadata(
                    cls,
                    class_data.property_types_map,
                    class_data.defaults,
                    class_data.property_cast_map,
                    class_data.base_flags,
                )

        return metadata

    def set_class_metadata(self,
                           cls: type,
                           property_types_map: Mapping[str, Any],
                           defaults: Mapping[str, Any] | None = None,
                           casts: Mapping[str, Casts] | None = None,
                           flags: Flags = Flags.NONE) -> DTOMetadata:
        """
        Build and cache the metadata of a class from explicit declarations.

        Parameters
        ----------
        cls : type
            DTO class the metadata is cached for.
        property_types_map : mapping
            ``{'first_name': ['string'], 'last_name': 'null|string'}``
        defaults : mapping, optional
            ``{'last_name': None}``
        casts : mapping, optional
            Per property, a single cast or a list of casts.
        flags : Flags
            Base flags of the class.

        Returns
        -------
        DTOMetadata
        """
        class_name = get_full_qualified_name(cls)
        property_types = self.make_property_types(property_types_map, defaults, casts, class_name)

        metadata = DTOMetadata(class_name, property_types, flags)
        self._class_metadata[cls] = metadata

        return metadata

    def has_class_metadata(self, cls: type) -> bool:
        return cls in self._class_metadata

    def clear_cache(self) -> None:
        """Forget every cached class metadata."""
        with self._lock:
            logger.debug("Clearing metadata of %d classes", len(self._class_metadata))
            self._class_metadata.clear()

    def make_property_types(self,
                            property_types_map: Mapping[str, Any],
                            defaults: Mapping[str, Any] | None = None,
                            casts: Mapping[str, Casts] | None = None,
                            class_name: str = '') -> dict[str, PropertyType]:
        """Build a ``{name: PropertyType}`` map without caching it."""
        defaults = defaults or {}
        casts = casts or {}

        return {
            name: self.make_property_type(name, types, defaults, casts.get(name), class_name)
            for name, types in property_types_map.items()
        }

    def make_property_type(self,
                           name: str,
                           types: Any,
                           defaults: Mapping[str, Any] | None = None,
                           casts: Casts | None = None,
                           class_name: str = '') -> PropertyType:
        """
        Build a single ``PropertyType``.

        Parameters
        ----------
        name : str
            Property name.
        types : str, type or iterable of them
            Declared type tokens, ``Foo[]`` for lists of ``Foo``.
        defaults : mapping, optional
            Defaults by property name; only ``name`` is looked up.
        casts : PropertyCast or iterable of PropertyCast, optional
            Class specific casts for this property.
        class_name : str
            Owning class, for error messages.

        Raises
        ------
        ValueError
            If no type is declared.
        InvalidTypeError
            If the declared default is not valid for the property.
        """
        all_types = normalize_types(types)

        if not all_types:
            raise ValueError(f'At least one type must be defined for property: {name}')

        single_types: list[str] = []
        array_types: list[str] = []

        for type_ in all_types:
            if type_.endswith('[]'):
                array_types.append(type_[:-2])
            else:
                single_types.append(type_)

        normalized = {TYPE_ALIASES.get(type_, type_) for type_ in single_types}

        # class property casts first, so classes can override the factory's
        available_casts = [*self._as_cast_list(casts), *self._casts]

        type_casts: dict[str, PropertyCast] = {}
        array_type_casts: dict[str, PropertyCast] = {}

        for types_, resolved in ((single_types, type_casts), (array_types, array_type_casts)):
            for type_ in types_:
                for cast in available_casts:
                    if cast.can_cast_type(type_):
                        logger.debug("Property %s casts %s with %s", name, type_, type(cast).__name__)
                        resolved[type_] = cast
                        break

        defaults = defaults or {}
        has_default = name in defaults

        property_type = PropertyType(
            name,
            single_types,
            array_types,
            type_casts,
            array_type_casts,
            is_nullable='null' in normalized,
            is_bool='bool' in normalized,
            is_array='array' in normalized or bool(array_types),
            is_string='string' in normalized,
            is_int='int' in normalized,
            has_default=has_default,
            default=defaults.get(name),
            class_name=class_name,
        )

        if has_default:
            check = property_type.check_value(property_type.default)

            if not check.valid:
                raise InvalidTypeError(class_name, [check])

        return property_type

    def make(self,
             cls: type[D],
             data: Mapping[str, Any] | None = None,
             flags: Flags = Flags.NONE,
             property_types: dict[str, PropertyType] | None = None) -> D:
        """
        Make a valid DTO instance.

        Parameters
        ----------
        cls : type
            DTO class to instantiate.
        data : mapping, optional
            Raw property values by name.
        flags : Flags
            Behaviour flags, merged with the class base flags.
        property_types : dict[str, PropertyType], optional
            Use these property types instead of the class metadata.

        Returns
        -------
        DataTransferObject

        Raises
        ------
        TypeError
            If ``data`` is not a mapping.
        UnknownPropertiesError
            If ``data`` has unknown keys and they are neither ignored nor
            tracked, or a nested DTO has some.
        InvalidTypeError
            If any value, nested ones included, is not valid.
        UndefinedPropertiesError
            If any required property, nested ones included, is undefined.
        """
        flags = Flags(flags)

        if property_types is None:
            metadata = self.get_class_metadata(cls)
            property_types = metadata.property_types
            flags |= metadata.base_flags

        class_name = get_full_qualified_name(cls)

        if data is None:
            data = {}

        if not isinstance(data, Mapping):
            raise TypeError(f"Expected a mapping of properties for {class_name}, "
                            f"given {type(data).__name__} instead")

        # ---------- ---------- ---------- ---------- unknown properties
        unknown_properties = {name: value for name, value in data.items() if name not in property_types}

        lenient = Flags.IGNORE_UNKNOWN_PROPERTIES | Flags.TRACK_UNKNOWN_PROPERTIES

        if unknown_properties and not flags & lenient:
            raise UnknownPropertiesError(class_name, unknown_properties)

        # ---------- ---------- ---------- ---------- cast and validate
        properties: dict[str, Any] = {}
        failed: set[str] = set()
        error_data = TypeErrorData(class_name)

        for name, value in data.items():

            property_type = property_types.get(name)

            if property_type is None:
                continue

            try:
                properties[name] = property_type.cast_value_to_type(value, flags)

            except (InvalidTypeError, UnknownPropertiesError, UndefinedPropertiesError) as error:
                error_data.map_error(error)
                failed.add(name)

        # ---------- ---------- ---------- ---------- defaults
        if Flags.PARTIAL not in flags or Flags.WITH_DEFAULTS in flags:

            for name, property_type in property_types.items():

                # defaults only target undefined properties
                if name in properties or name in failed:
                    continue

                properties.update(property_type.map_processed_default(flags))

        # ---------- ---------- ---------- ---------- required properties
        if Flags.PARTIAL not in flags:
            error_data.add_undefined(
                name for name in property_types if name not in properties and name not in failed
            )

        error_data.raise_errors()

        tracked = unknown_properties if Flags.TRACK_UNKNOWN_PROPERTIES in flags else {}

        return cls(property_types, properties, tracked, flags)
