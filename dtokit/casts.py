#  -*- coding: utf-8 -*-
"""
Bidirectional converters between raw data and rich property types.

A ``PropertyCast`` is attached to a property type token at metadata build
time when ``can_cast_type`` accepts the token. While making a DTO the first
cast whose ``should_cast_value`` claims a raw value converts it with
``cast_to_type``; while serializing, the first cast whose
``should_map_to_data`` claims a rich value maps it back with ``to_data``.

Built-in casts
--------------
- ``DataTransferObjectPropertyCast``: mappings to nested DTOs.
- ``NDArrayPropertyCast``: lists to ``numpy.ndarray``.
- ``TimestampPropertyCast``: ISO strings and epoch numbers to ``pandas.Timestamp``.
- ``NamespacePropertyCast``: mappings to ``types.SimpleNamespace``.
"""

from __future__ import annotations

import numpy
import pandas

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import date, datetime
from types import SimpleNamespace

from dtokit.class_data import is_dto, is_dto_class, resolve_type
from dtokit.flags import Flags

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from dtokit.factory import Factory


class PropertyCast(ABC):
    """
    Capability interface of a cast.

    Implementations must leave values they do not recognise untouched: in a
    union type the value may already have been claimed by another type.
    """

    @abstractmethod
    def can_cast_type(self, type_: str) -> bool:
        """Return True if this cast handles the type token ``type_``."""
        ...

    @abstractmethod
    def should_cast_value(self, value: Any) -> bool:
        """Return True if the raw ``value`` should be converted by this cast."""
        ...

    @abstractmethod
    def should_map_to_data(self, value: Any) -> bool:
        """Return True if the rich ``value`` should be mapped back by this cast."""
        ...

    @abstractmethod
    def cast_to_type(self, name: str, data: Any, type_: str, flags: Flags = Flags.NONE) -> Any:
        """Convert raw ``data`` of property ``name`` to the rich type ``type_``."""
        ...

    @abstractmethod
    def to_data(self, name: str, value: Any, flags: Flags = Flags.NONE) -> Any:
        """Convert the rich ``value`` of property ``name`` back to raw data."""
        ...


class ClassPropertyCast(PropertyCast):
    """Base for casts to a class and its subclasses."""

    base_class: type = object

    def can_cast_type(self, type_: str) -> bool:
        cls = resolve_type(type_)
        return cls is not None and issubclass(cls, self.base_class)

    def should_map_to_data(self, value: Any) -> bool:
        return isinstance(value, self.base_class)


# ========== ========== ========== ========== ========== ==========
class DataTransferObjectPropertyCast(PropertyCast):
    """
    Make nested DTOs from mappings.

    Parameters
    ----------
    factory : Factory, optional
        Factory used to make the nested DTOs. If omitted, the nested class's
        own factory is used.
    """

    def __init__(self, factory: Factory | None = None) -> None:
        self.factory: Factory | None = factory

    def can_cast_type(self, type_: str) -> bool:
        return is_dto_class(resolve_type(type_))

    def should_cast_value(self, value: Any) -> bool:
        return isinstance(value, Mapping)

    def should_map_to_data(self, value: Any) -> bool:
        return is_dto(value)

    def cast_to_type(self, name: str, data: Any, type_: str, flags: Flags = Flags.NONE) -> Any:
        if not isinstance(data, Mapping):
            return data

        cls = resolve_type(type_)
        factory = self.factory if self.factory is not None else cls.get_factory()

        return factory.make(cls, data, flags)

    def to_data(self, name: str, value: Any, flags: Flags = Flags.NONE) -> Any:
        if not is_dto(value):
            return value

        if Flags.WITH_DEFAULTS in Flags(flags):
            return value.to_array_with_defaults()

        return value.to_array()


class NDArrayPropertyCast(ClassPropertyCast):
    """Typed numerical collections: lists become ``numpy.ndarray`` and back."""

    base_class = numpy.ndarray

    def should_cast_value(self, value: Any) -> bool:
        return isinstance(value, (list, tuple))

    def cast_to_type(self, name: str, data: Any, type_: str, flags: Flags = Flags.NONE) -> Any:
        if not isinstance(data, (list, tuple)):
            return data

        try:
            return numpy.asarray(data)
        except (ValueError, TypeError):
            # ragged nesting, left as is for validation to report
            return data

    def to_data(self, name: str, value: Any, flags: Flags = Flags.NONE) -> Any:
        if not isinstance(value, numpy.ndarray):
            return value

        return value.tolist()


class TimestampPropertyCast(ClassPropertyCast):
    """
    Points in time as ``pandas.Timestamp``.

    ISO 8601 strings, ``datetime`` objects and epoch numbers (nanoseconds, as
    pandas interprets them) are converted; timestamps map back to ISO strings.
    """

    base_class = pandas.Timestamp

    def should_cast_value(self, value: Any) -> bool:
        if isinstance(value, (bool, pandas.Timestamp)):
            return False

        return isinstance(value, (str, int, float, datetime, date))

    def cast_to_type(self, name: str, data: Any, type_: str, flags: Flags = Flags.NONE) -> Any:
        if not self.should_cast_value(data):
            return data

        try:
            return pandas.Timestamp(data)
        except (ValueError, TypeError):
            # left as is, validation reports the invalid type
            return data

    def to_data(self, name: str, value: Any, flags: Flags = Flags.NONE) -> Any:
        if not isinstance(value, pandas.Timestamp):
            return value

        return value.isoformat()


class NamespacePropertyCast(ClassPropertyCast):
    """Plain attribute bags: mappings become ``types.SimpleNamespace`` and back."""

    base_class = SimpleNamespace

    def should_cast_value(self, value: Any) -> bool:
        return isinstance(value, Mapping)

    def cast_to_type(self, name: str, data: Any, type_: str, flags: Flags = Flags.NONE) -> Any:
        if not isinstance(data, Mapping):
            return data

        return SimpleNamespace(**data)

    def to_data(self, name: str, value: Any, flags: Flags = Flags.NONE) -> Any:
        if not isinstance(value, SimpleNamespace):
            return value

        return dict(vars(value))
