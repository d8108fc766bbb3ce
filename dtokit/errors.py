#  -*- coding: utf-8 -*-
"""
Failure kinds raised while making, reading, writing and serializing DTOs.

Every error that names properties keeps the full list of names (or type
checks) it was raised for, so callers can inspect them programmatically and
nested construction can re-tag them with a dotted path prefix.
"""

from __future__ import annotations

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Iterable, TYPE_CHECKING

if TYPE_CHECKING:
    from dtokit.type_error_data import TypeErrorData


def short_class_name(class_name: str) -> str:
    """Return the last dotted segment of a fully qualified class name."""
    return class_name.rsplit('.', 1)[-1]


def summarize_value(value: Any) -> tuple[str, str]:
    """
    Summarize a value for error messages.

    Returns
    -------
    tuple of str
        ``(summary, kind)``. Objects are summarized by their type name,
        containers by ``"array"`` and None by ``"null"``.
    """
    if value is None:
        return 'null', 'null'

    if isinstance(value, (list, tuple, dict)):
        return 'array', 'array'

    if isinstance(value, (bool, int, float, str)):
        return str(value), type(value).__name__

    return type(value).__name__, 'object'


class PropertyTypeCheck:
    """
    Result of checking a single value against a property's types.

    Parameters
    ----------
    name : str
        Property name, possibly a dotted path for nested properties.
    types : list of str
        Every type accepted by the property, array types with ``[]`` suffix.
    value : object
        The checked value.
    valid : bool
        Whether the value passed the check.
    """

    __slots__ = ('name', 'types', 'value', 'valid')

    def __init__(self, name: str, types: list[str], value: Any, valid: bool) -> None:
        self.name: str = name
        self.types: list[str] = types
        self.value: Any = value
        self.valid: bool = valid

    def __repr__(self) -> str:
        return f'PropertyTypeCheck({self.name!r}, {self.types!r}, valid={self.valid})'

    def with_prefix(self, prefix: str) -> PropertyTypeCheck:
        """Return a copy of the check with its name nested under ``prefix``."""
        return PropertyTypeCheck(f'{prefix}.{self.name}', self.types, self.value, self.valid)

    @property
    def message(self) -> str:
        summary, kind = summarize_value(self.value)

        return (f'expected {self.name} to be of type {"|".join(self.types)}, '
                f'instead got value `{summary}` ({kind}).')


# ========== ========== ========== ========== ========== base errors
class DataTransferObjectError(Exception):
    """Root of every error raised by dtokit."""


class DataTransferObjectTypeError(DataTransferObjectError, TypeError):
    """
    Base for errors tied to a DTO class.

    Attributes
    ----------
    class_name : str
        Fully qualified name of the DTO class the error was raised for.
    data : TypeErrorData or None
        Every nested failure collected in the same construction call, of any
        kind, when the error was raised as an aggregate.
    """

    def __init__(self, class_name: str, message: str) -> None:
        super().__init__(message)

        self.class_name: str = class_name
        self.data: TypeErrorData | None = None


class _PropertyNamesError(DataTransferObjectTypeError):

    label: str = 'Unknown'

    def __init__(self, class_name: str, property_names: Iterable[str]) -> None:
        self.property_names: list[str] = list(property_names)

        noun = 'property' if len(self.property_names) == 1 else 'properties'
        names = '`, `'.join(self.property_names)

        super().__init__(class_name, f'{self.label} {noun} `{names}` for {short_class_name(class_name)}')

    def nested_property_names(self, prefix: str) -> list[str]:
        """Return the property names nested under ``prefix``."""
        return [f'{prefix}.{name}' for name in self.property_names]


# ========== ========== ========== ========== ========== failure kinds
class UnknownPropertiesError(_PropertyNamesError):
    """One or more names have no declared property on the class."""

    label = 'Unknown'


class UndefinedPropertiesError(_PropertyNamesError, AttributeError):
    """
    One or more required properties have no value.

    Also an ``AttributeError``, so that ``hasattr`` is False for a declared
    property without value.
    """

    label = 'Undefined'


class UnexpectedlyDefinedPropertiesError(_PropertyNamesError):
    """One or more properties were asserted undefined but have a value."""

    label = 'Unexpectedly defined'


class ImmutableError(DataTransferObjectTypeError, AttributeError):
    """Write attempted on a DTO that was not made ``MUTABLE``."""

    def __init__(self, class_name: str, name: str) -> None:
        self.property_name: str = name

        super().__init__(
            class_name,
            f'Immutable type: cannot change the value of property {name} '
            f'on immutable {short_class_name(class_name)}'
        )


class InvalidTypeError(DataTransferObjectTypeError):
    """
    One or more values do not match their property's declared types.

    Parameters
    ----------
    class_name : str
        Fully qualified DTO class name.
    type_checks : list of PropertyTypeCheck
        Every failed check.
    """

    def __init__(self, class_name: str, type_checks: Iterable[PropertyTypeCheck]) -> None:
        self.type_checks: list[PropertyTypeCheck] = list(type_checks)

        lines = '\n'.join(f'  {check.message}' for check in self.type_checks)

        super().__init__(class_name, f'Invalid type for {short_class_name(class_name)}:\n{lines}')

    def nested_type_checks(self, prefix: str) -> list[PropertyTypeCheck]:
        """Return the failed checks nested under ``prefix``."""
        return [check.with_prefix(prefix) for check in self.type_checks]

    @property
    def property_names(self) -> list[str]:
        return [check.name for check in self.type_checks]


class SerializationUnsupportedError(DataTransferObjectError, TypeError):
    """A defined value has neither a native data form nor a cast back to data."""

    def __init__(self, class_name: str, name: str, value: Any) -> None:
        self.class_name: str = class_name
        self.property_name: str = name

        super().__init__(
            f'Property {name} of {short_class_name(class_name)} cannot be serialised: '
            f'no serialisation process is implemented for object of type {type(value).__name__}.'
        )
