#  -*- coding: utf-8 -*-
"""
Accumulation of nested construction failures.

While making a DTO, failures raised by nested casts (nested DTOs, lists of
nested DTOs) are not allowed to escape on their own. They are mapped into a
``TypeErrorData`` under a path prefix, eg a missing ``first_name`` of the
second child of ``parent`` becomes ``parent.children.1.first_name``, and only
raised once every key has been processed.
"""

from __future__ import annotations

from dtokit.errors import (DataTransferObjectTypeError,
                           InvalidTypeError,
                           PropertyTypeCheck,
                           UndefinedPropertiesError,
                           UnknownPropertiesError)

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Iterable


class TypeErrorData:
    """
    Collector of invalid type checks, unknown and undefined property names.

    Parameters
    ----------
    class_name : str
        Class the errors are reported for. Paths of nested failures are
        relative to this class.
    """

    def __init__(self, class_name: str) -> None:
        self.class_name: str = class_name
        self.invalid_checks: list[PropertyTypeCheck] = []
        self.unknown_properties: dict[str, Any] = {}
        self.undefined: list[str] = []

    def __bool__(self) -> bool:
        return bool(self.invalid_checks or self.unknown_properties or self.undefined)

    # ========== ========== ========== ========== ========== public methods
    def add_invalid(self, check: PropertyTypeCheck) -> None:
        self.invalid_checks.append(check)

    def add_unknown(self, name: str, value: Any = None) -> None:
        self.unknown_properties[name] = value

    def has_invalid_checks(self) -> bool:
        return bool(self.invalid_checks)

    def has_unknown_properties(self) -> bool:
        return bool(self.unknown_properties)

    def has_undefined_properties(self) -> bool:
        return bool(self.undefined)

    def add_undefined(self, names: Iterable[str]) -> None:
        for name in names:
            if name not in self.undefined:
                self.undefined.append(name)

    def map_error(self, error: DataTransferObjectTypeError, prefix: str | None = None) -> None:
        """
        Collect every failure carried by an error, re-tagged under ``prefix``.

        If the error was itself raised as an aggregate, all of its collected
        failures are mapped, not only the ones of its own kind.

        Parameters
        ----------
        error : InvalidTypeError, UnknownPropertiesError or UndefinedPropertiesError
            Error raised while processing a value.
        prefix : str, optional
            Property name or list index the failing value was found at. If
            omitted, names are collected as they are.

        Raises
        ------
        DataTransferObjectTypeError
            The error itself, if it is of any other kind.
        """
        if error.data is not None:
            self.merge(error.data, prefix)
            return

        if isinstance(error, InvalidTypeError):
            checks = error.type_checks if prefix is None else error.nested_type_checks(prefix)
            self.invalid_checks.extend(checks)

        elif isinstance(error, (UnknownPropertiesError, UndefinedPropertiesError)):
            names = error.property_names if prefix is None else error.nested_property_names(prefix)

            if isinstance(error, UnknownPropertiesError):
                # values are only kept when tracking, and tracking never raises
                for name in names:
                    self.add_unknown(name)
            else:
                self.add_undefined(names)

        else:
            raise error

    def merge(self, other: TypeErrorData, prefix: str | None = None) -> None:
        """Merge another collector, nesting its entries under ``prefix`` if given."""
        def nest(name: str) -> str:
            return name if prefix is None else f'{prefix}.{name}'

        for check in other.invalid_checks:
            self.invalid_checks.append(check if prefix is None else check.with_prefix(prefix))

        for name, value in other.unknown_properties.items():
            self.add_unknown(nest(name), value)

        self.add_undefined(nest(name) for name in other.undefined)

    def errors(self) -> list[DataTransferObjectTypeError]:
        """
        Build one error per failure kind, in raising order.

        Returns
        -------
        list of DataTransferObjectTypeError
            Invalid type first, then unknown, then undefined properties. Each
            error carries this collector as ``data``.
        """
        errors: list[DataTransferObjectTypeError] = []

        if self.invalid_checks:
            errors.append(InvalidTypeError(self.class_name, self.invalid_checks))

        if self.unknown_properties:
            errors.append(UnknownPropertiesError(self.class_name, self.unknown_properties))

        if self.undefined:
            errors.append(UndefinedPropertiesError(self.class_name, self.undefined))

        for error in errors:
            error.data = self

        return errors

    def raise_errors(self) -> None:
        """
        Raise the collected failures, if any.

        A single aggregated error is raised. When more than one kind was
        collected, the raised error is chained to the error of the next kind
        so that every failure shows up in the traceback.
        """
        errors = self.errors()

        if not errors:
            return

        for error, cause in zip(errors, errors[1:]):
            error.__cause__ = cause

        raise errors[0]
