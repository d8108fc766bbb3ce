#  -*- coding: utf-8 -*-
"""
Property declarations and the class data they are reduced to.

A DTO class declares its properties with ``TypedProperty`` descriptors::

    class UserData(DataTransferObject):
        id = TypedProperty('string')
        first_name = TypedProperty('string')
        last_name = TypedProperty('null|string')
        parent = TypedProperty('null|UserData')
        children = TypedProperty('UserData[]', default=[])

``DataTransferObjectMetatype`` collects these descriptors across the MRO and
registers every DTO class under its fully qualified name, so that type tokens
such as ``"my_app.models.UserData"`` can be resolved back to classes.
``ClassDataProvider`` turns the collected declarations into ``ClassData``: the
``{name: [type tokens]}`` map, the declared defaults, the class specific casts
and the class base flags. That is all the factory ever consumes, so class data
can just as well be produced by any other front end.
"""

from __future__ import annotations

import importlib
import logging

from abc import ABCMeta

from dtokit.flags import Flags

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Iterable, Self, TYPE_CHECKING

if TYPE_CHECKING:
    from dtokit.casts import PropertyCast
    from dtokit.dto import DataTransferObject


logger = logging.getLogger(__name__)


PRIMITIVE_TOKENS = frozenset({
    'string', 'int', 'integer', 'bool', 'boolean', 'float', 'double',
    'array', 'null', 'mixed',
})
"""Type tokens that are not resolved to classes"""

BUILTIN_TOKENS: dict[type, str] = {
    str: 'string',
    int: 'int',
    bool: 'bool',
    float: 'float',
    list: 'array',
    tuple: 'array',
    dict: 'array',
    type(None): 'null',
}


class _Missing:

    def __repr__(self) -> str:
        return 'MISSING'


MISSING = _Missing()
"""Marks a declaration without default; None is a valid default"""

_registry: dict[str, type] = {}


# ========== ========== ========== ========== ========== ==========
def get_full_qualified_name(cls: type) -> str:
    """
    Return the fully qualified class name used as a type token.

    For built-in types (module is ``builtins``), returns ``cls.__qualname__``.
    For user-defined types, returns ``"<module>.<qualname>"``.
    """
    module = cls.__module__

    if module is None or module == 'builtins':
        return cls.__qualname__

    return f"{module}.{cls.__qualname__}"


def type_token(type_: type | str) -> str:
    """Return the type token of a class, mapping builtins to primitive tokens."""
    if isinstance(type_, str):
        return type_

    if type_ is Any:
        return 'mixed'

    if type_ in BUILTIN_TOKENS:
        return BUILTIN_TOKENS[type_]

    return get_full_qualified_name(type_)


def normalize_types(types: str | type | Iterable[str | type]) -> list[str]:
    """
    Normalize a type declaration into a list of type tokens.

    Parameters
    ----------
    types : str, type or iterable of them
        ``"null|string"``, ``["null", "string"]``, ``UserData`` or
        ``[None, UserData]`` are all accepted.

    Returns
    -------
    list of str
        Tokens in declaration order, without duplicates.

    Examples
    --------
    >>> normalize_types('null|string')
    ['null', 'string']
    >>> normalize_types([str, None])
    ['string', 'null']
    """
    if types is None:
        return ['null']

    if isinstance(types, (str, type)):
        types = [types]

    tokens: list[str] = []

    for item in types:

        if item is None:
            parts = ['null']

        elif isinstance(item, str):
            parts = [part.strip() for part in item.split('|') if part.strip()]

        else:
            parts = [type_token(item)]

        for part in parts:
            if part not in tokens:
                tokens.append(part)

    return tokens


def resolve_type(token: str) -> type | None:
    """
    Resolve a fully qualified type token to a class.

    The DTO registry is consulted first. Otherwise the token is split into a
    module path and an attribute path, trying the longest importable module.

    Returns
    -------
    type or None
        None if the token is primitive or cannot be resolved.
    """
    if token in PRIMITIVE_TOKENS:
        return None

    if token in _registry:
        return _registry[token]

    parts = token.split('.')

    for index in range(len(parts) - 1, 0, -1):

        module_name = '.'.join(parts[:index])

        try:
            obj = importlib.import_module(module_name)
        except ImportError:
            continue

        try:
            for attr in parts[index:]:
                obj = getattr(obj, attr)
        except AttributeError:
            return None

        return obj if isinstance(obj, type) else None

    logger.debug("Type token %r could not be resolved", token)
    return None


def is_dto(value: Any) -> bool:
    """Return True if ``value`` is a DTO instance."""
    return isinstance(type(value), DataTransferObjectMetatype)


def is_dto_class(value: Any) -> bool:
    """Return True if ``value`` is a DTO class."""
    return isinstance(value, DataTransferObjectMetatype)


# ========== ========== ========== ========== ========== ==========
class TypedProperty:
    """
    Descriptor declaring a typed DTO property.

    Reading or writing the attribute on an instance goes through the
    instance's ``get`` and ``set``, so the same construction rules apply.

    Parameters
    ----------
    types : str, type or iterable of them
        Union of accepted types, eg ``"null|string"`` or ``"UserData[]"``.
    default : object, optional
        Declared default. Must be valid for the property's own types.
    casts : PropertyCast or list of PropertyCast, optional
        Class specific casts, checked before the factory's default casts.
    doc : str, optional
        Docstring of the property.

    Attributes
    ----------
    name : str
        Property name (set by ``__set_name__``).
    owner : type
        Owning class (set by ``__set_name__``).
    """

    # ========== ========== ========== ========== ========== special methods
    def __init__(self,
                 types: str | type | Iterable[str | type],
                 *,
                 default: Any = MISSING,
                 casts: PropertyCast | list[PropertyCast] | None = None,
                 doc: str | None = None) -> None:

        self.types: list[str] = normalize_types(types)

        if not self.types:
            raise ValueError("At least one type must be declared")

        self._default: Any = default

        if casts is None:
            casts = []
        elif not isinstance(casts, (list, tuple)):
            casts = [casts]

        self._casts: list[PropertyCast] = list(casts)

        self.__doc__: str | None = doc

    def __set_name__(self, owner: type, name: str) -> None:
        """Called when the descriptor is assigned to a class attribute."""
        self.name: str = name
        self.owner: type = owner

    def __get__(self, instance: DataTransferObject | None, owner: type) -> Any | Self:
        if instance is None:
            # Accessing from class, return descriptor for introspection
            return self

        return instance.get(self.name)

    def __set__(self, instance: DataTransferObject, value: Any) -> None:
        instance.set(self.name, value)

    def __delete__(self, instance: DataTransferObject) -> None:
        raise AttributeError(f"can't delete attribute '{self.name}'")

    @property
    def has_default(self) -> bool:
        return self._default is not MISSING

    @property
    def default(self) -> Any:
        return self._default

    @property
    def casts(self) -> list[PropertyCast]:
        return list(self._casts)


class DataTransferObjectMetatype(ABCMeta):
    """
    Metaclass registering DTO classes and collecting their declarations.

    Every DTO class is registered by fully qualified name, and gets a
    ``_typed_properties`` mapping with the ``TypedProperty`` descriptors of
    its whole MRO, base classes first so subclasses can redeclare.

    The metaclass supports:
    - lookup: ``DataTransferObject[qualname]``
    - membership: ``qualname in DataTransferObject`` or ``cls in DataTransferObject``
    """

    def __new__(mcs,
                name: str,
                bases: tuple[type, ...],
                namespace: dict[str, Any],
                **kwargs: Any) -> DataTransferObjectMetatype:

        cls = super().__new__(mcs, name, bases, namespace, **kwargs)

        cls._typed_properties = {}

        for base in reversed(cls.__mro__):

            if base is object:
                continue

            for attr_name, attr_value in base.__dict__.items():

                if isinstance(attr_value, TypedProperty):
                    cls._typed_properties[attr_name] = attr_value

        if any(isinstance(base, mcs) for base in bases):
            _registry[get_full_qualified_name(cls)] = cls

        return cls

    def __getitem__(cls, qualname: str) -> type:
        """Resolve a registered DTO class by fully qualified name."""
        return _registry[qualname]

    def __contains__(cls, subclass: str | type) -> bool:
        if isinstance(subclass, str):
            return subclass in _registry

        if isinstance(subclass, type):
            return subclass in _registry.values()

        raise TypeError('Expected the class full qualified name or the class itself')

    @property
    def typed_properties(cls) -> dict[str, TypedProperty]:
        """Copy of the declarations of this class, inherited ones included."""
        return {**cls._typed_properties}


# ========== ========== ========== ========== ========== ==========
class ClassData:
    """
    Everything the factory needs to know about a DTO class.

    Attributes
    ----------
    class_name : str
        Fully qualified class name.
    property_types_map : dict[str, list[str]]
        ``{'first_name': ['string'], 'parent': ['null', 'app.UserData']}``
    defaults : dict[str, object]
        Declared defaults, only for properties that declare one.
    property_cast_map : dict[str, list[PropertyCast]]
        Class specific casts per property.
    base_flags : Flags
        Flags merged into every ``make`` call for the class.
    """

    __slots__ = ('class_name', 'property_types_map', 'defaults', 'property_cast_map', 'base_flags')

    def __init__(self,
                 class_name: str,
                 property_types_map: dict[str, list[str]],
                 defaults: dict[str, Any] | None = None,
                 property_cast_map: dict[str, list[PropertyCast]] | None = None,
                 base_flags: Flags = Flags.NONE) -> None:

        self.class_name: str = class_name
        self.property_types_map: dict[str, list[str]] = property_types_map
        self.defaults: dict[str, Any] = defaults or {}
        self.property_cast_map: dict[str, list[PropertyCast]] = property_cast_map or {}
        self.base_flags: Flags = Flags(base_flags)


class ClassDataProvider:
    """Build ``ClassData`` from the ``TypedProperty`` declarations of a class."""

    def class_exists(self, class_name: str) -> bool:
        return class_name in _registry

    def get_class_data(self, cls: type) -> ClassData:
        """
        Collect the declarations of a DTO class.

        Bare class names in type tokens are qualified relative to the owning
        class, so ``'null|UserData'`` may refer to a class of the same module
        or of the same enclosing scope.

        Raises
        ------
        TypeError
            If ``cls`` is not a DTO class.
        """
        if not is_dto_class(cls):
            raise TypeError(f"Expected a data transfer object class, given {cls!r} instead")

        property_types_map: dict[str, list[str]] = {}
        defaults: dict[str, Any] = {}
        property_cast_map: dict[str, list[PropertyCast]] = {}

        for name, declaration in cls.typed_properties.items():

            property_types_map[name] = [self._qualify(token, cls) for token in declaration.types]

            if declaration.has_default:
                defaults[name] = declaration.default

            if declaration.casts:
                property_cast_map[name] = declaration.casts

        return ClassData(
            get_full_qualified_name(cls),
            property_types_map,
            defaults,
            property_cast_map,
            getattr(cls, '__base_flags__', Flags.NONE),
        )

    @staticmethod
    def _qualify(token: str, owner: type) -> str:

        if token.endswith('[]'):
            return ClassDataProvider._qualify(token[:-2], owner) + '[]'

        if token in PRIMITIVE_TOKENS or token in _registry:
            return token

        if token == owner.__name__:
            return get_full_qualified_name(owner)

        scope, _, _ = owner.__qualname__.rpartition('.')
        candidates = [f'{owner.__module__}.{scope}.{token}'] if scope else []
        candidates.append(f'{owner.__module__}.{token}')

        for candidate in candidates:
            if candidate in _registry:
                return candidate

        return token
