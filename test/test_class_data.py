#  -*- coding: utf-8 -*-
"""
Test suite for property declarations.

Tests cover:
- Type token normalization and resolution
- TypedProperty descriptor protocol
- Metatype registry and MRO collection
- ClassDataProvider output
"""

from __future__ import annotations

import numpy
import pytest

from types import SimpleNamespace
from typing import Any

from dtokit import ClassDataProvider, DataTransferObject, Flags, TypedProperty, get_full_qualified_name
from dtokit.class_data import normalize_types, resolve_type


# ========== ========== ========== ========== Fixtures
@pytest.fixture
def provider() -> ClassDataProvider:
    return ClassDataProvider()


@pytest.fixture
def node_class() -> type:
    """A self referencing DTO class."""

    class Node(DataTransferObject):
        label = TypedProperty('string')
        parent = TypedProperty('null|Node', default=None)
        children = TypedProperty('Node[]', default=[])

    return Node


# ========== ========== ========== ========== Type tokens
class TestNormalizeTypes:
    """Test the accepted forms of type declarations."""

    def test_pipe_separated_string(self) -> None:
        assert normalize_types('null|string') == ['null', 'string']

    def test_builtin_classes(self) -> None:
        assert normalize_types([str, None]) == ['string', 'null']
        assert normalize_types(int) == ['int']
        assert normalize_types([bool, float, list, dict]) == ['bool', 'float', 'array']

    def test_any_is_mixed(self) -> None:
        assert normalize_types([Any]) == ['mixed']

    def test_other_classes_are_qualified(self) -> None:
        assert normalize_types(SimpleNamespace) == ['types.SimpleNamespace']

    def test_duplicates_are_dropped(self) -> None:
        assert normalize_types(['string', 'null|string', ' int ']) == ['string', 'null', 'int']


class TestResolveType:
    """Test resolving type tokens back to classes."""

    def test_importable_class(self) -> None:
        assert resolve_type('numpy.ndarray') is numpy.ndarray
        assert resolve_type('types.SimpleNamespace') is SimpleNamespace

    def test_primitive_tokens(self) -> None:
        assert resolve_type('string') is None
        assert resolve_type('mixed') is None

    def test_unknown_tokens(self) -> None:
        assert resolve_type('no_such_module.Thing') is None
        assert resolve_type('numpy.NoSuchThing') is None
        assert resolve_type('Thing') is None

    def test_registered_dto(self, node_class: type) -> None:
        # local classes cannot be imported but are registered
        assert resolve_type(get_full_qualified_name(node_class)) is node_class


# ========== ========== ========== ========== Declarations
class TestTypedProperty:
    """Test the declaration descriptor."""

    def test_class_access_returns_descriptor(self, node_class: type) -> None:
        descriptor = node_class.label

        assert isinstance(descriptor, TypedProperty)
        assert descriptor.name == 'label'
        assert descriptor.owner is node_class
        assert not descriptor.has_default

    def test_default(self, node_class: type) -> None:
        assert node_class.parent.has_default
        assert node_class.parent.default is None

    def test_requires_a_type(self) -> None:
        with pytest.raises(ValueError, match='At least one type'):
            TypedProperty([])

    def test_single_cast_is_listed(self) -> None:
        cast = object()
        descriptor = TypedProperty('string', casts=cast)

        assert descriptor.casts == [cast]

    def test_delete_is_forbidden(self, node_class: type) -> None:
        node = node_class.make({'label': 'root'})

        with pytest.raises(AttributeError):
            del node.label

    def test_doc(self) -> None:
        descriptor = TypedProperty('string', doc='The label.')

        assert descriptor.__doc__ == 'The label.'


class TestMetatype:
    """Test registration and MRO collection."""

    def test_registered_by_qualified_name(self, node_class: type) -> None:
        name = get_full_qualified_name(node_class)

        assert name in DataTransferObject
        assert node_class in DataTransferObject
        assert DataTransferObject[name] is node_class

    def test_membership_requires_name_or_class(self) -> None:
        with pytest.raises(TypeError):
            1 in DataTransferObject

    def test_inherited_declarations(self) -> None:
        # base declarations first, subclasses can redeclare
        class Base(DataTransferObject):
            a = TypedProperty('string')
            b = TypedProperty('string')

        class Child(Base):
            b = TypedProperty('int')
            c = TypedProperty('bool')

        assert list(Child.typed_properties) == ['a', 'b', 'c']
        assert Child.typed_properties['b'].types == ['int']
        assert list(Base.typed_properties) == ['a', 'b']


# ========== ========== ========== ========== Class data
class TestClassDataProvider:
    """Test the class data derived from declarations."""

    def test_self_reference_is_qualified(self, provider: ClassDataProvider, node_class: type) -> None:
        class_data = provider.get_class_data(node_class)
        name = get_full_qualified_name(node_class)

        assert class_data.class_name == name
        assert class_data.property_types_map == {
            'label': ['string'],
            'parent': ['null', name],
            'children': [f'{name}[]'],
        }

    def test_sibling_reference_is_qualified(self, provider: ClassDataProvider) -> None:
        # bare names resolve within the enclosing scope
        class Address(DataTransferObject):
            city = TypedProperty('string')

        class Person(DataTransferObject):
            address = TypedProperty('null|Address')

        class_data = provider.get_class_data(Person)

        assert class_data.property_types_map['address'] == ['null', get_full_qualified_name(Address)]

    def test_only_declared_defaults(self, provider: ClassDataProvider, node_class: type) -> None:
        class_data = provider.get_class_data(node_class)

        assert class_data.defaults == {'parent': None, 'children': []}

    def test_base_flags(self, provider: ClassDataProvider) -> None:
        class Settings(DataTransferObject):
            __base_flags__ = Flags.MUTABLE

            width = TypedProperty('int', default=80)

        assert provider.get_class_data(Settings).base_flags == Flags.MUTABLE

    def test_class_exists(self, provider: ClassDataProvider, node_class: type) -> None:
        assert provider.class_exists(get_full_qualified_name(node_class))
        assert not provider.class_exists('app.NoSuchClass')

    def test_rejects_other_classes(self, provider: ClassDataProvider) -> None:
        with pytest.raises(TypeError, match='data transfer object class'):
            provider.get_class_data(dict)
