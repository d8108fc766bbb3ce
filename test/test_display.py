#  -*- coding: utf-8 -*-
"""
Test suite for Displayable and DisplaySettings.

Tests cover:
- DisplaySettings: defaults, mutability, validation
- Displayable: per instance settings, panel rendering
- Formatting: forms, nested DTOs, tables of DTOs
- Integration: Rich protocol, string output, HTML/SVG export
"""

from __future__ import annotations

import pandas as pd
import pytest

from io import StringIO

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from dtokit import (DataTransferObject,
                    Displayable,
                    DisplaySettings,
                    Factory,
                    Flags,
                    InvalidTypeError,
                    TypedProperty)


class Member(Displayable, DataTransferObject):
    name = TypedProperty('string')
    score = TypedProperty('float', default=0.0)


class Team(Displayable, DataTransferObject):
    title = TypedProperty('string')
    captain = TypedProperty('null|Member', default=None)
    members = TypedProperty('Member[]', default=[])


class Opaque:

    def __str__(self) -> str:
        return 'opaque'


class Sample(Displayable, DataTransferObject):
    name = TypedProperty('string')
    payload = TypedProperty('null|mixed', default=None)


class Batch(Displayable, DataTransferObject):
    samples = TypedProperty('Sample[]', default=[])


# ========== ========== ========== ========== Fixtures
@pytest.fixture(autouse=True)
def fresh_factory() -> None:
    DataTransferObject.set_factory(Factory.make_default_factory())
    yield
    DataTransferObject.set_factory(None)


@pytest.fixture
def custom_settings() -> DisplaySettings:
    """Create customized DisplaySettings."""
    settings = DisplaySettings.make()
    settings.console_width = 120
    settings.property_style = 'bold cyan'
    settings.panel_border_style = 'green'
    settings.table_header_style = 'bold magenta'
    return settings


@pytest.fixture
def team() -> Team:
    return Team.make({
        'title': 'Analysts',
        'captain': {'name': 'Ada', 'score': 9.5},
        'members': [{'name': 'Charles', 'score': 7.25}, {'name': 'Grace', 'score': 8.0}],
    })


@pytest.fixture
def large_dataframe() -> pd.DataFrame:
    """Create large DataFrame for truncation testing."""
    return pd.DataFrame({
        'id': range(100),
        'category': [f'Cat{i % 5}' for i in range(100)],
    })


# ========== ========== ========== ========== Test DisplaySettings
class TestDisplaySettings:
    """Test DisplaySettings configuration class."""

    def test_creates_with_defaults(self) -> None:
        settings = DisplaySettings.make()

        assert settings.console_width == 150
        assert settings.property_style == 'bold bright_yellow'
        assert settings.panel_border_style == 'bright_cyan'
        assert settings.panel_box == 'ROUNDED'
        assert settings.panel_title_align == 'center'
        assert settings.table_round_floats is None
        assert settings.table_spacing == 4

    def test_overrides(self) -> None:
        settings = DisplaySettings.make({'console_width': 120})

        assert settings.console_width == 120
        assert settings.panel_box == 'ROUNDED'

    def test_can_modify_settings(self) -> None:
        # settings are mutable DTOs
        settings = DisplaySettings.make()

        settings.console_width = 120
        assert settings.console_width == 120

        settings.table_header_style = None
        assert settings.table_header_style is None

    def test_settings_are_validated(self) -> None:
        settings = DisplaySettings.make()

        with pytest.raises(InvalidTypeError, match='expected console_width to be of type int'):
            settings.console_width = 'wide'


# ========== ========== ========== ========== Test Displayable
class TestDisplayableBasics:
    """Test the display settings of displayable DTOs."""

    def test_has_display_settings(self, team: Team) -> None:
        assert isinstance(team.display_settings, DisplaySettings)

    def test_each_instance_gets_own_settings(self) -> None:
        first = Member.make({'name': 'Ada'})
        second = Member.make({'name': 'Ada'})

        first.display_settings.console_width = 100

        assert first.display_settings is not second.display_settings
        assert second.display_settings.console_width == 150

    def test_settings_are_not_properties(self, team: Team) -> None:
        # display settings never leak into the data
        team.display_settings.console_width = 100

        assert 'display_settings' not in team.to_array()

    def test_can_assign_custom_settings(self, team: Team, custom_settings: DisplaySettings) -> None:
        team.display_settings = custom_settings

        assert team.display_settings is custom_settings
        assert team.display_settings.panel_border_style == 'green'

    def test_rejects_other_settings(self, team: Team) -> None:
        with pytest.raises(TypeError, match='Expected DisplaySettings'):
            team.display_settings = {'console_width': 100}


class TestDisplayableRendering:
    """Test rendering and output methods."""

    def test_str_contains_title_and_values(self, team: Team) -> None:
        result = str(team)

        assert 'Team' in result
        assert 'Analysts' in result
        assert 'Ada' in result

    def test_rich_protocol(self, team: Team) -> None:
        assert isinstance(team.__rich__(), Panel)

    def test_rich_rendering(self, team: Team) -> None:
        string_io = StringIO()
        console = Console(file=string_io, width=150)
        console.print(team)

        output = string_io.getvalue()

        assert 'title:' in output
        assert 'captain:' in output
        assert 'Charles' in output

    def test_display_panel_uses_settings(self, team: Team) -> None:
        team.display_settings.panel_border_style = 'red'
        team.display_settings.panel_title_align = 'right'
        team.display_settings.panel_box = 'DOUBLE'

        panel = team._display_panel()

        assert panel.border_style == 'red'
        assert panel.title_align == 'right'
        assert panel.box == box.DOUBLE

    def test_only_defined_properties(self) -> None:
        member = Member.make({'name': 'Ada'}, Flags.PARTIAL)

        string_io = StringIO()
        Console(file=string_io, width=150).print(member)

        assert 'score:' not in string_io.getvalue()

    def test_to_html(self, team: Team) -> None:
        html = team.to_html()

        assert '<html' in html.lower()
        assert 'Analysts' in html

    def test_to_svg(self, team: Team) -> None:
        svg = team.to_svg()

        assert svg.lstrip().startswith('<svg')


# ========== ========== ========== ========== Test formatting
class TestFormatAsForm:
    """Test form formatting."""

    def test_form_uses_property_style(self, team: Team) -> None:
        team.display_settings.property_style = 'bold red'

        form = team.format_as_form({'name': 'Alice'})

        assert isinstance(form, Table)
        assert form.columns[0].style == 'bold red'

    def test_form_adds_colon_to_keys(self, team: Team) -> None:
        string_io = StringIO()
        Console(file=string_io).print(team.format_as_form({'name': 'Alice'}))

        assert 'name:' in string_io.getvalue()

    def test_nested_dto_is_a_form(self, team: Team) -> None:
        assert isinstance(team._format_value(team.captain), Table)

    def test_list_of_dtos_is_a_table(self, team: Team) -> None:
        table = team._format_value(team.members)

        # header row plus one row per member
        assert isinstance(table, Table)
        assert len(table.columns) == 2
        assert table.row_count == 3

    def test_values_without_data_form(self) -> None:
        # displayed as text instead of failing to serialize
        batch = Batch.make({'samples': [{'name': 'a', 'payload': Opaque()}, {'name': 'b'}]})

        table = batch._format_value(batch.samples)

        assert isinstance(table, Table)
        assert table.row_count == 3

        string_io = StringIO()
        Console(file=string_io, width=150).print(batch)

        assert 'opaque' in string_io.getvalue()
        assert 'opaque' in str(batch)

    def test_other_values_are_escaped(self, team: Team) -> None:
        assert team._format_value('[bold]x[/bold]') == '\\[bold]x\\[/bold]'


class TestFormatAsTable:
    """Test table formatting."""

    def test_numeric_columns_align_right(self, team: Team) -> None:
        frame = pd.DataFrame({'num': [1, 2, 3], 'text': ['a', 'b', 'c'], 'flag': [True, False, True]})

        table = team.format_as_table(frame)

        assert [column.justify for column in table.columns] == ['right', 'left', 'left']

    def test_round_floats(self, team: Team) -> None:
        team.display_settings.table_round_floats = 2

        string_io = StringIO()
        Console(file=string_io).print(team.format_as_table(pd.DataFrame({'value': [1.23456, 2.34567]})))

        assert '1.23' in string_io.getvalue()
        assert '1.2345' not in string_io.getvalue()

    def test_truncation(self, team: Team, large_dataframe: pd.DataFrame) -> None:
        table = team.format_as_table(large_dataframe, max_rows=11)

        # header, 5 first rows, ellipsis, 5 last rows
        assert table.row_count == 12

    def test_no_truncation_below_max_rows(self, team: Team, large_dataframe: pd.DataFrame) -> None:
        table = team.format_as_table(large_dataframe.head(10), max_rows=11)

        assert table.row_count == 11

    def test_spacing(self, team: Team) -> None:
        team.display_settings.table_spacing = 2

        table = team.format_as_table(pd.DataFrame({'a': [1]}))

        assert table.padding == (0, 2, 0, 2)
