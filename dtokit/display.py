#  -*- coding: utf-8 -*-
"""
Rich terminal display of data transfer objects.

DTO classes inheriting from ``Displayable`` print as a panel titled with the
class name, holding a key-value form of their defined properties. Lists of
nested DTOs are shown as tables and nested DTOs as nested forms.
"""

from __future__ import annotations

import pandas

from io import StringIO

from rich.markup import escape
from rich.text import Text
from rich.panel import Panel
from rich.console import Console, RenderableType
from rich.table import Table
from rich import box
from rich.align import Align

from dtokit.class_data import TypedProperty, is_dto
from dtokit.dto import DataTransferObject
from dtokit.errors import SerializationUnsupportedError
from dtokit.flags import Flags

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any


# ========== ========== ========== ========== ========== ==========
class DisplaySettings(DataTransferObject):
    """
    Configuration for terminal display formatting.

    DisplaySettings is itself a mutable DTO: every setting is a declared
    property with a default, so ``DisplaySettings.make()`` gives the defaults
    and ``DisplaySettings.make({'console_width': 120})`` overrides some.

    Attributes
    ----------
    console_width : int
        Maximum console output width in characters. Default 150.
    property_style : str
        Style for property labels in forms. Default 'bold bright_yellow'.
    panel_border_style : str
        Style for panel borders. Default 'bright_cyan'.
    panel_box : str
        Box style name from rich.box. Default 'ROUNDED'.
    panel_title_align : str
        Panel title alignment. Default 'center'.
    table_header_style : str or None
        Style for table headers. Default 'bold bright_yellow'.
    table_round_floats : int or None
        Decimal places for float rounding. Default None.
    table_spacing : int
        Column spacing in characters. Default 4.

    Examples
    --------
    ::

        settings = DisplaySettings.make()
        settings.panel_border_style = 'green'
        user.display_settings = settings
    """

    __base_flags__ = Flags.MUTABLE

    # ---------- ---------- ---------- ---------- console
    console_width: int = TypedProperty('int', default=150, doc="""
        Maximum width for console output in characters.
        """)

    # ---------- ---------- ---------- ---------- property
    property_style: str = TypedProperty('string', default='bold bright_yellow', doc="""
        Rich style string for property labels in forms.
        """)

    # ---------- ---------- ---------- ---------- panel
    panel_border_style: str = TypedProperty('string', default='bright_cyan')
    panel_box: str = TypedProperty('string', default='ROUNDED', doc="""
        Box style name for panel borders, an attribute name of ``rich.box``
        such as 'ROUNDED', 'SQUARE', 'DOUBLE' or 'ASCII'.
        """)
    panel_title_align: str = TypedProperty('string', default='center')

    # ---------- ---------- ---------- ---------- table
    table_header_style: str | None = TypedProperty('null|string', default='bold bright_yellow')
    table_round_floats: int | None = TypedProperty('null|int', default=None, doc="""
        Number of decimal places for float columns, None for full precision.
        """)
    table_spacing: int = TypedProperty('int', default=4)


class Displayable:
    """
    Mixin rendering a DTO with Rich.

    Integrates with Rich's protocol (``__rich__``) and provides string output
    (``__str__``), so that instances print nicely both in Rich-aware and
    standard contexts.

    Examples
    --------
    ::

        class UserData(Displayable, DataTransferObject):
            first_name = TypedProperty('string')
            children = TypedProperty('UserData[]', default=[])

        print(UserData.make({'first_name': 'Ada'}))
    """

    # ========== ========== ========== ========== ========== special methods
    def __str__(self) -> str:
        """
        String representation with Rich formatting.

        Output includes ANSI codes (force_terminal=True). Width is controlled
        by ``display_settings.console_width``.
        """
        string_io = StringIO()
        console = Console(file=string_io,
                          force_terminal=True,
                          width=self.display_settings.console_width)

        console.print(self._display_panel())

        return string_io.getvalue()

    def __rich__(self) -> RenderableType:
        return self._display_panel()

    # ========== ========== ========== ========== ========== protected methods
    def _title(self) -> Text:
        return Text(type(self).__name__)

    def _content(self) -> RenderableType:
        return self._format_properties(self.get_defined_properties())

    def _format_value(self, value: Any) -> RenderableType:

        if is_dto(value):
            return self._format_properties(value.get_defined_properties())

        if isinstance(value, (list, tuple)) and value and all(is_dto(item) for item in value):
            frame = pandas.DataFrame([self._table_row(item) for item in value])
            return self.format_as_table(frame)

        return escape(str(value))

    @staticmethod
    def _table_row(item: DataTransferObject) -> dict[str, Any]:
        try:
            return item.to_array()
        except SerializationUnsupportedError:
            # display only, values without data form are shown as text
            return {name: str(value) for name, value in item.get_defined_properties().items()}

    def _format_properties(self, properties: dict[str, Any]) -> Table:
        return self.format_as_form({name: self._format_value(value) for name, value in properties.items()})

    def _display_panel(self) -> Panel:
        """Combine ``_title`` and ``_content`` with the display settings."""
        return Panel(
            self._content(),
            title=self._title(),
            border_style=self.display_settings.panel_border_style,
            title_align=self.display_settings.panel_title_align,
            expand=False,
            box=getattr(box, self.display_settings.panel_box)
        )

    # ========== ========== ========== ========== ========== public methods
    def format_as_form(self, data: dict[str, RenderableType]) -> Table:
        """
        Format data as a key-value form.

        Keys get ':' appended and use ``property_style``.
        """
        form = Table.grid(padding=(0, 4), expand=False)

        form.add_column(justify='left', style=self.display_settings.property_style)
        form.add_column(justify='left', style=None)

        for prop, value in data.items():
            form.add_row(f'{prop}:', value)

        return form

    def format_as_table(self, frame: pandas.DataFrame, max_rows: int = 31) -> Table:
        """
        Format a DataFrame as a Rich table.

        Parameters
        ----------
        frame : pandas.DataFrame
            Data to display.
        max_rows : int, optional
            Max rows before truncation. Default 31.

        Returns
        -------
        Table
            Numeric columns right aligned, everything else left aligned.

        Notes
        -----
        Above ``max_rows``, shows the first n/2 rows, '...', then the last n/2
        rows.
        """
        _frame = frame.copy()
        columns = _frame.columns

        table = Table.grid(padding=(0, self.display_settings.table_spacing), expand=False)

        for column in columns:
            if pandas.api.types.is_numeric_dtype(_frame[column]) and not pandas.api.types.is_bool_dtype(_frame[column]):
                table.add_column(justify='right')
            else:
                table.add_column(justify='left')

        table.add_row(*(Align(escape(str(col)), 'center') for col in columns),
                      style=self.display_settings.table_header_style)

        # ---------- ---------- ---------- ---------- rounding floats
        round_floats = self.display_settings.table_round_floats

        if round_floats is not None:
            for col in _frame.select_dtypes(include='float').columns:
                _frame[col] = _frame[col].apply(lambda val: f'{val:.{round_floats}f}')

        # ---------- ---------- ---------- ---------- populate table
        __frame = _frame.astype(str)

        if len(__frame) <= max_rows:
            for _, row in __frame.iterrows():
                table.add_row(*(escape(value) for value in row.values))

        else:
            n_rows: int = (max_rows - 1) // 2

            for _, row in __frame.head(n_rows).iterrows():
                table.add_row(*(escape(value) for value in row.values))

            table.add_row(*(Align.center('...') for _ in columns))

            for _, row in __frame.tail(n_rows).iterrows():
                table.add_row(*(escape(value) for value in row.values))

        return table

    def to_html(self) -> str:
        """Export the display as HTML with inline styles."""
        console = Console(record=True, file=StringIO(), width=self.display_settings.console_width)
        console.print(self)

        return console.export_html()

    def to_svg(self) -> str:
        """Export the display as SVG."""
        console = Console(record=True, file=StringIO(), width=self.display_settings.console_width)
        console.print(self)

        return console.export_svg()

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def display_settings(self) -> DisplaySettings:
        """
        Display configuration of this object.

        Each instance gets its own ``DisplaySettings`` on first access, so
        settings can be customized per object. Assign the same settings to
        several objects to share them.
        """
        settings = self.__dict__.get('_display_settings')

        if settings is None:
            settings = DisplaySettings.make()
            self.__dict__['_display_settings'] = settings

        return settings

    @display_settings.setter
    def display_settings(self, settings: DisplaySettings) -> None:
        if not isinstance(settings, DisplaySettings):
            raise TypeError(f'Expected DisplaySettings, given {type(settings).__name__} instead')

        self.__dict__['_display_settings'] = settings
