#  -*- coding: utf-8 -*-
"""
Behaviour flags for data transfer objects.

Flags combine orthogonally through ``|`` and are fixed on an instance for its
whole lifetime. ``NULLABLE`` and ``NOT_NULLABLE`` are the exception: they are
only meaningful for a single validation call.
"""

from __future__ import annotations

from enum import IntFlag


class Flags(IntFlag):
    """
    Open bit-set controlling construction, access and serialization.

    Examples
    --------
    >>> flags = Flags.PARTIAL | Flags.MUTABLE
    >>> Flags.MUTABLE in flags
    True
    """

    NONE = 0

    # only fill what is provided, no defaults and no required check
    PARTIAL = 1 << 0

    IGNORE_UNKNOWN_PROPERTIES = 1 << 1

    # objects are immutable unless made with this flag
    MUTABLE = 1 << 2

    ARRAY_DEFAULT_TO_EMPTY_ARRAY = 1 << 3
    NULLABLE_DEFAULT_TO_NULL = 1 << 4
    BOOL_DEFAULT_TO_FALSE = 1 << 5

    WITH_DEFAULTS = 1 << 6

    TRACK_UNKNOWN_PROPERTIES = 1 << 7

    # call scoped
    NOT_NULLABLE = 1 << 8
    NULLABLE = 1 << 9


NONE = Flags.NONE
PARTIAL = Flags.PARTIAL
IGNORE_UNKNOWN_PROPERTIES = Flags.IGNORE_UNKNOWN_PROPERTIES
MUTABLE = Flags.MUTABLE
ARRAY_DEFAULT_TO_EMPTY_ARRAY = Flags.ARRAY_DEFAULT_TO_EMPTY_ARRAY
NULLABLE_DEFAULT_TO_NULL = Flags.NULLABLE_DEFAULT_TO_NULL
BOOL_DEFAULT_TO_FALSE = Flags.BOOL_DEFAULT_TO_FALSE
WITH_DEFAULTS = Flags.WITH_DEFAULTS
TRACK_UNKNOWN_PROPERTIES = Flags.TRACK_UNKNOWN_PROPERTIES
NOT_NULLABLE = Flags.NOT_NULLABLE
NULLABLE = Flags.NULLABLE
