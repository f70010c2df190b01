"""Format errors surfaced to callers as distinct failure reasons."""

from __future__ import annotations


class TableFormatError(ValueError):
    """The input was readable but could not be treated as a table."""


class UnsupportedFormatError(TableFormatError):
    pass


class EmptyTableError(TableFormatError):
    pass


class HeaderNotFoundError(TableFormatError):
    pass
