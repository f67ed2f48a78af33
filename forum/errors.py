from __future__ import annotations


class ForumError(Exception):
    """Base class for every error raised by the forum package."""


class ConfigError(ForumError):
    pass


class StoreError(ForumError):
    """Storage I/O or integrity failure; fatal for the current operation."""


class DuplicateKeyError(StoreError):
    pass


class ForeignKeyViolationError(StoreError):
    pass


class NotFoundError(ForumError, LookupError):
    """Unknown conversation id or agent index out of range."""


class EmptyResponseError(ForumError):
    """The provider answered with no text."""
