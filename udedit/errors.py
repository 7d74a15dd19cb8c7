"""
Exceptions raised by udedit.

Structural problems found by sentence validation are *returned* as
``SentenceValidationResult`` values; the classes below are for data that
cannot be represented at all or for builder calls whose preconditions fail.
"""


class UDEditError(Exception):
    """Base class for udedit errors."""


class ConlluFormatError(UDEditError, ValueError):
    """A value or a line does not follow the CoNLL-U format."""


class MalformedDepError(UDEditError, ValueError):
    """An enhanced dependency head has an impossible shape."""


class BuilderError(UDEditError, ValueError):
    """A builder operation was called with arguments it cannot apply."""
