"""
Configuration classes for udedit.
"""

import os
from dataclasses import dataclass
from typing import Optional

from .tokens import XPOSParser

_TRUE_VALUES = ("1", "true", "yes")


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.lower() in _TRUE_VALUES


@dataclass
class ConlluConfig:
    """Options for reading and writing CoNLL-U text."""
    strict: bool = True  # Raise on malformed token lines; when False they are skipped with a warning
    check_ids: bool = True  # Warn when a parsed id disagrees with its position
    encoding: str = "utf-8"
    xpos_parser: Optional[XPOSParser] = None  # None keeps XPOS text verbatim (RawXPOS)

    @classmethod
    def from_env(cls, xpos_parser: Optional[XPOSParser] = None) -> "ConlluConfig":
        """Build a config from ``UDEDIT_*`` environment variables.

        Recognised variables are ``UDEDIT_STRICT``, ``UDEDIT_CHECK_IDS``
        (``1``/``true``/``yes`` enable) and ``UDEDIT_ENCODING``.
        """
        defaults = cls()
        return cls(
            strict=_env_flag("UDEDIT_STRICT", defaults.strict),
            check_ids=_env_flag("UDEDIT_CHECK_IDS", defaults.check_ids),
            encoding=os.environ.get("UDEDIT_ENCODING") or defaults.encoding,
            xpos_parser=xpos_parser,
        )
