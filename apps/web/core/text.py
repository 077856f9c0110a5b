"""Text helpers shared by the tenant resolver, field extractor and matcher."""

import re
from typing import Any

_WHITESPACE = re.compile(r"\s+")


def normalize_string(value: Any) -> str:
    """
    Collapse NBSP and whitespace runs, trim, lower-case.

    None becomes an empty string; anything else goes through ``str()``.
    """
    if value is None:
        return ""
    text = str(value).replace("\u00a0", " ")
    return _WHITESPACE.sub(" ", text).strip().lower()


def as_text(value: Any) -> str:
    """Stringify a loosely-typed payload value, mapping None to ``""``."""
    if value is None:
        return ""
    return str(value).strip()
