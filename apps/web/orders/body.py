"""Body coercion - JSON, URL-encoded form or empty, normalized to one map."""

import json
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs

from bridge_schemas import BodyKind, ParsedBody

from apps.web.core.exceptions import ValidationError


def _parse_form(text: str) -> dict[str, Any]:
    """Parse URL-encoded form text; repeated keys keep every value."""
    data: dict[str, Any] = {}
    for key, values in parse_qs(text, keep_blank_values=True).items():
        data[key] = values[0] if len(values) == 1 else values
    return data


def parse_body(body: bytes | str | Mapping[str, Any] | None) -> ParsedBody:
    """
    Decode a request body of unknown encoding.

    Structured input is used as-is. Bytes are decoded as UTF-8, then parsed as
    JSON, falling back to URL-encoded form parsing. Whitespace-only bodies are
    empty.

    Raises:
        ValidationError: If bytes are not UTF-8 or JSON is not an object.
    """
    if body is None:
        return ParsedBody(kind=BodyKind.EMPTY)
    if isinstance(body, Mapping):
        data = dict(body)
        return ParsedBody(kind=BodyKind.JSON if data else BodyKind.EMPTY, data=data)

    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError("Malformed body: not valid UTF-8") from e
    else:
        text = str(body)

    text = text.strip()
    if not text:
        return ParsedBody(kind=BodyKind.EMPTY)

    try:
        parsed = json.loads(text)
    except ValueError:
        return ParsedBody(kind=BodyKind.FORM, data=_parse_form(text))

    if not isinstance(parsed, dict):
        raise ValidationError("Malformed body: expected a JSON object")
    return ParsedBody(kind=BodyKind.JSON, data=parsed)
