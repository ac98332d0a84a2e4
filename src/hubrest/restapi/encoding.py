"""Query string and JSON body encoding.

Encoding is deterministic: the same ordered parameters always produce the
same query string, which the pagination loop relies on when it re-encodes
parameters for each follow-up page.
"""

import json
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

from .errors import ResponseDecodeError


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_params(params: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> str:
    """Encode parameters as ``key=value&...`` with both sides percent-encoded.

    Args:
        params: Mapping or ordered sequence of key/value pairs.

    Returns:
        The query string, or an empty string when there are no parameters.
    """
    items = params.items() if isinstance(params, Mapping) else params
    return "&".join(
        f"{quote(str(key), safe='')}={quote(_format_value(value), safe='')}"
        for key, value in items
    )


def encode_body(body: Any) -> bytes | None:
    """Encode a request body as UTF-8 JSON, or ``None`` when absent."""
    if body is None:
        return None
    return json.dumps(body, ensure_ascii=False).encode("utf-8")


def _normalize(value: Any) -> Any:
    # JSON false and null both mean "absent".
    if value is False or value is None:
        return None
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize(v) for v in value]
    return value


def decode_json(content: bytes) -> Any:
    """Decode a JSON response body.

    Objects become dicts (key order kept), arrays become lists, and both
    ``false`` and ``null`` become ``None``. An empty body decodes to
    ``None``.

    Raises:
        ResponseDecodeError: If the body is not valid UTF-8 JSON.
    """
    try:
        text = content.decode("utf-8")
        if not text.strip():
            return None
        return _normalize(json.loads(text))
    except (UnicodeDecodeError, json.JSONDecodeError) as err:
        msg = f"Failed to decode JSON response body: {err}"
        raise ResponseDecodeError(msg) from err
