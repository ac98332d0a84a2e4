"""Response parsing: header block, Link relations and body decoding.

GitHub-style pagination advertises follow-up pages in a ``Link`` header:

    <https://api.github.com/user/repos?page=2>; rel="next",
    <https://api.github.com/user/repos?page=5>; rel="last"

The ``page`` query value of the ``rel="next"`` URL is the continuation
token for the next request.
"""

import re
from collections.abc import Iterable

import httpx
import structlog

from .errors import ResponseDecodeError, TransportInvariantError
from .types import PAGE_PARAM, Decoder, Response

logger = structlog.get_logger(__name__)

# RFC 7230 token characters for header names
_HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_LINK_ENTRY = re.compile(r'^\s*<([^>]*)>\s*;\s*(.*)$')
_REL = re.compile(r'rel\s*=\s*"?([^";]+)"?')
# Entries are separated by commas outside the <url> part
_LINK_SEPARATOR = re.compile(r",\s*(?=<)")

MIN_STATUS = 100
MAX_STATUS = 599


def parse_headers(raw_headers: Iterable[tuple[bytes | str, bytes | str]]) -> tuple:
    """Decode raw header pairs, keeping receipt order and duplicates.

    Raises:
        TransportInvariantError: If a header name is not a valid token.
    """
    headers = []
    for name, value in raw_headers:
        if isinstance(name, bytes):
            name = name.decode("latin-1")
        if isinstance(value, bytes):
            value = value.decode("latin-1")
        if not _HEADER_NAME.match(name):
            msg = f"Malformed header line from transport: {name!r}"
            raise TransportInvariantError(msg)
        headers.append((name, value.strip()))
    return tuple(headers)


def parse_link_header(value: str | None) -> dict[str, str]:
    """Map each relation in a Link header to its URL.

    The first URL wins when a relation appears more than once. Entries
    that cannot be parsed are skipped.
    """
    relations: dict[str, str] = {}
    if not value:
        return relations

    for part in _LINK_SEPARATOR.split(value):
        match = _LINK_ENTRY.match(part)
        if not match:
            logger.debug("Skipping unparseable Link entry", entry=part.strip())
            continue
        url, attrs = match.groups()
        rel = _REL.search(attrs)
        if not rel:
            continue
        # rel may hold several space separated relation types
        for name in rel.group(1).split():
            relations.setdefault(name, url)
    return relations


def next_page_token(relations: dict[str, str]) -> str | None:
    """Extract the ``page`` query value from the ``next`` relation, if any."""
    url = relations.get("next")
    if not url:
        return None
    try:
        return httpx.URL(url).params.get(PAGE_PARAM)
    except httpx.InvalidURL:
        logger.warning("Ignoring invalid next link", url=url)
        return None


def parse_response(
    status: int,
    raw_headers: Iterable[tuple[bytes | str, bytes | str]],
    content: bytes,
    decoder: Decoder,
    *,
    strict: bool = True,
) -> Response:
    """Build a Response from the pieces handed back by the transport.

    Args:
        status: HTTP status code.
        raw_headers: Header name/value pairs in receipt order.
        content: The full response body.
        decoder: Callable turning the body bytes into a value.
        strict: When False, a body that fails to decode yields ``None``
            instead of raising. Used for error responses.

    Raises:
        TransportInvariantError: If the status or headers are malformed.
        ResponseDecodeError: If ``strict`` and the body cannot be decoded.
    """
    if not MIN_STATUS <= status <= MAX_STATUS:
        msg = f"Transport returned invalid status code {status}"
        raise TransportInvariantError(msg)

    headers = parse_headers(raw_headers)
    link = next((v for k, v in headers if k.lower() == "link"), None)
    relations = parse_link_header(link)

    try:
        body = decoder(content) if content else None
    except (ResponseDecodeError, ValueError):
        if strict:
            raise
        logger.debug("Discarding undecodable error body", status=status)
        body = None

    return Response(
        status=status,
        headers=headers,
        body=body,
        link=link,
        links=relations,
        next_page=next_page_token(relations),
    )
