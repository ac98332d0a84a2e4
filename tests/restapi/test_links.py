"""Tests for response parsing: headers, Link relations and body decoding."""

import pytest

from hubrest.restapi import encoding, errors, links

NEXT_AND_LAST = (
    '<https://api.github.com/user/repos?per_page=2&page=2>; rel="next", '
    '<https://api.github.com/user/repos?per_page=2&page=5>; rel="last"'
)

# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------


def test_parse_headers_keeps_order_and_duplicates():
    """Repeated header names append instead of overwriting."""
    headers = links.parse_headers(
        [
            (b"Set-Cookie", b"a=1"),
            (b"Content-Type", b"application/json"),
            (b"Set-Cookie", b"b=2"),
        ]
    )
    assert headers == (
        ("Set-Cookie", "a=1"),
        ("Content-Type", "application/json"),
        ("Set-Cookie", "b=2"),
    )


def test_parse_headers_rejects_malformed_name():
    """A header name that is not a token violates the transport contract."""
    with pytest.raises(errors.TransportInvariantError):
        links.parse_headers([(b"Bad Header", b"x")])


# ---------------------------------------------------------------------------
# Link header
# ---------------------------------------------------------------------------


def test_parse_link_header_maps_relations():
    """Each rel maps to its URL."""
    relations = links.parse_link_header(NEXT_AND_LAST)
    assert relations == {
        "next": "https://api.github.com/user/repos?per_page=2&page=2",
        "last": "https://api.github.com/user/repos?per_page=2&page=5",
    }


def test_parse_link_header_missing_is_empty():
    """No Link header means no relations."""
    assert links.parse_link_header(None) == {}
    assert links.parse_link_header("") == {}


def test_parse_link_header_skips_garbage_entries():
    """Entries without <url> are ignored."""
    relations = links.parse_link_header(
        'garbage, <https://x.test/a?page=3>; rel="next"'
    )
    assert relations == {"next": "https://x.test/a?page=3"}


def test_parse_link_header_keeps_commas_inside_urls():
    """A comma inside <url> does not split the entry."""
    relations = links.parse_link_header(
        '<https://x.test/search?q=a,b&page=2>; rel="next", '
        '<https://x.test/search?q=a,b&page=9>; rel="last"'
    )
    assert relations["next"] == "https://x.test/search?q=a,b&page=2"
    assert links.next_page_token(relations) == "2"


def test_next_page_token_extracts_page_value():
    """The continuation token is the page query value of the next link."""
    relations = links.parse_link_header(NEXT_AND_LAST)
    assert links.next_page_token(relations) == "2"


def test_next_page_token_absent_without_next():
    """A Link header with only prev/first has no continuation."""
    relations = links.parse_link_header(
        '<https://x.test/a?page=1>; rel="prev", <https://x.test/a?page=1>; rel="first"'
    )
    assert links.next_page_token(relations) is None


def test_next_page_token_absent_without_page_param():
    """A next link lacking a page parameter has no continuation."""
    relations = links.parse_link_header('<https://x.test/a?cursor=abc>; rel="next"')
    assert links.next_page_token(relations) is None


# ---------------------------------------------------------------------------
# parse_response
# ---------------------------------------------------------------------------


def test_parse_response_collects_link_and_next_page():
    """Link header value, relations and continuation token are exposed."""
    response = links.parse_response(
        200,
        [(b"Content-Type", b"application/json"), (b"Link", NEXT_AND_LAST.encode())],
        b"[1, 2]",
        encoding.decode_json,
    )
    assert response.status == 200
    assert response.body == [1, 2]
    assert response.link == NEXT_AND_LAST
    assert response.next_page == "2"
    assert response.header("content-type") == "application/json"


def test_parse_response_empty_body_is_absent():
    """An empty body decodes to None without invoking the decoder."""
    response = links.parse_response(204, [], b"", encoding.decode_json)
    assert response.body is None
    assert response.next_page is None


def test_parse_response_uses_custom_decoder():
    """The configured decoder receives the raw body bytes."""
    response = links.parse_response(200, [], b"plain text", lambda b: b.decode())
    assert response.body == "plain text"


def test_parse_response_invalid_status_is_transport_error():
    """A status outside 100-599 is an invariant violation."""
    with pytest.raises(errors.TransportInvariantError):
        links.parse_response(42, [], b"", encoding.decode_json)


def test_parse_response_strict_raises_on_bad_body():
    """A successful response with an undecodable body raises."""
    with pytest.raises(errors.ResponseDecodeError):
        links.parse_response(200, [], b"<html>", encoding.decode_json)


def test_parse_response_lenient_discards_bad_body():
    """Error responses with undecodable bodies decode to None."""
    response = links.parse_response(
        502, [], b"<html>", encoding.decode_json, strict=False
    )
    assert response.body is None
