"""Request, response and result types for the REST API engine.

Plain frozen dataclasses. A Request is built once per call and never
mutated; follow-up pages are derived copies. The dispatcher reports each
call as an Outcome, either a Success or a Failure.
"""

import enum
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, TypeAlias

from .encoding import decode_json, encode_params
from .errors import HttpError

METHODS = ("GET", "PUT", "HEAD", "POST", "PATCH", "DELETE")

# Reserved for the continuation engine when paginating.
PAGE_PARAM = "page"

Decoder: TypeAlias = Callable[[bytes], Any]


class AuthMode(enum.Enum):
    """Credential specifiers that are neither a token nor an identity."""

    NONE = "none"
    BASIC = "basic"


@dataclass(frozen=True)
class Identity:
    """A named identity whose token is looked up in the credential store."""

    name: str

    def __post_init__(self):
        if not self.name or "^" in self.name:
            msg = f"Invalid identity name: {self.name!r}"
            raise ValueError(msg)


Credential: TypeAlias = str | Identity | AuthMode | None


def _pairs(items: Mapping[str, Any] | Sequence[tuple[str, Any]] | None) -> tuple:
    if not items:
        return ()
    if isinstance(items, Mapping):
        return tuple(items.items())
    return tuple((k, v) for k, v in items)


@dataclass(frozen=True)
class Request:
    """A single API call, immutable once built.

    ``params`` and ``headers`` accept either a mapping or a sequence of
    pairs and are stored as ordered tuples so the query string encodes
    identically on every page.
    """

    method: str
    resource: str
    host: str
    params: tuple[tuple[str, Any], ...] = ()
    body: Any = None
    headers: tuple[tuple[str, str], ...] = ()
    paginate: bool = False
    suppress_errors: bool = False
    decoder: Decoder = decode_json
    username: str | None = None
    credential: Credential = None

    def __post_init__(self):
        method = self.method.upper()
        if method not in METHODS:
            msg = f"Unsupported HTTP method: {self.method}"
            raise ValueError(msg)
        object.__setattr__(self, "method", method)

        if not self.resource.startswith("/"):
            msg = f"Resource must start with '/': {self.resource!r}"
            raise ValueError(msg)
        if not self.host or "://" in self.host or self.host.startswith("/"):
            msg = f"Invalid host: {self.host!r}"
            raise ValueError(msg)

        params = _pairs(self.params)
        keys = [k for k, _ in params]
        if len(keys) != len(set(keys)):
            msg = "Duplicate query parameter keys"
            raise ValueError(msg)
        object.__setattr__(self, "params", params)
        object.__setattr__(self, "headers", _pairs(self.headers))

    @classmethod
    def build(cls, method: str, resource: str, host: str, **kwargs) -> "Request":
        """Build a caller-facing request, rejecting a reserved ``page`` key."""
        request = cls(method, resource, host, **kwargs)
        if request.paginate and PAGE_PARAM in dict(request.params):
            msg = f"'{PAGE_PARAM}' cannot be set when paginating"
            raise ValueError(msg)
        return request

    @property
    def query(self) -> str:
        return encode_params(self.params)

    @property
    def url(self) -> str:
        url = f"https://{self.host.rstrip('/')}{self.resource}"
        if query := self.query:
            url = f"{url}?{query}"
        return url

    def with_page(self, token: str) -> "Request":
        """Return a copy of this request that asks for page ``token``."""
        params = tuple((k, v) for k, v in self.params if k != PAGE_PARAM)
        return replace(self, params=(*params, (PAGE_PARAM, token)))


@dataclass(frozen=True)
class Response:
    """A parsed HTTP response.

    Headers keep receipt order; a repeated header name appears once per
    occurrence.
    """

    status: int
    headers: tuple[tuple[str, str], ...]
    body: Any = None
    link: str | None = None
    links: Mapping[str, str] = field(default_factory=dict)
    next_page: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300  # noqa: PLR2004

    def header(self, name: str) -> str | None:
        """Return the first value of header ``name``, case-insensitively."""
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None


@dataclass(frozen=True)
class Success:
    """Result of a call whose every page completed with a 2xx status."""

    value: Any
    responses: list[Response] = field(default_factory=list)


@dataclass(frozen=True)
class Failure:
    """Result of a call in which a page ended with a classified HTTP error.

    ``error`` and ``response`` belong to the first failing page. For a
    suppressed call ``value`` holds the bodies of every page fetched,
    failing pages included; otherwise the failing page's decoded body.
    """

    error: HttpError
    response: Response
    value: Any = None


Outcome: TypeAlias = Success | Failure
