"""Error taxonomy and HTTP status classification."""

from typing import Any


class HubRestError(Exception):
    """Base class for all errors raised by hubrest."""


class HttpError(HubRestError):
    """Raised when the API answers with a non-2xx status.

    Carries enough of the originating request to diagnose the failure
    without re-issuing the call.
    """

    status: int | None = None

    def __init__(
        self,
        status: int,
        method: str,
        resource: str,
        params: str = "",
        body: str | None = None,
        response_body: Any = None,
    ):
        self.status = status
        self.method = method
        self.resource = resource
        self.params = params
        self.body = body
        self.response_body = response_body
        super().__init__(f"HTTP {status} for {method} {resource}")


class Moved(HttpError):
    status = 301


class BadRequest(HttpError):
    status = 400


class Unauthorized(HttpError):
    status = 401


class Forbidden(HttpError):
    status = 403


class NotFound(HttpError):
    status = 404


class Unprocessable(HttpError):
    status = 422


class TransportInvariantError(HubRestError):
    """Raised when the transport hands back a malformed response."""


class PollTimeoutError(HubRestError):
    """Raised when a polled resource does not become available in time."""

    def __init__(self, resource: str, total_wait: float):
        self.resource = resource
        self.total_wait = total_wait
        super().__init__(f"Timed out after {total_wait}s waiting for {resource}")


class MissingCredentialsError(HubRestError):
    """Raised when no username, token or password can be obtained."""


class ResponseDecodeError(HubRestError):
    """Raised when a successful response body cannot be decoded."""


_ERRORS_BY_STATUS: dict[int, type[HttpError]] = {
    cls.status: cls
    for cls in (Moved, BadRequest, Unauthorized, Forbidden, NotFound, Unprocessable)
}


def error_for_status(
    status: int,
    method: str,
    resource: str,
    params: str = "",
    body: str | None = None,
    response_body: Any = None,
) -> HttpError | None:
    """Map a status code to an error instance.

    Returns:
        ``None`` for 2xx statuses, the specific subclass for known codes,
        otherwise a generic HttpError carrying the status.
    """
    if 200 <= status < 300:  # noqa: PLR2004
        return None
    cls = _ERRORS_BY_STATUS.get(status, HttpError)
    return cls(status, method, resource, params, body, response_body)
