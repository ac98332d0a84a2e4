"""REST API client.

Provides the request dispatcher with credential resolution, typed error
classification, transparent pagination and an availability poller.
"""

import threading
import time
from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from .auth import (
    DEFAULT_IDENTITY,
    AuthResolver,
    CredentialProvider,
    CredentialStore,
    UsernameResolver,
)
from .encoding import decode_json, encode_body
from .errors import HttpError, PollTimeoutError, error_for_status
from .links import parse_response
from .types import (
    Credential,
    Decoder,
    Failure,
    Outcome,
    Request,
    Response,
    Success,
)

logger = structlog.get_logger(__name__)

DEFAULT_HOST = "api.github.com"

DEFAULT_TIMEOUT = 30.0

# Availability poller backoff, in seconds
POLL_INITIAL_DELAY = 0.5
POLL_MAX_DELAY = 128.0


def classify(request: Request, response: Response) -> HttpError | None:
    """Return the error for a non-2xx response, or ``None`` on success."""
    payload = encode_body(request.body)
    return error_for_status(
        response.status,
        request.method,
        request.resource,
        params=request.query,
        body=payload.decode("utf-8") if payload is not None else None,
        response_body=response.body,
    )


def _merge(accumulated: Any, page: Any) -> Any:
    if page is None:
        return accumulated
    if accumulated is None:
        return page
    if not isinstance(accumulated, list) or not isinstance(page, list):
        msg = (
            "Paginated responses must be lists, got "
            f"{type(accumulated).__name__} and {type(page).__name__}"
        )
        raise TypeError(msg)
    return accumulated + page


class HubRestClient:
    """HTTP client for a JSON REST API.

    Handles authentication, issues blocking requests, classifies failures
    and follows pagination links. Each call, including every page of a
    paginated call, is issued sequentially on the calling thread.

    Thread-safe through thread-local storage of httpx.Client instances.
    Can be used as a context manager for automatic cleanup.
    """

    def __init__(
        self,
        default_host: str = DEFAULT_HOST,
        *,
        store: CredentialStore | None = None,
        usernames: UsernameResolver | None = None,
        provider: CredentialProvider | None = None,
        default_identity: str = DEFAULT_IDENTITY,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the REST API client.

        Args:
            default_host: Host used when a call names none (e.g., "api.github.com").
            store: Credential store queried for tokens and passwords.
            usernames: Resolver for the default username of a host.
            provider: Fallback for credentials missing from the store.
            default_identity: Identity name used when no credential is given.
            timeout: Request timeout in seconds (default: 30.0).
            user_agent: Optional User-Agent header value.
            transport: Optional httpx transport, mainly for testing.

        Raises:
            ValueError: If default_host is empty or timeout is not positive.
        """
        if not default_host:
            msg = "default_host cannot be empty"
            raise ValueError(msg)
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)

        self.default_host = default_host
        self.auth = AuthResolver(
            store=store,
            usernames=usernames,
            provider=provider,
            default_identity=default_identity,
        )
        self._timeout = timeout
        self._transport = transport

        self._headers = {"Accept": "application/json"}
        if user_agent:
            self._headers["User-Agent"] = user_agent

        # Use thread-local storage for httpx.Client (thread safety)
        self._local = threading.local()

    @property
    def client(self) -> httpx.Client:
        """Get or create thread-local httpx client.

        Each thread gets its own httpx.Client instance for thread safety.
        Clients are created lazily and reused within the same thread.

        Returns:
            Thread-local httpx.Client instance.
        """
        if not hasattr(self._local, "client") or self._local.client.is_closed:
            self._local.client = httpx.Client(
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._local.client

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the thread-local HTTP client if open."""
        if hasattr(self._local, "client") and not self._local.client.is_closed:
            self._local.client.close()

    def _fetch(self, request: Request, authorization: str | None) -> Response:
        """Issue one blocking call and parse the response.

        The streamed response is closed before returning, whether parsing
        succeeds or raises.

        Raises:
            httpx.HTTPError: If the transport fails.
            TransportInvariantError: If the response is malformed.
            ResponseDecodeError: If a 2xx body cannot be decoded.
        """
        headers = [("Content-Type", "application/json")]
        if authorization is not None:
            headers.append(("Authorization", authorization))
        headers.extend(request.headers)

        start_time = time.time()
        try:
            logger.debug(
                "Making API request",
                method=request.method,
                url=request.url,
                params=request.query,
            )
            with self.client.stream(
                request.method,
                request.url,
                headers=headers,
                content=encode_body(request.body),
            ) as raw:
                content = raw.read()
                response = parse_response(
                    raw.status_code,
                    raw.headers.raw,
                    content,
                    request.decoder,
                    strict=raw.is_success,
                )
        except httpx.HTTPError:
            duration = time.time() - start_time
            logger.exception(
                "API request failed",
                method=request.method,
                url=request.url,
                duration_seconds=round(duration, 3),
            )
            raise

        duration = time.time() - start_time
        logger.debug(
            "API request completed",
            status=response.status,
            duration_seconds=round(duration, 3),
        )
        return response

    def send(self, request: Request) -> Outcome:
        """Dispatch a request, following pagination when requested.

        Authorization is resolved once and reused for every page. Pages are
        requested one after another and their list bodies concatenated in
        order. Every page re-sends the original method, body and headers.
        With ``suppress_errors`` a failing page's list body is merged like
        any other and its next link is still followed; otherwise the first
        failure ends the call.

        Args:
            request: The request to send.

        Returns:
            Success with the (merged) body, or Failure carrying the classified
            error of the first page that did not succeed.

        Raises:
            httpx.HTTPError: If the transport fails.
            TransportInvariantError: If a response is malformed.
            MissingCredentialsError: If credentials cannot be resolved.
            TypeError: If a paginated endpoint does not return lists.
        """
        authorization = self.auth.resolve(
            request.host, request.credential, request.username
        )

        responses: list[Response] = []
        failure: tuple[HttpError, Response] | None = None
        value: Any = None
        current = request
        while True:
            response = self._fetch(current, authorization)
            responses.append(response)

            if error := classify(current, response):
                logger.warning(
                    "API returned error status",
                    status=response.status,
                    method=current.method,
                    resource=current.resource,
                )
                if not request.suppress_errors:
                    return Failure(
                        error=error, response=response, value=response.body
                    )
                failure = failure or (error, response)

            # Error pages usually carry a message object rather than a page
            if error is None or isinstance(response.body, list):
                value = _merge(value, response.body)
            if not (request.paginate and response.next_page):
                break

            logger.debug("Following next page", page=response.next_page)
            current = request.with_page(response.next_page)

        if failure is not None:
            error, response = failure
            if value is None:
                value = response.body
            return Failure(error=error, response=response, value=value)
        return Success(value=value, responses=responses)

    def request(
        self,
        method: str,
        resource: str,
        params: Mapping[str, Any] | None = None,
        *,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        paginate: bool = False,
        suppress_errors: bool = False,
        decoder: Decoder = decode_json,
        username: str | None = None,
        credential: Credential = None,
        host: str | None = None,
    ) -> Any:
        """Make an API request and return the decoded body.

        Args:
            method: HTTP method (GET, PUT, HEAD, POST, PATCH or DELETE).
            resource: Resource path, starting with "/".
            params: Optional query parameters, encoded in order.
            body: Optional value sent as the JSON request body.
            headers: Extra request headers.
            paginate: Follow ``rel="next"`` links and merge all pages.
            suppress_errors: Return the error response body instead of
                raising a classified error.
            decoder: Callable decoding the response body bytes.
            username: Explicit username for credential lookup.
            credential: Credential specifier, see AuthResolver.resolve.
            host: API host, defaults to the client's default host.

        Returns:
            The decoded (and, when paginating, merged) response body.

        Raises:
            HttpError: On a non-2xx status unless ``suppress_errors``.
        """
        req = Request.build(
            method,
            resource,
            host or self.default_host,
            params=params,
            body=body,
            headers=headers,
            paginate=paginate,
            suppress_errors=suppress_errors,
            decoder=decoder,
            username=username,
            credential=credential,
        )
        outcome = self.send(req)
        if isinstance(outcome, Failure) and not req.suppress_errors:
            raise outcome.error
        return outcome.value

    def get(
        self,
        resource: str,
        params: Mapping[str, Any] | None = None,
        **kwargs,
    ) -> Any:
        """Make a GET request. See :meth:`request`."""
        return self.request("GET", resource, params, **kwargs)

    def put(
        self,
        resource: str,
        params: Mapping[str, Any] | None = None,
        **kwargs,
    ) -> Any:
        """Make a PUT request. See :meth:`request`."""
        return self.request("PUT", resource, params, **kwargs)

    def head(
        self,
        resource: str,
        params: Mapping[str, Any] | None = None,
        **kwargs,
    ) -> Any:
        """Make a HEAD request. See :meth:`request`."""
        return self.request("HEAD", resource, params, **kwargs)

    def post(
        self,
        resource: str,
        params: Mapping[str, Any] | None = None,
        **kwargs,
    ) -> Any:
        """Make a POST request. See :meth:`request`."""
        return self.request("POST", resource, params, **kwargs)

    def patch(
        self,
        resource: str,
        params: Mapping[str, Any] | None = None,
        **kwargs,
    ) -> Any:
        """Make a PATCH request. See :meth:`request`."""
        return self.request("PATCH", resource, params, **kwargs)

    def delete(
        self,
        resource: str,
        params: Mapping[str, Any] | None = None,
        **kwargs,
    ) -> Any:
        """Make a DELETE request. See :meth:`request`."""
        return self.request("DELETE", resource, params, **kwargs)

    def wait(
        self,
        resource: str,
        *,
        username: str | None = None,
        credential: Credential = None,
        host: str | None = None,
        initial_delay: float = POLL_INITIAL_DELAY,
        max_delay: float = POLL_MAX_DELAY,
    ) -> Any:
        """Poll a resource until a GET on it succeeds.

        Failed attempts are retried with a doubling delay starting from
        ``initial_delay * 2``. The wait is a plain ``time.sleep`` and can be
        interrupted with KeyboardInterrupt.

        Args:
            resource: Resource path to poll.
            username: Explicit username for credential lookup.
            credential: Credential specifier, see AuthResolver.resolve.
            host: API host, defaults to the client's default host.
            initial_delay: Seed for the backoff delay in seconds.
            max_delay: Delay at which polling gives up.

        Returns:
            The decoded body of the first successful response.

        Raises:
            PollTimeoutError: Once the next delay would reach ``max_delay``.
        """
        req = Request.build(
            "GET",
            resource,
            host or self.default_host,
            suppress_errors=True,
            username=username,
            credential=credential,
        )
        delay = initial_delay
        total_wait = 0.0
        while True:
            outcome = self.send(req)
            if isinstance(outcome, Success):
                return outcome.value

            delay *= 2
            if delay >= max_delay:
                raise PollTimeoutError(resource, total_wait)
            logger.info(
                "Waiting for resource",
                resource=resource,
                total_wait=total_wait,
                delay=delay,
            )
            time.sleep(delay)
            total_wait += delay
