"""JSON REST API client package.

Provides a blocking HTTP client for token-authenticated JSON REST APIs
that follows ``Link`` header pagination and maps failing status codes to
typed errors.

Exports:
    HubRestClient: HTTP client with authentication, pagination and polling.
    Request, Response, Success, Failure: Call and result types.
    AuthMode, Identity: Credential specifiers.
    AuthResolver: Authorization header resolution.
    errors: Module containing the error taxonomy.
    DEFAULT_HOST: Default API host.
    DEFAULT_TIMEOUT: Default HTTP request timeout.
"""

from . import errors
from .auth import (
    DEFAULT_IDENTITY,
    AuthResolver,
    CredentialProvider,
    CredentialStore,
    StaticUsernameResolver,
    UsernameResolver,
)
from .client import DEFAULT_HOST, DEFAULT_TIMEOUT, HubRestClient, classify
from .encoding import decode_json, encode_body, encode_params
from .errors import (
    BadRequest,
    Forbidden,
    HttpError,
    HubRestError,
    MissingCredentialsError,
    Moved,
    NotFound,
    PollTimeoutError,
    ResponseDecodeError,
    TransportInvariantError,
    Unauthorized,
    Unprocessable,
)
from .types import AuthMode, Failure, Identity, Request, Response, Success

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_IDENTITY",
    "DEFAULT_TIMEOUT",
    "AuthMode",
    "AuthResolver",
    "BadRequest",
    "CredentialProvider",
    "CredentialStore",
    "Failure",
    "Forbidden",
    "HttpError",
    "HubRestClient",
    "HubRestError",
    "Identity",
    "MissingCredentialsError",
    "Moved",
    "NotFound",
    "PollTimeoutError",
    "Request",
    "Response",
    "ResponseDecodeError",
    "StaticUsernameResolver",
    "Success",
    "TransportInvariantError",
    "Unauthorized",
    "Unprocessable",
    "UsernameResolver",
    "classify",
    "decode_json",
    "encode_body",
    "encode_params",
    "errors",
]
