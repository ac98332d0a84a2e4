"""Authentication resolution.

Turns a credential specifier into the value of an ``Authorization``
header. Secrets live in an external credential store; creating a missing
token or asking for a password is delegated to a caller-supplied
provider so this module never performs interactive I/O.
"""

import base64
from typing import Protocol

import structlog

from .errors import MissingCredentialsError
from .types import AuthMode, Credential, Identity

logger = structlog.get_logger(__name__)

DEFAULT_IDENTITY = "hubrest"


class CredentialStore(Protocol):
    """Persistent secret storage keyed by host and user."""

    def search(self, host: str, user: str) -> str | None: ...

    def forget(self, host: str, user: str) -> None: ...

    def save(self, host: str, user: str, secret: str) -> None: ...


class UsernameResolver(Protocol):
    """Supplies the default username for a host."""

    def resolve(self, host: str) -> str: ...


class CredentialProvider(Protocol):
    """Obtains credentials the store does not have yet.

    Implementations may prompt the user and are expected to save what
    they obtain in the credential store themselves.
    """

    def create_token(self, host: str, username: str, identity: str) -> str | None: ...

    def request_password(self, host: str, username: str) -> str | None: ...


class StaticUsernameResolver:
    """UsernameResolver that always answers with the same name."""

    def __init__(self, username: str):
        self.username = username

    def resolve(self, host: str) -> str:  # noqa: ARG002
        return self.username


def identity_key(username: str, identity: str) -> str:
    """Compose the store key for a token: ``username^identity``."""
    return f"{username}^{identity}"


class AuthResolver:
    """Resolves credential specifiers to Authorization header values."""

    def __init__(
        self,
        store: CredentialStore | None = None,
        usernames: UsernameResolver | None = None,
        provider: CredentialProvider | None = None,
        default_identity: str = DEFAULT_IDENTITY,
    ):
        self.store = store
        self.usernames = usernames
        self.provider = provider
        self.default_identity = default_identity

    def resolve(
        self,
        host: str,
        credential: Credential = None,
        username: str | None = None,
    ) -> str | None:
        """Return the Authorization header value for a request.

        Args:
            host: API host the request goes to.
            credential: ``AuthMode.NONE`` for no authentication,
                ``AuthMode.BASIC`` for basic auth, a string used verbatim
                as a token, an Identity naming a stored token, or ``None``
                for the default identity.
            username: Explicit username, otherwise asked of the resolver.

        Returns:
            The header value, or ``None`` for ``AuthMode.NONE``.

        Raises:
            TypeError: If ``credential`` is of an unsupported type.
            MissingCredentialsError: If a username or secret cannot be found.
        """
        if credential is AuthMode.NONE:
            return None
        if credential is AuthMode.BASIC:
            user = self._username(host, username)
            password = self._basic_password(host, user)
            pair = base64.b64encode(f"{user}:{password}".encode()).decode("ascii")
            return f"Basic {pair}"
        if isinstance(credential, str):
            return f"token {credential}"
        if credential is None:
            return f"token {self._token(host, username, self.default_identity)}"
        if isinstance(credential, Identity):
            return f"token {self._token(host, username, credential.name)}"

        msg = f"Unsupported credential specifier: {credential!r}"
        raise TypeError(msg)

    def _username(self, host: str, username: str | None) -> str:
        if username:
            return username
        if self.usernames is None:
            msg = f"No username given and no resolver configured for {host}"
            raise MissingCredentialsError(msg)
        return self.usernames.resolve(host)

    def _lookup(self, host: str, user: str) -> str | None:
        if self.store is None:
            return None
        secret = self.store.search(host, user)
        if secret is None:
            # Drop any cached miss so a secret saved by the provider is
            # found on the next call.
            self.store.forget(host, user)
        return secret

    def _token(self, host: str, username: str | None, identity: str) -> str:
        user = self._username(host, username)
        key = identity_key(user, identity)
        token = self._lookup(host, key)
        if token is not None:
            return token

        logger.info("No stored token, asking provider", host=host, user=key)
        if self.provider is not None:
            token = self.provider.create_token(host, user, identity)
        if not token:
            msg = f"No token available for {key} on {host}"
            raise MissingCredentialsError(msg)
        return token

    def _basic_password(self, host: str, username: str) -> str:
        password = self._lookup(host, username)
        if password is not None:
            return password

        logger.info("No stored password, asking provider", host=host, user=username)
        if self.provider is not None:
            password = self.provider.request_password(host, username)
        if not password:
            msg = f"No password available for {username} on {host}"
            raise MissingCredentialsError(msg)
        return password
