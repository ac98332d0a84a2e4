"""Thread-safe in-memory credential store with a negative cache.

Remembers lookups that found nothing so repeated misses do not hit the
backing secrets again. A miss stays cached until it is explicitly
forgotten or a secret is saved for the same key.
"""

from threading import Lock

import structlog

logger = structlog.get_logger()


class MemoryCredentialStore:
    """Credential store keeping secrets in process memory.

    Implements the CredentialStore protocol used by AuthResolver.
    """

    def __init__(self, secrets: dict[tuple[str, str], str] | None = None):
        """Initialize the store.

        Args:
            secrets: Optional initial secrets keyed by ``(host, user)``.
        """
        self._lock = Lock()
        self._secrets: dict[tuple[str, str], str] = dict(secrets or {})
        self._misses: set[tuple[str, str]] = set()

    def search(self, host: str, user: str) -> str | None:
        """Return the secret for ``(host, user)``, or ``None``.

        A miss is cached; later searches for the same key return ``None``
        without consulting the stored secrets until the key is forgotten.
        """
        key = (host, user)
        with self._lock:
            if key in self._misses:
                logger.debug("Credential cache miss (cached)", host=host, user=user)
                return None
            secret = self._secrets.get(key)
            if secret is None:
                self._misses.add(key)
                logger.debug("Credential not found", host=host, user=user)
            return secret

    def forget(self, host: str, user: str) -> None:
        """Drop any cached miss for ``(host, user)``."""
        with self._lock:
            self._misses.discard((host, user))

    def save(self, host: str, user: str, secret: str) -> None:
        """Store ``secret`` for ``(host, user)``, replacing any cached miss."""
        with self._lock:
            self._secrets[(host, user)] = secret
            self._misses.discard((host, user))
        logger.debug("Saved credential", host=host, user=user)
