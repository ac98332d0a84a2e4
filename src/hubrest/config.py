"""Configuration and logging setup for hubrest."""

import json
import logging
import os
import pathlib
from typing import Any

import pydantic
import structlog

from . import __version__, restapi

CONFIG_ENV_VAR = "HUBREST_CONFIG_PATH"
logger = structlog.get_logger(__name__)


class ClientConfig(pydantic.BaseModel):
    """Configuration for a HubRestClient."""

    default_host: str = pydantic.Field(
        restapi.DEFAULT_HOST,
        description="API host used when a call names none",
        min_length=1,
    )
    default_identity: str = pydantic.Field(
        restapi.DEFAULT_IDENTITY,
        description="Identity name under which tokens are looked up",
        min_length=1,
    )
    username: str | None = pydantic.Field(
        None,
        description="Username used when a call names none",
    )
    timeout: float = pydantic.Field(
        restapi.DEFAULT_TIMEOUT,
        description="Request timeout in seconds",
        gt=0,
    )
    user_agent: str = pydantic.Field(
        f"hubrest/{__version__}",
        description="User-Agent header sent with every request",
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str | None = None) -> ClientConfig:
    """Load configuration from a JSON file.

    Falls back to the path in ``HUBREST_CONFIG_PATH``, and to the defaults
    when neither is set.
    """
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR)
    if not resolved_path:
        return ClientConfig()

    path = pathlib.Path(resolved_path)
    if not path.exists():
        msg = f"Configuration file not found: {resolved_path}"
        raise FileNotFoundError(msg)

    with path.open("r") as f:
        data = json.load(f)

    return ClientConfig(**data)


def client_kwargs(config: ClientConfig) -> dict[str, Any]:
    """Translate a ClientConfig into HubRestClient keyword arguments."""
    kwargs: dict[str, Any] = {
        "default_host": config.default_host,
        "default_identity": config.default_identity,
        "timeout": config.timeout,
        "user_agent": config.user_agent,
    }
    if config.username:
        kwargs["usernames"] = restapi.StaticUsernameResolver(config.username)
    return kwargs


def create_client(
    config: ClientConfig | None = None,
    **kwargs: Any,
) -> restapi.HubRestClient:
    """Construct a client from validated config.

    Configures logging at the config's ``log_level``. Keyword arguments
    (store, provider, transport, ...) are passed through to HubRestClient
    and take precedence over the config.
    """
    config = config or load_config()
    configure_logging(config.log_level)
    client = restapi.HubRestClient(**{**client_kwargs(config), **kwargs})
    logger.info("Created REST client", default_host=config.default_host)
    return client
