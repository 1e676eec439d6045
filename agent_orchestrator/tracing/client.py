"""
Process-wide Langfuse client (SDK v3).

Tracing is optional. Without both keys, or when ``auth_check()`` fails, the
client stays disabled and every tracing call made by a run is a no-op.
"""

import logging
from typing import Optional

from langfuse import Langfuse

from ..models import LangfuseConfig

logger = logging.getLogger(__name__)


def _connect(
    public_key: str, secret_key: str, host: str, debug: bool
) -> tuple[Optional[Langfuse], Optional[str]]:
    """Create a Langfuse client and check its credentials.

    Returns the client, or None together with the reason tracing is off.
    """
    if not (public_key and secret_key):
        return None, "Langfuse credentials not configured"

    if host and not host.startswith(("http://", "https://")):
        logger.warning("Langfuse host '%s' has no http:// or https:// scheme", host)

    options = {"public_key": public_key, "secret_key": secret_key, "debug": debug}
    if host:
        options["host"] = host
    try:
        langfuse = Langfuse(**options)
    except Exception as e:
        return None, f"Failed to initialize Langfuse client: {e}"

    try:
        authenticated = langfuse.auth_check()
    except Exception as e:
        return None, f"Langfuse connectivity check failed: {e}"
    if not authenticated:
        return None, "Langfuse auth_check() failed - check host and credentials"
    return langfuse, None


class TracingClient:
    """Wraps the Langfuse client; read-only to individual runs."""

    def __init__(
        self,
        public_key: str = "",
        secret_key: str = "",
        host: str = "",
        debug: bool = False,
    ):
        self._client, self._error = _connect(public_key, secret_key, host, debug)
        if self._client is None:
            level = logging.WARNING if public_key and secret_key else logging.DEBUG
            logger.log(level, "Tracing disabled: %s", self._error)
        else:
            logger.info("Langfuse tracing enabled (host: %s)", host or "default")

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @property
    def error(self) -> Optional[str]:
        """Why tracing is disabled, if it is."""
        return self._error

    @property
    def client(self) -> Optional[Langfuse]:
        return self._client

    def flush(self) -> None:
        if self._client is None:
            return
        try:
            self._client.flush()
        except Exception as e:
            logger.warning("Failed to flush tracing events: %s", e)

    def shutdown(self) -> None:
        """Flush remaining events and close the client."""
        if self._client is None:
            return
        try:
            self._client.shutdown()
        except Exception as e:
            logger.warning("Error during tracing client shutdown: %s", e)
        else:
            logger.info("Langfuse tracing client shutdown complete")


_tracing_client: Optional[TracingClient] = None


def init_tracing_client(langfuse_config: Optional[LangfuseConfig] = None) -> TracingClient:
    """Create the global tracing client from the ``langfuse`` config section."""
    global _tracing_client
    cfg = langfuse_config or LangfuseConfig()
    _tracing_client = TracingClient(cfg.public_key, cfg.secret_key, cfg.host, cfg.debug)
    return _tracing_client


def get_tracing_client() -> Optional[TracingClient]:
    return _tracing_client


def shutdown_tracing() -> None:
    """Shut down and forget the global tracing client."""
    global _tracing_client
    if _tracing_client is not None:
        _tracing_client.shutdown()
    _tracing_client = None
