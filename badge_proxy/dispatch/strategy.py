import logging
from abc import ABC, abstractmethod
from enum import Enum

from fastapi.responses import RedirectResponse, Response

from .proxy import NO_CACHE_HEADERS, fetch_and_relay

logger = logging.getLogger("uvicorn.error")

REDIRECT_STATUS_CODES = {301, 302, 303, 307, 308}


class ReadStrategy(str, Enum):
    REDIRECT = "redirect"
    PROXY = "proxy"


class ReadDispatcher(ABC):
    """Strategy interface for answering a read of the stored URL."""

    strategy: ReadStrategy

    @abstractmethod
    async def dispatch(self, url: str) -> Response:
        """Build the response for a non-empty stored URL."""


class RedirectDispatcher(ReadDispatcher):
    """Send the caller to the stored URL; the service itself makes no request."""

    strategy = ReadStrategy.REDIRECT

    def __init__(self, status_code: int = 302, no_cache: bool = True):
        if status_code not in REDIRECT_STATUS_CODES:
            raise ValueError(
                f"Unsupported redirect status code: {status_code}. "
                f"Expected one of {sorted(REDIRECT_STATUS_CODES)}"
            )
        self.status_code = status_code
        self.no_cache = no_cache

    async def dispatch(self, url: str) -> Response:
        return RedirectResponse(
            url,
            status_code=self.status_code,
            headers=dict(NO_CACHE_HEADERS) if self.no_cache else None,
        )


class ProxyDispatcher(ReadDispatcher):
    """Fetch the stored URL server-side and relay the upstream response."""

    strategy = ReadStrategy.PROXY

    def __init__(
        self,
        timeout: float = 30.0,
        max_body_bytes: int = 0,
        no_cache: bool = True,
    ):
        if timeout <= 0:
            raise ValueError(f"Proxy timeout must be positive, got {timeout}")
        self.timeout = timeout
        self.max_body_bytes = max_body_bytes
        self.no_cache = no_cache

    async def dispatch(self, url: str) -> Response:
        return await fetch_and_relay(
            url,
            timeout=self.timeout,
            max_body_bytes=self.max_body_bytes,
            no_cache=self.no_cache,
        )


def build_read_dispatcher(
    strategy: str,
    *,
    redirect_status_code: int = 302,
    proxy_timeout: float = 30.0,
    proxy_max_body_bytes: int = 0,
    no_cache: bool = True,
) -> ReadDispatcher:
    """Select the read dispatcher once, from configuration."""
    try:
        selected = ReadStrategy(strategy.lower())
    except ValueError:
        raise ValueError(
            f"Unknown read strategy: {strategy}. "
            f"Expected one of {[s.value for s in ReadStrategy]}"
        )

    if selected is ReadStrategy.REDIRECT:
        logger.info(f"[Dispatch] Using redirect strategy ({redirect_status_code})")
        return RedirectDispatcher(redirect_status_code, no_cache=no_cache)

    logger.info(f"[Dispatch] Using proxy strategy (timeout={proxy_timeout}s)")
    return ProxyDispatcher(
        timeout=proxy_timeout,
        max_body_bytes=proxy_max_body_bytes,
        no_cache=no_cache,
    )
