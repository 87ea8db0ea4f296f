import asyncio
import logging
from typing import AsyncIterator, Dict, Optional

import httpx
from fastapi.responses import StreamingResponse
from opentelemetry import trace
from starlette.background import BackgroundTask

from badge_proxy.errors import (
    UpstreamBodyTooLargeError,
    UpstreamFailureError,
    UpstreamRelayTimeoutError,
    UpstreamTimeoutError,
)

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Badge consumers (README renderers, dashboards) must refetch on every view
NO_CACHE_HEADERS = {
    "cache-control": "no-cache, no-store, must-revalidate",
    "pragma": "no-cache",
    "expires": "0",
}


def relay_headers(response: httpx.Response, no_cache: bool) -> Dict[str, str]:
    """
    Headers sent back to the caller for a relayed upstream response.
    Only the content type is forwarded; everything else about the upstream
    connection stays on this side of the proxy.
    """
    headers = {}
    content_type = response.headers.get("content-type")
    if content_type:
        headers["content-type"] = content_type
    if no_cache:
        headers.update(NO_CACHE_HEADERS)
    return headers


async def _next_chunk(chunks: AsyncIterator[bytes]) -> Optional[bytes]:
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


async def relay_body(
    url: str,
    response: httpx.Response,
    client: httpx.AsyncClient,
    max_body_bytes: int,
    deadline: Optional[float] = None,
) -> AsyncIterator[bytes]:
    """
    Stream the upstream body verbatim, closing the upstream side as soon as
    the relay ends for any reason (completion, caller disconnect, overflow,
    deadline).

    ``deadline`` is an event loop time after which the relay is aborted, however
    steadily the upstream keeps sending.
    """
    loop = asyncio.get_running_loop()
    chunks = response.aiter_bytes().__aiter__()
    received = 0
    try:
        while True:
            remaining = None if deadline is None else deadline - loop.time()
            try:
                if remaining is not None and remaining <= 0:
                    raise asyncio.TimeoutError()
                chunk = await asyncio.wait_for(_next_chunk(chunks), timeout=remaining)
            except asyncio.TimeoutError:
                logger.error(f"Relay from {url} ran past its deadline, aborting relay")
                raise UpstreamRelayTimeoutError(f"relay from {url} timed out")
            if chunk is None:
                break
            received += len(chunk)
            if max_body_bytes and received > max_body_bytes:
                logger.error(
                    f"Upstream body from {url} exceeded {max_body_bytes} bytes, aborting relay"
                )
                raise UpstreamBodyTooLargeError(
                    f"upstream body exceeded {max_body_bytes} bytes"
                )
            yield chunk
    finally:
        await response.aclose()
        await client.aclose()


async def _close_upstream(
    client: httpx.AsyncClient, response: Optional[httpx.Response] = None
):
    if response is not None:
        await response.aclose()
    await client.aclose()


async def fetch_and_relay(
    url: str,
    *,
    timeout: float,
    max_body_bytes: int = 0,
    no_cache: bool = True,
) -> StreamingResponse:
    """
    Fetch ``url`` and relay its status, content type and body to the caller.

    ``timeout`` bounds the whole exchange, headers and body. Raises
    UpstreamTimeoutError when the upstream does not answer in time and
    UpstreamFailureError for any other failure, including a non-success
    upstream status. A relay still running at the deadline is aborted.
    """
    deadline = asyncio.get_running_loop().time() + timeout
    with tracer.start_as_current_span("proxy_request") as span:
        span.set_attribute("proxy.target_url", url)
        logger.debug(f"Proxying GET -> {url}")

        client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )
        try:
            request = client.build_request("GET", url)
            # Bounds the whole time-to-headers, not only each socket operation;
            # the body relay then gets whatever is left of the same budget
            response = await asyncio.wait_for(
                client.send(request, stream=True), timeout=timeout
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            await _close_upstream(client)
            logger.error(f"Proxy timeout for {url}: {e!r}")
            span.set_attribute("proxy.error", "timeout")
            raise UpstreamTimeoutError()
        except httpx.ConnectError as e:
            await _close_upstream(client)
            logger.error(f"Failed to connect to target {url}: {e}")
            span.set_attribute("proxy.error", "connection_failed")
            raise UpstreamFailureError("cannot connect to target")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            await _close_upstream(client)
            logger.error(f"Proxy error for {url}: {e}")
            span.set_attribute("proxy.error", str(e))
            raise UpstreamFailureError(str(e) or type(e).__name__)

        span.set_attribute("proxy.status_code", response.status_code)

        if not response.is_success:
            await _close_upstream(client, response)
            logger.error(f"Upstream {url} returned status {response.status_code}")
            span.set_attribute("proxy.error", "upstream_status")
            raise UpstreamFailureError(
                f"upstream returned status {response.status_code}"
            )

        declared_length = response.headers.get("content-length")
        if (
            max_body_bytes
            and declared_length
            and declared_length.isdigit()
            and int(declared_length) > max_body_bytes
        ):
            await _close_upstream(client, response)
            logger.error(
                f"Upstream {url} declared {declared_length} bytes, limit is {max_body_bytes}"
            )
            span.set_attribute("proxy.error", "body_too_large")
            raise UpstreamFailureError("upstream body too large")

        return StreamingResponse(
            relay_body(url, response, client, max_body_bytes, deadline=deadline),
            status_code=response.status_code,
            headers=relay_headers(response, no_cache),
            background=BackgroundTask(client.aclose),
        )
