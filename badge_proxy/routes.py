import logging
from typing import Sequence

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from opentelemetry import trace

from badge_proxy.vars import READ_PATH, WRITE_PATHS
from .auth import require_update_password
from .dispatch import ReadDispatcher
from .errors import InvalidURLBodyError, URLNotConfiguredError
from .store import URLStoreBase
from .utils.traced_requests import traced_request

logger = logging.getLogger("uvicorn.error")

tracer = trace.get_tracer(__name__)


def get_url_store(request: Request) -> URLStoreBase:
    return request.app.state.url_store


def get_read_dispatcher(request: Request) -> ReadDispatcher:
    return request.app.state.read_dispatcher


async def read_url(
    store: URLStoreBase = Depends(get_url_store),
    dispatcher: ReadDispatcher = Depends(get_read_dispatcher),
):
    with traced_request(
        tracer,
        operation="url.read",
        start_message=f"[Read] Dispatching stored URL via {dispatcher.strategy.value}",
        extra_attrs={"url.strategy": dispatcher.strategy.value},
    ) as span:
        # Copied out under the store lock; the lock is released before any I/O
        url = store.get()
        if not url:
            span.set_attribute("url.configured", False)
            raise URLNotConfiguredError()
        span.set_attribute("url.configured", True)
        return await dispatcher.dispatch(url)


async def update_url(
    request: Request,
    store: URLStoreBase = Depends(get_url_store),
):
    with traced_request(
        tracer,
        operation="url.write",
        start_message=f"[Write] Updating stored URL via {request.url.path}",
    ) as span:
        body = await request.body()
        try:
            new_url = body.decode("utf-8")
        except UnicodeDecodeError:
            span.set_attribute("url.error", "invalid_utf8")
            raise InvalidURLBodyError()

        store.set(new_url)
        span.set_attribute("url.cleared", not new_url)
        if new_url:
            logger.info(f"[Write] Stored URL updated to {new_url}")
        else:
            logger.info("[Write] Stored URL cleared")
        return PlainTextResponse("URL updated successfully")


def build_router(
    read_path: str = READ_PATH,
    write_paths: Sequence[str] = tuple(WRITE_PATHS),
) -> APIRouter:
    """
    Bind the read and write handlers to the configured paths. Write routes run
    the password check before the request body is read.
    """
    router = APIRouter()
    router.add_api_route(read_path, read_url, methods=["GET"], name="read_url")
    for path in write_paths:
        router.add_api_route(
            path,
            update_url,
            methods=["POST"],
            dependencies=[Depends(require_update_password)],
            name=f"update_url:{path}",
        )
    return router
