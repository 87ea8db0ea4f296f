import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider, ReadableSpan
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from badge_proxy.vars import (
    DEFAULT_URL,
    OTLP_ENDPOINT,
    OTLP_HEADERS,
    PROXY_MAX_BODY_BYTES,
    PROXY_NO_CACHE,
    PROXY_TIMEOUT,
    READ_PATH,
    READ_STRATEGY,
    REDIRECT_STATUS_CODE,
    SERVICE_NAME,
    URL_UPDATE_PASSWORD,
    WRITE_PATHS,
)
from .dispatch import build_read_dispatcher
from .routes import build_router
from .store import InMemoryURLStore

logger = logging.getLogger("uvicorn.error")


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that filters out noisy ASGI body spans from streaming responses.
    A relayed badge body otherwise produces one span per chunk.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type") == "http.response.body"
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


@asynccontextmanager
async def lifespan(app: FastAPI):
    default_url = app.state.url_store.get()
    if default_url:
        logger.info(f"Server started with default URL: {default_url}")
    else:
        logger.info("Server started with no default URL")

    if app.state.update_password is not None:
        logger.info("URL update password is set - authentication required for updates")
    else:
        logger.info("No URL update password set - any update will be accepted")
    yield


def create_app(
    default_url: str = DEFAULT_URL,
    update_password: Optional[str] = URL_UPDATE_PASSWORD,
    read_strategy: str = READ_STRATEGY,
    read_path: str = READ_PATH,
    write_paths: Sequence[str] = tuple(WRITE_PATHS),
) -> FastAPI:
    """
    Build the service with its own URL store and read dispatcher. Invalid
    strategy or redirect settings raise ValueError here, at startup.
    """
    app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
    app.state.url_store = InMemoryURLStore(default_url)
    app.state.update_password = update_password or None
    app.state.read_dispatcher = build_read_dispatcher(
        read_strategy,
        redirect_status_code=REDIRECT_STATUS_CODE,
        proxy_timeout=PROXY_TIMEOUT,
        proxy_max_body_bytes=PROXY_MAX_BODY_BYTES,
        no_cache=PROXY_NO_CACHE,
    )
    app.include_router(build_router(read_path, write_paths))
    logger.info(
        f"Serving GET {read_path} ({read_strategy}), POST {', '.join(write_paths)}"
    )
    return app


app = create_app()
instrumentator = Instrumentator()

instrumentator.instrument(app).expose(app)

trace.set_tracer_provider(
    TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
)
tracer_provider = trace.get_tracer_provider()
if OTLP_ENDPOINT:
    otlp_exporter = OTLPSpanExporter(
        endpoint=OTLP_ENDPOINT,
        headers=OTLP_HEADERS or None,
    )
    tracer_provider.add_span_processor(
        BatchSpanProcessor(FilteringSpanExporter(otlp_exporter))
    )

FastAPIInstrumentor.instrument_app(
    app,
    excluded_urls="/metrics",
    server_request_hook=None,
    client_request_hook=None,
)

app_info = Info("fastapi_app_info", "Application Info")
app_info.info({"app_name": SERVICE_NAME})
