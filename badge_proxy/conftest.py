import httpx
import pytest
from fastapi.testclient import TestClient

from badge_proxy.server import create_app


@pytest.fixture
def upstream_response():
    """Build an httpx response as returned by AsyncClient.send."""

    def _create_response(
        status_code=200, headers=None, content=b"<svg></svg>", stream_chunks=None
    ):
        if stream_chunks is not None:

            async def _chunks():
                for chunk in stream_chunks:
                    yield chunk

            return httpx.Response(
                status_code, headers=headers or {}, content=_chunks()
            )
        return httpx.Response(status_code, headers=headers or {}, content=content)

    return _create_response


@pytest.fixture
def make_client():
    """Create a TestClient around a freshly built app with its own URL store."""
    clients = []

    def _make_client(**kwargs):
        kwargs.setdefault("default_url", "")
        kwargs.setdefault("update_password", None)
        kwargs.setdefault("read_strategy", "redirect")
        app = create_app(**kwargs)
        client = TestClient(app, follow_redirects=False)
        client.__enter__()
        clients.append(client)
        return client

    yield _make_client

    for client in clients:
        client.__exit__(None, None, None)
