import logging

import pytest
from fastapi.testclient import TestClient

from badge_proxy.dispatch import ProxyDispatcher, RedirectDispatcher
from badge_proxy.server import create_app
from badge_proxy.store import InMemoryURLStore


def test_create_app_state():
    app = create_app(
        default_url="https://example.com/a.svg",
        update_password="secret",
        read_strategy="redirect",
    )

    assert isinstance(app.state.url_store, InMemoryURLStore)
    assert app.state.url_store.get() == "https://example.com/a.svg"
    assert app.state.update_password == "secret"
    assert isinstance(app.state.read_dispatcher, RedirectDispatcher)


def test_each_app_owns_its_store():
    first = create_app(default_url="https://example.com/1.svg")
    second = create_app(default_url="https://example.com/2.svg")

    first.state.url_store.set("https://example.com/changed.svg")

    assert second.state.url_store.get() == "https://example.com/2.svg"


def test_proxy_strategy_selected():
    app = create_app(read_strategy="proxy")
    assert isinstance(app.state.read_dispatcher, ProxyDispatcher)


def test_invalid_strategy_fails_at_startup():
    with pytest.raises(ValueError):
        create_app(read_strategy="bogus")


def test_startup_logging(caplog):
    app = create_app(default_url="", update_password=None)

    with caplog.at_level(logging.INFO, logger="uvicorn.error"):
        with TestClient(app):
            pass

    assert "Server started with no default URL" in caplog.text
    assert "any update will be accepted" in caplog.text


def test_startup_logging_with_password(caplog):
    app = create_app(default_url="https://example.com/a.svg", update_password="secret")

    with caplog.at_level(logging.INFO, logger="uvicorn.error"):
        with TestClient(app):
            pass

    assert "default URL: https://example.com/a.svg" in caplog.text
    assert "authentication required for updates" in caplog.text
    assert "secret" not in caplog.text


def test_module_app_exposes_metrics():
    from badge_proxy.server import app

    with TestClient(app) as client:
        response = client.get("/metrics")

    assert response.status_code == 200
    assert "fastapi_app_info" in response.text
