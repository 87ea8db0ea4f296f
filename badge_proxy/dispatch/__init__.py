from .strategy import (
    ReadStrategy,
    ReadDispatcher,
    RedirectDispatcher,
    ProxyDispatcher,
    build_read_dispatcher,
)
from .proxy import fetch_and_relay

__all__ = [
    "ReadStrategy",
    "ReadDispatcher",
    "RedirectDispatcher",
    "ProxyDispatcher",
    "build_read_dispatcher",
    "fetch_and_relay",
]
