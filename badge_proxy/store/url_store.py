import threading
from abc import ABC, abstractmethod


class URLStoreBase(ABC):
    @abstractmethod
    def get(self) -> str:
        pass

    @abstractmethod
    def set(self, url: str) -> None:
        pass


class InMemoryURLStore(URLStoreBase):
    """
    Single-value container for the target URL.

    A plain ``threading.Lock`` guards the value so the store behaves the same
    whether handlers run on the event loop or in a worker thread. The lock is
    only ever held for one read or one replace; callers copy the value out
    before doing any I/O with it.
    """

    def __init__(self, default_url: str = ""):
        self._lock = threading.Lock()
        self._url: str = default_url or ""

    def get(self) -> str:
        with self._lock:
            return self._url

    def set(self, url: str) -> None:
        with self._lock:
            self._url = url
