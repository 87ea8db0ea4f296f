from .url_store import URLStoreBase, InMemoryURLStore

__all__ = ["URLStoreBase", "InMemoryURLStore"]
