from serveeasy.store.base import DocumentStore
from serveeasy.store.memory import InMemoryStore

__all__ = ["DocumentStore", "InMemoryStore"]
