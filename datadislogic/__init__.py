from . import (
    canon,
    config,
    exceptions,
    types,
    utils,
    validate,
    periods,
    aggregate,
    cache,
    gateway,
    retrieval,
)
from .cache import TTLCache, MemoryStore, JsonFileStore
from .retrieval import RetrievalCoordinator

__all__ = [
    "canon",
    "config",
    "exceptions",
    "types",
    "utils",
    "validate",
    "periods",
    "aggregate",
    "cache",
    "gateway",
    "retrieval",
    "TTLCache",
    "MemoryStore",
    "JsonFileStore",
    "RetrievalCoordinator",
]
