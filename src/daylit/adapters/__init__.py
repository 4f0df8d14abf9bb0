"""Adapters - I/O implementations of ports."""

from .json_store import JsonFileStore, StoreError

__all__ = [
    "JsonFileStore",
    "StoreError",
]
