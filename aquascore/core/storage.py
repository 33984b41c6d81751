"""Storage adapter abstractions."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod


class StorageAdapter(ABC):
    """Abstract interface for persisting binary data."""

    @abstractmethod
    def join(self, *parts: str) -> str:
        """Join path components into a destination URI."""

    @abstractmethod
    def exists(self, uri: str) -> bool:
        """Return ``True`` when *uri* holds data."""

    @abstractmethod
    def write_bytes(self, uri: str, data: bytes) -> str:
        """Write bytes to the destination and return the URI."""

    @abstractmethod
    def read_bytes(self, uri: str) -> bytes:
        """Return bytes stored at *uri*."""


class LocalFS(StorageAdapter):
    """Store files on the local filesystem."""

    def join(self, *parts: str) -> str:  # pragma: no cover - trivial
        return os.path.join(*parts)

    def exists(self, uri: str) -> bool:
        return os.path.exists(uri)

    def write_bytes(self, uri: str, data: bytes) -> str:
        dirpath = os.path.dirname(uri) or "."
        os.makedirs(dirpath, exist_ok=True)
        # readers never observe a partially written document
        tmp = f"{uri}.tmp"
        with open(tmp, "wb") as fh:
            fh.write(data)
        os.replace(tmp, uri)
        return uri

    def read_bytes(self, uri: str) -> bytes:
        with open(uri, "rb") as fh:
            return fh.read()


class MemoryStorage(StorageAdapter):
    """Keep blobs in a dict; used by tests and throwaway sessions."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}

    def join(self, *parts: str) -> str:
        return "/".join(p.strip("/") for p in parts)

    def exists(self, uri: str) -> bool:
        return uri in self.blobs

    def write_bytes(self, uri: str, data: bytes) -> str:
        self.blobs[uri] = data
        return uri

    def read_bytes(self, uri: str) -> bytes:
        try:
            return self.blobs[uri]
        except KeyError as exc:
            raise FileNotFoundError(uri) from exc
