"""Shared plumbing for services that persist through a storage adapter."""

from __future__ import annotations

import logging

from aquascore.core.logger import Logger
from aquascore.core.storage import LocalFS, StorageAdapter


class BaseService:
    """Hold the storage backend and a logger named after the concrete service module."""

    def __init__(
        self,
        storage: StorageAdapter | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.storage = storage or LocalFS()
        self.logger = logger or Logger.get_logger(type(self).__module__)
