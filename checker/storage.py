"""
Key/value blob stores holding the persisted version state.

A store is addressed by a connection string and a container; objects inside
the container are opaque bytes keyed by name. Writes replace the whole object.
"""

import asyncio
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
import structlog

logger = structlog.get_logger(__name__)


class BlobStore(Protocol):
    """Minimal capability the state store needs from a backend."""

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def exists(self, key: str) -> bool: ...

    async def read(self, key: str) -> bytes: ...

    async def write(self, key: str, data: bytes) -> None: ...


class MongoBlobStore:
    """
    Blob store backed by a MongoDB collection.
    The container maps to a collection; each object is one document.
    """

    def __init__(self, connection_url: str, database_name: str, container_name: str):
        """
        Initialize MongoDB blob store.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            container_name: Collection holding the objects
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.container_name = container_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        self.client = AsyncIOMotorClient(self.connection_url)
        self.collection = self.client[self.database_name][self.container_name]

        # Test connection; the collection itself is created on first write
        await self.client.admin.command('ping')
        logger.info("Connected to MongoDB blob store",
                    database=self.database_name,
                    container=self.container_name)

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self.client = None
            self.collection = None
            logger.info("Disconnected from MongoDB blob store")

    def _require_collection(self) -> AsyncIOMotorCollection:
        if self.collection is None:
            raise RuntimeError("MongoBlobStore is not connected")
        return self.collection

    async def exists(self, key: str) -> bool:
        count = await self._require_collection().count_documents({"_id": key}, limit=1)
        return count > 0

    async def read(self, key: str) -> bytes:
        doc = await self._require_collection().find_one({"_id": key}, {"data": 1})
        if doc is None:
            raise KeyError(key)
        return bytes(doc["data"])

    async def write(self, key: str, data: bytes) -> None:
        await self._require_collection().replace_one(
            {"_id": key},
            {"_id": key, "data": data, "updated_at": datetime.now(timezone.utc)},
            upsert=True
        )


class FileBlobStore:
    """
    Blob store backed by a local directory.
    The container is a sub-directory; each object is one file. File I/O runs
    in a worker thread so the event loop is not blocked.
    """

    def __init__(self, base_dir: str, container_name: str):
        self.container_path = Path(base_dir) / container_name

    async def connect(self) -> None:
        await asyncio.to_thread(self.container_path.mkdir, parents=True, exist_ok=True)
        logger.info("Using file blob store", path=str(self.container_path))

    async def disconnect(self) -> None:
        return None

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread((self.container_path / key).is_file)

    async def read(self, key: str) -> bytes:
        return await asyncio.to_thread((self.container_path / key).read_bytes)

    async def write(self, key: str, data: bytes) -> None:
        await asyncio.to_thread(self._write_atomic, key, data)

    def _write_atomic(self, key: str, data: bytes) -> None:
        target = self.container_path / key
        fd, tmp_path = tempfile.mkstemp(dir=self.container_path, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, target)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


def create_blob_store(
    backend: str,
    connection_string: str,
    container_name: str,
    database_name: str = "revision_checker"
) -> BlobStore:
    """Build the blob store named by ``backend`` (mongodb or file)."""
    if backend == "mongodb":
        return MongoBlobStore(connection_string, database_name, container_name)
    if backend == "file":
        return FileBlobStore(connection_string, container_name)
    raise ValueError(f"Unsupported state backend: {backend}")
