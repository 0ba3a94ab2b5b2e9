import asyncio
import os
import sys
import tempfile
from collections.abc import Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles

if TYPE_CHECKING:
    from scribe.context import Context

from scribe.services.manager import BaseFileServiceManager

# -------------------------------------------------------------- #
# File Manager Service
# -------------------------------------------------------------- #


class FileManagerService(BaseFileServiceManager):
    """Async file access with per-path locks and atomic replace-on-write.

    Paths may be absolute or relative to ``storage_path``. Locks are keyed by
    the resolved path and dropped again once nobody is waiting on them.
    """

    def __init__(self, context: "Context", storage_path: str):
        super().__init__(context)

        self.storage_path = storage_path

        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    # -------------------------------------------------------------- #
    # Manager Methods
    # -------------------------------------------------------------- #

    async def on_start(self, services):
        await super().on_start(services)

        await asyncio.to_thread(os.makedirs, self.storage_path, exist_ok=True)

        await self.services.logging_service.info(
            f"FileManagerService initialized with storage path: {self.storage_path}"
        )

    # -------------------------------------------------------------- #
    # Path and Lock Helpers
    # -------------------------------------------------------------- #

    def _resolve(self, filepath: str) -> Path:
        if os.path.isabs(filepath):
            return Path(filepath)
        return Path(self.storage_path, filepath)

    def _lock_key(self, filepath: str) -> str:
        """Normalize lock key by absolute path (case-insensitive on Windows)."""
        p = self._resolve(filepath).resolve()
        return str(p).lower() if sys.platform.startswith("win") else str(p)

    def get_storage_path(self) -> str:
        return self.storage_path

    @asynccontextmanager
    async def file_lock(self, filepath: str):
        """Hold the lock for a path for the duration of the block."""
        key = self._lock_key(filepath)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        acquired = False
        try:
            await lock.acquire()
            acquired = True
            yield
        finally:
            if acquired:
                lock.release()
            # a waiter cancelled in acquire() still has to give up its count
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                self._locks.pop(key, None)
                self._waiters.pop(key, None)

    async def _read_unlocked(self, path: Path) -> bytes | None:
        if not await asyncio.to_thread(path.exists):
            return None
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def _write_unlocked(self, path: Path, data: bytes) -> None:
        def write_atomic():
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=path.parent, delete=False) as tmp:
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
                tmp_path = Path(tmp.name)
            # atomic rename on same filesystem
            os.replace(tmp_path, path)

        await asyncio.to_thread(write_atomic)

    # -------------------------------------------------------------- #
    # Public File Operations
    # -------------------------------------------------------------- #

    async def read_file(self, filepath: str) -> bytes:
        """
        Read a file.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        async with self.file_lock(filepath):
            data = await self._read_unlocked(self._resolve(filepath))

        if data is None:
            raise FileNotFoundError(f"File {filepath} does not exist.")

        await self.services.logging_service.debug(f"Read file: {filepath} ({len(data)} bytes)")
        return data

    async def write_file(self, filepath: str, data: bytes) -> None:
        """Create or replace a file atomically."""
        async with self.file_lock(filepath):
            await self._write_unlocked(self._resolve(filepath), data)

        await self.services.logging_service.debug(f"Wrote file: {filepath} ({len(data)} bytes)")

    async def update_file(
        self, filepath: str, transform: Callable[[bytes | None], bytes]
    ) -> bytes:
        """
        Read-modify-write a file while holding its lock.

        Args:
            filepath: Absolute path or path relative to storage_path
            transform: Receives the current contents (None if the file is
                missing) and returns the new contents

        Returns:
            The bytes that were written
        """
        path = self._resolve(filepath)
        async with self.file_lock(filepath):
            current = await self._read_unlocked(path)
            data = transform(current)
            await self._write_unlocked(path, data)

        await self.services.logging_service.debug(f"Updated file: {filepath} ({len(data)} bytes)")
        return data

    async def delete_file(self, filepath: str) -> None:
        """
        Delete a file.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        path = self._resolve(filepath)
        async with self.file_lock(filepath):
            await asyncio.to_thread(os.remove, path)

        await self.services.logging_service.debug(f"Deleted file: {filepath}")

    async def file_exists(self, filepath: str) -> bool:
        return await asyncio.to_thread(self._resolve(filepath).exists)
