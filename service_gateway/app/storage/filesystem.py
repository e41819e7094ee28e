"""
Filesystem cache store: one file per key under a shared directory.

Only suitable when every gateway process runs on the same host. Entries are
never deleted here; the TTL cache decides validity from the stored timestamp
and later writes supersede stale files.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .base import CacheStore, StoreError


class FileCacheStore(CacheStore):
    """Cache store writing ``<key>.cache`` files into a directory."""

    def __init__(self, cache_dir: Union[str, Path]) -> None:
        self.cache_dir = Path(cache_dir)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.cache"

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, self._path(key))

    async def set(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> None:
        await asyncio.to_thread(self._write, self._path(key), value)

    @staticmethod
    def _read(path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"cache read failed for {path.name}: {exc}") from exc

    def _write(self, path: Path, value: str) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            # Write then rename so concurrent readers never see a partial file
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise StoreError(f"cache write failed for {path.name}: {exc}") from exc
