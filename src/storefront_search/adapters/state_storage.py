"""Key-value persistence for client-side state (search history, cart).

Components depend on ``AbstractStateStorage`` only. Each instance owns one
key and stores one opaque text blob under it; serialization is the caller's
concern. Writes replace the whole blob, so every mutation is an atomic
read-modify-write of the full structure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from pathlib import Path
import re
from uuid import uuid4

import anyio
from anyio import to_thread


logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


class AbstractStateStorage(ABC):
    """Load/save contract for a single persisted blob."""

    @abstractmethod
    async def load(self) -> str | None:
        """Return the stored blob, or ``None`` when nothing has been saved.

        Raises:
            OSError: The underlying storage could not be read
        """
        raise NotImplementedError

    @abstractmethod
    async def save(self, blob: str) -> None:
        """Replace the stored blob.

        Raises:
            OSError: The underlying storage could not be written
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self) -> None:
        """Remove the stored blob; a no-op when nothing is stored."""
        raise NotImplementedError


class InMemoryStateStorage(AbstractStateStorage):
    """Process-local storage, used in tests and when no durable store is wanted."""

    def __init__(self, blob: str | None = None) -> None:
        self.blob = blob
        self.saves = 0

    async def load(self) -> str | None:
        return self.blob

    async def save(self, blob: str) -> None:
        self.blob = blob
        self.saves += 1

    async def delete(self) -> None:
        self.blob = None


class FileStateStorage(AbstractStateStorage):
    """Stores the blob in ``<base_dir>/<key>.json`` using atomic replace."""

    def __init__(self, base_dir: Path, key: str) -> None:
        safe_key = _UNSAFE_KEY_CHARS.sub("_", key).strip("._")
        if not safe_key:
            raise ValueError(f"Invalid storage key: {key!r}")
        self.base_dir = Path(base_dir).expanduser()
        self.path = self.base_dir / f"{safe_key}.json"

    async def load(self) -> str | None:
        try:
            async with await anyio.open_file(self.path, "r", encoding="utf-8") as fp:
                return await fp.read()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            logger.warning("Discarding undecodable state file %s: %s", self.path, exc)
            return None

    async def save(self, blob: str) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.{uuid4().hex}.tmp")
        try:
            async with await anyio.open_file(tmp_path, "w", encoding="utf-8") as fp:
                await fp.write(blob)
            await to_thread.run_sync(tmp_path.replace, self.path)
        finally:
            if tmp_path.exists():
                await to_thread.run_sync(lambda: tmp_path.unlink(missing_ok=True))

    async def delete(self) -> None:
        await to_thread.run_sync(lambda: self.path.unlink(missing_ok=True))


def client_storage(base_dir: Path | None, key: str) -> AbstractStateStorage:
    """Durable storage under ``base_dir``, or in-memory storage when no directory is configured."""
    if base_dir is None:
        logger.debug("No client state directory configured; %s is kept in memory", key)
        return InMemoryStateStorage()
    return FileStateStorage(base_dir, key)
