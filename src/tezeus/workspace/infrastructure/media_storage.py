from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol


class MediaStorage(Protocol):
    async def put(self, path: str, data: bytes, content_type: str) -> str:
        """Store `data` under `path` and return its public URL."""
        ...


class LocalMediaStorage:
    """Filesystem-backed bucket: files land in {root}/{bucket}/{path}."""

    def __init__(self, root: str, public_base_url: str, *, bucket: str = "workspace-media"):
        self.root = Path(root)
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")

    def _target(self, path: str) -> Path:
        base = (self.root / self.bucket).resolve()
        target = (base / path).resolve()
        if base not in target.parents:
            raise ValueError(f"Path escapes media bucket: {path}")
        return target

    async def put(self, path: str, data: bytes, content_type: str) -> str:
        target = self._target(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        return f"{self.public_base_url}/{self.bucket}/{path}"
