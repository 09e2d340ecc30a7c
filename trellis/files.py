"""File-reading capabilities injected into step actions."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional, Protocol, Union, runtime_checkable

import anyio

PathLike = Union[str, Path]


@runtime_checkable
class FileStore(Protocol):
    """Read text content for step actions."""

    async def read_file(self, path: PathLike, base_dir: Optional[PathLike] = None) -> str:
        """Return the content at ``path``, resolved against ``base_dir``."""


def _resolve(path: PathLike, base_dir: Optional[PathLike]) -> Path:
    candidate = Path(path).expanduser()
    if base_dir is not None and not candidate.is_absolute():
        candidate = Path(base_dir).expanduser() / candidate
    return candidate


class LocalFileStore:
    """Read files from the local filesystem without blocking the event loop."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    async def read_file(self, path: PathLike, base_dir: Optional[PathLike] = None) -> str:
        return await anyio.Path(_resolve(path, base_dir)).read_text(encoding=self.encoding)


class InMemoryFileStore:
    """Serve file content from a mapping. Useful for tests."""

    def __init__(self, files: Mapping[str, str]) -> None:
        self._files = dict(files)

    async def read_file(self, path: PathLike, base_dir: Optional[PathLike] = None) -> str:
        key = str(_resolve(path, base_dir)) if base_dir is not None else str(path)
        if key not in self._files:
            raise FileNotFoundError(f"File not found: {key}")
        return self._files[key]
