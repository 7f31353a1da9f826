from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Protocol
import asyncio


STATE_FILE_SUFFIX = "-DID_STATE.json"


def state_key(did: str) -> str:
    return f"{did}{STATE_FILE_SUFFIX}"


class StateStorage(Protocol):
    async def read(self, key: str) -> Optional[str]:
        ...

    async def write(self, key: str, document: str) -> None:
        ...


class FileStateStorage:
    def __init__(self, directory: str = ".") -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        # Keys are used as plain file names; DIDs never contain path separators.
        if "/" in key or "\\" in key or key in {"", ".", ".."}:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / key

    async def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None

    async def write(self, key: str, document: str) -> None:
        path = self._path(key)
        await asyncio.to_thread(self._write_file, path, document)

    @staticmethod
    def _write_file(path: Path, document: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(document, encoding="utf-8")
        tmp.replace(path)


class MemoryStateStorage:
    def __init__(self, documents: Optional[Dict[str, str]] = None) -> None:
        self._lock = Lock()
        self._documents: Dict[str, str] = dict(documents or {})

    async def read(self, key: str) -> Optional[str]:
        with self._lock:
            return self._documents.get(key)

    async def write(self, key: str, document: str) -> None:
        with self._lock:
            self._documents[key] = document

    def keys(self):
        with self._lock:
            return list(self._documents)
