"""Key-value stores used to hold cached passphrases.

The passphrase gate only needs ``get``/``set``/``remove``; any object with
those three methods satisfies ``KeyValueStore``.
"""
import os
import tempfile
import contextlib
import logging
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable
from collections.abc import Iterator, MutableMapping
import orjson

logger = logging.getLogger("secretgate.store")


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStore(MutableMapping[str, str]):
    """MemoryStore.

    Session-lifetime store kept in process memory.
    Nothing survives a restart.
    """

    def __init__(self, data: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(data or {})

    def __repr__(self) -> str:
        return f'<{type(self).__name__} keys={list(self._data.keys())}>'

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:  # type: ignore[override]
        return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    # --- Magic Methods ---

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        del self._data[key]


class FileStore(MemoryStore):
    """FileStore.

    Persistent store backed by a JSON file readable only by its owner.
    The whole file is atomically replaced on every mutation.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        super().__init__(self._load())

    def _load(self) -> dict[str, str]:
        """Read the store file.

        Raises:
            RuntimeError: The file exists but is not a JSON object of strings.
        """
        if not self.path.exists():
            return {}
        try:
            data = orjson.loads(self.path.read_bytes())
        except orjson.JSONDecodeError as err:
            raise RuntimeError(
                f"Store file {self.path} is corrupt: {err}"
            ) from err
        if not isinstance(data, dict) or not all(
            isinstance(v, str) for v in data.values()
        ):
            raise RuntimeError(
                f"Store file {self.path} must hold a JSON object of strings"
            )
        logger.debug("Loaded %d key(s) from %s", len(data), self.path)
        return data

    def _save(self) -> None:
        """Atomically replace the store file with an owner-only copy."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # mkstemp creates the file with mode 0o600
        fd, tmp = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as fp:
                fp.write(orjson.dumps(self._data))
                fp.flush()
                os.fsync(fp.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp)
            raise

    def set(self, key: str, value: str) -> None:
        super().set(key, value)
        self._save()

    def remove(self, key: str) -> None:
        if key in self._data:
            super().remove(key)
            self._save()

    def __delitem__(self, key: str) -> None:
        super().__delitem__(key)
        self._save()
