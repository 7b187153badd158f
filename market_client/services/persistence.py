"""Flat key-value persistence used for the session keys."""
from __future__ import annotations

import asyncio
import json
import os
import threading
from pathlib import Path
from typing import Iterable, Mapping, Protocol

from ..errors import PersistenceFailure


class KeyValueStorage(Protocol):
    async def read(self, keys: Iterable[str]) -> dict[str, str | None]:
        """Return the stored value (or ``None``) for every requested key."""

    async def write(self, values: Mapping[str, str | None]) -> None:
        """Store all ``values`` in one step; ``None`` removes the key."""


def _merge(current: dict[str, str], values: Mapping[str, str | None]) -> dict[str, str]:
    merged = dict(current)
    for key, value in values.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


class MemoryStorage:
    """Process-local storage, handy for guests and tests."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self.items: dict[str, str] = dict(initial or {})

    async def read(self, keys: Iterable[str]) -> dict[str, str | None]:
        return {key: self.items.get(key) for key in keys}

    async def write(self, values: Mapping[str, str | None]) -> None:
        self.items = _merge(self.items, values)


class JsonFileStorage:
    """JSON document on disk, rewritten atomically through a temporary file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    async def read(self, keys: Iterable[str]) -> dict[str, str | None]:
        wanted = list(keys)
        items = await asyncio.to_thread(self._load)
        return {key: items.get(key) for key in wanted}

    async def write(self, values: Mapping[str, str | None]) -> None:
        await asyncio.to_thread(self._update, dict(values))

    def _load(self) -> dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(f"Unable to read {self.path.name}") from exc
        if not isinstance(data, dict):
            raise PersistenceFailure(f"Unexpected content in {self.path.name}")
        return {str(key): str(value) for key, value in data.items() if value is not None}

    def _update(self, values: dict[str, str | None]) -> None:
        with self._lock:
            merged = _merge(self._load(), values)
            tmp_path = self.path.with_name(self.path.name + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as fh:
                    json.dump(merged, fh, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except OSError as exc:
                tmp_path.unlink(missing_ok=True)
                raise PersistenceFailure(f"Unable to write {self.path.name}") from exc


__all__ = ["KeyValueStorage", "MemoryStorage", "JsonFileStorage"]
