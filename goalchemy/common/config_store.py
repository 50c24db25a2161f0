# goalchemy/common/config_store.py
"""JSON file settings store.

A JSON object of named sections, each section a flat dict of values. Implements the
Mapping protocol so ``dict(store)`` gives a snapshot of every section.

Usage:
    from goalchemy.common.config_store import JsonFileConfigStore

    store = JsonFileConfigStore("settings.json")
    store.put("puzzle", show_hints=True, auto_play_delay=0.5)
    value = store.get("puzzle")["show_hints"]
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from collections.abc import Iterator, Mapping
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any

_log = logging.getLogger(__name__)


def atomic_write_text(path: Path, text: str) -> None:
    """Writes ``text`` to a temp file next to ``path``, fsyncs it and renames it over ``path``.

    Readers see either the old or the new content, never a partial file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as f:
        temp_path = Path(f.name)
        try:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        except OSError:
            f.close()
            with contextlib.suppress(OSError):
                temp_path.unlink()
            raise
    try:
        os.replace(temp_path, path)
    except OSError:
        with contextlib.suppress(OSError):
            temp_path.unlink()
        raise


class JsonFileConfigStore(Mapping[str, dict[str, Any]]):
    """Thread-safe JSON section store with atomic saves.

    A file that can not be parsed is renamed to ``<name>.corrupt.<timestamp>`` and the
    store starts empty. Sections that are not objects are dropped on load. A failed
    save leaves both the file and the in-memory sections as they were.
    """

    def __init__(self, filename: str | os.PathLike, indent: int = 4):
        self._path = Path(filename)
        self._indent = indent
        self._lock = Lock()
        self._data: dict[str, dict[str, Any]] = self._load()

    @property
    def filename(self) -> str:
        return str(self._path)

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            _log.warning("Corrupt settings file %s: %s", self._path, e, exc_info=True)
            self._set_aside()
            return {}
        if not isinstance(data, dict):
            _log.warning("Settings file %s does not hold an object, ignoring it", self._path)
            self._set_aside()
            return {}
        sections = {}
        for key, value in data.items():
            if isinstance(value, dict):
                sections[key] = value
            else:
                _log.warning("Settings section %s is not a dict (got %s), dropping it", key, type(value).__name__)
        return sections

    def _set_aside(self) -> None:
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        target = self._path.with_name(f"{self._path.name}.corrupt.{stamp}")
        try:
            self._path.rename(target)
        except OSError as e:
            _log.warning("Could not move corrupt settings file aside: %s", e)

    def _commit(self, data: dict[str, dict[str, Any]]) -> None:
        """Saves ``data`` and makes it current. Raises TypeError for values JSON can not hold, OSError on I/O."""
        text = json.dumps(data, indent=self._indent, ensure_ascii=False)
        atomic_write_text(self._path, text)
        self._data = data

    def get(self, key: str) -> dict[str, Any] | None:  # type: ignore[override]
        """Shallow copy of a section, or None."""
        with self._lock:
            section = self._data.get(key)
        return None if section is None else dict(section)

    def put(self, key: str, **values: Any) -> None:
        """Replaces a section and saves."""
        with self._lock:
            self._commit({**self._data, key: dict(values)})

    def delete(self, key: str) -> bool:
        with self._lock:
            if key not in self._data:
                return False
            self._commit({k: v for k, v in self._data.items() if k != key})
            return True

    def exists(self, key: str) -> bool:
        return key in self

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return isinstance(key, str) and key in self._data

    def __getitem__(self, key: str) -> dict[str, Any]:
        section = self.get(key)
        if section is None:
            raise KeyError(key)
        return section

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._data))

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __repr__(self) -> str:
        return f"JsonFileConfigStore({self.filename!r})"
