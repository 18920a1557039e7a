"""Flat JSON file store: one ``<key>.json`` document per key under a data dir."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, TypeVar

from .base import StorageError, validate_key

logger = logging.getLogger("nss_admin.storage.json")

T = TypeVar("T")


class JsonFileStore:
    def __init__(self, data_dir: str | os.PathLike[str]) -> None:
        self._data_dir = Path(data_dir)
        self._lock = threading.Lock()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, key: str) -> Path:
        return self._data_dir / f"{validate_key(key)}.json"

    def _ensure_data_dir(self) -> None:
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create data directory {self._data_dir}: {exc}") from exc

    def read(self, key: str, fallback: T) -> Any | T:
        path = self._path(key)
        with self._lock:
            try:
                raw = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return fallback
            except OSError as exc:
                raise StorageError(f"Cannot read {path}: {exc}") from exc

            try:
                return json.loads(raw)
            except json.JSONDecodeError as exc:
                # Keep the broken document for inspection; the key reads as missing
                quarantine = path.with_suffix(".json.corrupt")
                logger.error(
                    "Corrupt JSON document key=%s error=%s; moved to %s",
                    key,
                    exc,
                    quarantine.name,
                )
                try:
                    os.replace(path, quarantine)
                except OSError as move_exc:
                    raise StorageError(f"Cannot quarantine {path}: {move_exc}") from move_exc
                return fallback

    def write(self, key: str, value: Any) -> None:
        path = self._path(key)
        with self._lock:
            self._write_unlocked(path, value)

    def _write_unlocked(self, path: Path, value: Any) -> None:
        self._ensure_data_dir()
        payload = json.dumps(value, indent=2, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=self._data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except OSError as exc:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise StorageError(f"Cannot write {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self._path(key)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return
            except OSError as exc:
                raise StorageError(f"Cannot delete {path}: {exc}") from exc
