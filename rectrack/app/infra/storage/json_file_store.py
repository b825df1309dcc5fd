# rectrack/app/infra/storage/json_file_store.py
"""
File-backed key-value store for visitor sessions.
Each session is one JSON object on disk mapping keys to serialized strings.
"""
from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Optional

from rectrack.app.domain.errors import StorageOperationError
from rectrack.app.infra.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

_SAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9_-]")


class JsonFileKeyValueStore(KeyValueStore):
    """Key-value store persisted as ``<directory>/<namespace>.json``."""

    def __init__(self, directory: Path | str, namespace: str):
        self.directory = Path(directory)
        safe_namespace = _SAFE_NAME_RE.sub("_", namespace)
        self.path = self.directory / f"{safe_namespace}.json"
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def clear(self) -> None:
        with self._lock:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as error:
                logger.error("Could not remove visitor file %s: %s", self.path, error)
                raise StorageOperationError("clear", str(error)) from error

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            # corrupt file: start over rather than lock the visitor out
            logger.warning("Ignoring unreadable visitor file %s: %s", self.path, error)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def _write(self, data: dict[str, str]) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(data), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as error:
            logger.error("Could not write visitor file %s: %s", self.path, error)
            raise StorageOperationError("persist", str(error)) from error
