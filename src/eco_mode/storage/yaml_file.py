"""YAML file backed key-value storage."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from eco_mode.errors import StorageError

logger = logging.getLogger(__name__)


class YamlFileStorage:
    """Keeps a flat string mapping in a YAML file.

    The file is read on every ``get`` and rewritten on every ``set`` or
    ``remove``, so several processes sharing the file see each other's writes.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key not in data:
            return
        del data[key]
        self._write(data)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise StorageError(f"Cannot parse {self._path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise StorageError(f"{self._path} does not hold a key-value mapping")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        with open(tmp_path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
        tmp_path.replace(self._path)
        logger.debug("Storage written: %s (%d keys)", self._path, len(data))
