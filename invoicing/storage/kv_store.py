from __future__ import annotations

import json
import logging
import shutil
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

log = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})
        self.writes = 0

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value
        self.writes += 1

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """
    String map persisted in one JSON file (drafts survive restarts).
    - Does not write when the content is unchanged
    - A corrupt file is copied to *.corrupt.json and read as empty
    """

    def __init__(self, filepath: Union[str, Path]) -> None:
        self.filepath = Path(filepath)
        self._lock = threading.Lock()
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    def _read_raw(self) -> Dict[str, str]:
        try:
            with self.filepath.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            backup = self.filepath.with_suffix(".corrupt.json")
            log.warning("Corrupt store %s, copied to %s", self.filepath, backup)
            try:
                shutil.copy2(self.filepath, backup)
            except OSError:
                pass
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_raw(self, data: Dict[str, str]) -> None:
        with self._lock:
            new_dump = json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True)
            if self.filepath.exists():
                try:
                    if self.filepath.read_text(encoding="utf-8") == new_dump:
                        return
                except OSError:
                    pass
            with self.filepath.open("w", encoding="utf-8") as f:
                f.write(new_dump)

    def get(self, key: str) -> Optional[str]:
        return self._read_raw().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_raw()
        data[key] = value
        self._write_raw(data)

    def remove(self, key: str) -> None:
        data = self._read_raw()
        if data.pop(key, None) is not None:
            self._write_raw(data)
