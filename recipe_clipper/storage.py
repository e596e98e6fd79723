"""Best-effort key-value persistence for the recipe collection.

Each key holds one JSON document. Saving and loading never raise: failures are
logged and the caller keeps working from its in-memory state. A missing or
corrupt key loads as ``ABSENT``, which callers treat as an empty collection.
"""

import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_VALID_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class PersistenceError(Exception):
    """Raised internally when a value cannot be written or read."""
    pass


class _Absent:
    """Marker for a key with no usable stored value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


def _serialize(key: str, value: Any) -> str:
    try:
        return json.dumps(value, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"Value for '{key}' is not JSON serializable: {e}") from e


class KeyValueStore(ABC):
    """Durable storage of named JSON-serializable blobs."""

    def save(self, key: str, value: Any) -> bool:
        """Persist ``value`` under ``key``. Returns False (and logs) on failure."""
        try:
            self._write(key, _serialize(key, value))
        except PersistenceError:
            logger.exception("Could not save value", extra={"key": key})
            return False
        except Exception:
            logger.exception("Unexpected error while saving value", extra={"key": key})
            return False
        logger.debug("Saved value", extra={"key": key})
        return True

    def load(self, key: str) -> Any:
        """Return the stored value for ``key``, or ``ABSENT``."""
        try:
            raw = self._read(key)
        except PersistenceError:
            logger.exception("Could not load value", extra={"key": key})
            return ABSENT
        except Exception:
            logger.exception("Unexpected error while loading value", extra={"key": key})
            return ABSENT

        if raw is None:
            return ABSENT

        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored value is corrupt, ignoring it", extra={"key": key})
            return ABSENT

    @abstractmethod
    def _write(self, key: str, text: str) -> None: ...

    @abstractmethod
    def _read(self, key: str) -> str | None: ...


class JSONFileStore(KeyValueStore):
    """One ``<key>.json`` file per key, replaced atomically on every save."""

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)

    def path_for(self, key: str) -> Path:
        if not _VALID_KEY.match(key):
            raise PersistenceError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}.json"

    def _write(self, key: str, text: str) -> None:
        file_path = self.path_for(key)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            # Temp file in the same directory keeps os.replace on one filesystem
            temp_fd, temp_path = tempfile.mkstemp(
                dir=file_path.parent,
                prefix=f".{key}_tmp_",
                suffix=".json"
            )
            try:
                with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(temp_path, file_path)
            except Exception:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write {file_path}: {e}") from e

    def _read(self, key: str) -> str | None:
        file_path = self.path_for(key)
        if not file_path.exists():
            return None
        try:
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Failed to read {file_path}: {e}") from e


class MemoryStore(KeyValueStore):
    """Non-durable store keeping serialized JSON text in a dict."""

    def __init__(self):
        self.blobs: dict[str, str] = {}

    def _write(self, key: str, text: str) -> None:
        self.blobs[key] = text

    def _read(self, key: str) -> str | None:
        return self.blobs.get(key)
