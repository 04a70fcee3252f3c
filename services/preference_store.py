"""
Durable key-value store for operator preferences.

Records are JSON objects kept together in a single JSON file so they survive
restarts. The portal currently stores one record: the delivery-order defaults
written by the order workflow.

FAILURE POLICY:
    Reading never fails the caller. A missing file, unreadable file, invalid
    JSON or a non-object record all read as "no record" and are logged for
    diagnostics only. A failed write is logged and reported as False.

Thread Safety:
    - A process-wide lock serialises read-modify-write cycles
    - Writes go to a temp file in the same directory, then os.replace()
      swaps it in, so readers never see a half-written file
    - No cross-process locking: last write wins

Usage:
    store = PreferenceStore(Path("instance/preferences.json"))

    store.set("deliveryOrderDefaults", {"deliverySettingId": "s1", ...})
    record = store.get("deliveryOrderDefaults")   # dict or None
    store.delete("deliveryOrderDefaults")
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class PreferenceStore:
    """
    JSON-file backed record store.

    Attributes:
        path: File holding all records
    """

    def __init__(self, path: Path):
        """
        Initialize the store. The file is created on first write.

        Args:
            path: Location of the preferences JSON file
        """
        self._path = Path(path)
        self._lock = threading.Lock()
        logger.info(f"PreferenceStore using {self._path}")

    @property
    def path(self) -> Path:
        """File holding all records."""
        return self._path

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Read one record.

        Returns:
            The record, or None if absent or unreadable
        """
        with self._lock:
            record = self._read_all().get(key)

        if record is None:
            return None
        if not isinstance(record, dict):
            logger.warning(
                f"Ignoring preference record '{key}': expected an object, "
                f"got {type(record).__name__}"
            )
            return None
        return record

    def set(self, key: str, record: Dict[str, Any]) -> bool:
        """
        Replace one record.

        Returns:
            True if the file was written, False otherwise
        """
        with self._lock:
            records = self._read_all()
            records[key] = record
            written = self._write_all(records)

        if written:
            logger.debug(f"Saved preference record '{key}'")
        return written

    def delete(self, key: str) -> bool:
        """
        Remove one record if present.

        Returns:
            True if a record was removed
        """
        with self._lock:
            records = self._read_all()
            if key not in records:
                return False
            del records[key]
            removed = self._write_all(records)

        if removed:
            logger.debug(f"Deleted preference record '{key}'")
        return removed

    def _read_all(self) -> Dict[str, Any]:
        """Load every record. Caller holds the lock."""
        if not self._path.exists():
            return {}

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in {self._path}, treating as empty: {e}")
            return {}
        except OSError as e:
            logger.warning(f"Could not read {self._path}, treating as empty: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(
                f"Unexpected {type(data).__name__} at top level of {self._path}, "
                "treating as empty"
            )
            return {}

        return data

    def _write_all(self, records: Dict[str, Any]) -> bool:
        """Atomically replace the file. Caller holds the lock."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)

            fd, temp_path = tempfile.mkstemp(suffix=".json", dir=self._path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(records, f, indent=2)
                os.replace(temp_path, self._path)
            except Exception:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise

        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write preferences to {self._path}: {e}")
            return False

        return True
