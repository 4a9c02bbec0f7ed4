"""JSON document backend for fingerprint persistence."""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from watchbot.core.errors import StoreCorruption
from watchbot.core.models import FingerprintRecord
from watchbot.core.storage import FingerprintStorage

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class JsonFingerprintStorage(FingerprintStorage):
    """
    Keeps all records in a single JSON document.

    The whole document is read once on construction and rewritten through a
    temporary file and os.replace() on every put, so a crash leaves either
    the old or the new document on disk, never a partial one.
    """
    
    def __init__(self, path: Path):
        """
        Initialize JSON storage.
        
        Args:
            path: Path to the JSON document (created on first put)
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._records: Dict[str, Dict[str, Any]] = self._load()
    
    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        
        try:
            return self._decode(self.path.read_bytes())
        except StoreCorruption as e:
            backup = self._quarantine()
            logger.warning(
                "Fingerprint store %s is corrupt (%s); starting empty, "
                "previous contents moved to %s",
                self.path, e, backup,
            )
            return {}
    
    @staticmethod
    def _decode(raw: bytes) -> Dict[str, Dict[str, Any]]:
        try:
            data = json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise StoreCorruption(f"not UTF-8: {e}") from e
        except json.JSONDecodeError as e:
            raise StoreCorruption(f"invalid JSON: {e}") from e
        
        if not isinstance(data, dict):
            raise StoreCorruption("top-level value is not an object")
        
        records = data.get("records")
        if not isinstance(records, dict):
            raise StoreCorruption("missing 'records' object")
        
        return records
    
    def _quarantine(self) -> Optional[Path]:
        stamp = datetime.utcnow().strftime("%Y%m%dT%H%M%S")
        backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            os.replace(self.path, backup)
        except OSError as e:
            logger.error("Could not move corrupt store %s aside: %s", self.path, e)
            return None
        return backup
    
    def get(self, entity_key: str) -> Optional[FingerprintRecord]:
        raw = self._records.get(entity_key)
        if raw is None:
            return None
        
        try:
            return _record_from_dict(entity_key, raw)
        except StoreCorruption as e:
            logger.warning(
                "Ignoring corrupt fingerprint record for %s (%s); treating as new",
                entity_key, e,
            )
            return None
    
    def put(self, record: FingerprintRecord) -> None:
        updated = dict(self._records)
        updated[record.entity_key] = {
            "fingerprint": record.fingerprint,
            "last_task_revision": record.last_task_revision,
            "updated_at": datetime.utcnow().isoformat() + "Z",
        }
        self._write(updated)
        self._records = updated
    
    def _write(self, records: Dict[str, Dict[str, Any]]) -> None:
        document = {"version": FORMAT_VERSION, "records": records}
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
    
    def all_records(self) -> Dict[str, FingerprintRecord]:
        result = {}
        for key in self._records:
            record = self.get(key)
            if record is not None:
                result[key] = record
        return result
    
    def close(self) -> None:
        """Nothing to release; every put is already on disk."""
        pass


def _record_from_dict(entity_key: str, raw: Any) -> FingerprintRecord:
    if not isinstance(raw, dict):
        raise StoreCorruption("record is not an object")
    
    fingerprint = raw.get("fingerprint")
    revision = raw.get("last_task_revision")
    if not isinstance(fingerprint, str) or not fingerprint:
        raise StoreCorruption("missing fingerprint")
    if isinstance(revision, bool) or not isinstance(revision, int) or revision < 0:
        raise StoreCorruption(f"invalid revision {revision!r}")
    
    return FingerprintRecord(
        entity_key=entity_key,
        fingerprint=fingerprint,
        last_task_revision=revision,
    )
