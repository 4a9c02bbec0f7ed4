"""Thread-safe fingerprint store used by the engine."""

import threading
from pathlib import Path
from typing import Dict, Optional

from watchbot.core.models import FingerprintRecord
from watchbot.core.storage import FingerprintStorage
from watchbot.core.storage_json import JsonFingerprintStorage
from watchbot.core.storage_sqlite import SQLiteFingerprintStorage

BACKENDS = ("json", "sqlite")


def create_storage(path: Path, backend: str = "json") -> FingerprintStorage:
    """
    Create a storage backend.
    
    Args:
        path: File backing the store
        backend: "json" or "sqlite"
        
    Returns:
        FingerprintStorage instance
    """
    if backend == "json":
        return JsonFingerprintStorage(path)
    if backend == "sqlite":
        return SQLiteFingerprintStorage(path)
    raise ValueError(f"Unknown store backend: {backend!r} (expected one of {', '.join(BACKENDS)})")


class FingerprintStore:
    """Serializes access to a storage backend and guards revision order."""
    
    def __init__(self, storage: FingerprintStorage):
        """
        Initialize fingerprint store.
        
        Args:
            storage: Storage backend
        """
        self.storage = storage
        self.lock = threading.Lock()
    
    def get(self, entity_key: str) -> Optional[FingerprintRecord]:
        """
        Get the last recorded state for an entity.
        
        Args:
            entity_key: Entity key
            
        Returns:
            FingerprintRecord or None if absent (or unreadable)
        """
        with self.lock:
            return self.storage.get(entity_key)
    
    def put(self, entity_key: str, fingerprint: str, revision: int) -> FingerprintRecord:
        """
        Advance the record for an entity.
        
        Args:
            entity_key: Entity key
            fingerprint: Fingerprint of the content just emitted
            revision: Revision of the task just emitted
            
        Returns:
            The stored record
            
        Raises:
            ValueError: If revision is lower than the stored revision
            OSError: If the backend could not persist the record
        """
        with self.lock:
            current = self.storage.get(entity_key)
            if current is not None and revision < current.last_task_revision:
                raise ValueError(
                    f"Revision for {entity_key} would go backwards "
                    f"({current.last_task_revision} -> {revision})"
                )
            record = FingerprintRecord(
                entity_key=entity_key,
                fingerprint=fingerprint,
                last_task_revision=revision,
            )
            self.storage.put(record)
            return record
    
    def all_records(self) -> Dict[str, FingerprintRecord]:
        with self.lock:
            return self.storage.all_records()
    
    def close(self) -> None:
        """Close storage backend."""
        with self.lock:
            self.storage.close()
