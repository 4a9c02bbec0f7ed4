"""Abstract storage interface for fingerprint persistence."""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from watchbot.core.models import FingerprintRecord


class FingerprintStorage(ABC):
    """Abstract base class for fingerprint storage backends."""
    
    @abstractmethod
    def get(self, entity_key: str) -> Optional[FingerprintRecord]:
        """
        Get the record for an entity.
        
        Args:
            entity_key: Stable external identifier of the entity
            
        Returns:
            FingerprintRecord or None if the entity was never recorded
        """
        pass
    
    @abstractmethod
    def put(self, record: FingerprintRecord) -> None:
        """
        Durably create or replace the record for an entity.
        
        Args:
            record: Record to persist
            
        Raises:
            OSError: If the record could not be written
        """
        pass
    
    @abstractmethod
    def all_records(self) -> Dict[str, FingerprintRecord]:
        """
        Get every readable record.
        
        Returns:
            Mapping of entity key to record
        """
        pass
    
    @abstractmethod
    def close(self) -> None:
        """Release any resources held by the backend."""
        pass
