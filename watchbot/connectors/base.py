"""Source connector contract."""

from abc import ABC, abstractmethod
from typing import List

from watchbot.core.models import Entity, RawFeedback


class SourceConnector(ABC):
    """Read-only view of an external system of record."""

    @abstractmethod
    def list_open_entities(self) -> List[Entity]:
        """
        List entities that may carry actionable feedback.
        
        Returns:
            Entities, freshly read
            
        Raises:
            ConnectorError: On transport, auth or response failures
        """
        pass

    @abstractmethod
    def list_feedback(self, entity: Entity) -> RawFeedback:
        """
        Fetch all raw feedback for an entity.
        
        Args:
            entity: Entity returned by list_open_entities
            
        Returns:
            RawFeedback with per-kind records in source order
            
        Raises:
            ConnectorError: On transport, auth or response failures
        """
        pass

    def describe(self) -> str:
        """Short human-readable description for startup output."""
        return type(self).__name__
