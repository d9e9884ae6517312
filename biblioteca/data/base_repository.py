"""
Base repository interface for entity storage.
"""
from abc import ABC, abstractmethod
import logging
from typing import Generic, List, Optional, TypeVar

ID = TypeVar('ID')
T = TypeVar('T')
logger = logging.getLogger(__name__)


class BaseRepository(Generic[ID, T], ABC):
    """Base class for all repository implementations.

    This abstract class defines the create/read/update/delete contract
    every storage layer follows, whether it keeps entities in memory or
    mirrors them to a file.

    Generic type ID is the natural identifier, T the entity model.
    """

    @abstractmethod
    def save(self, entity: T) -> T:
        """Insert or replace an entity, keyed by its natural identifier.

        Args:
            entity: Entity to store

        Returns:
            T: The stored entity

        Raises:
            ValidationError: If the entity or its identifier is missing
        """
        pass

    @abstractmethod
    def find_by_id(self, id: ID) -> Optional[T]:
        """Retrieve an entity by its ID.

        Args:
            id: Entity identifier

        Returns:
            Optional[T]: Entity if found, None otherwise
        """
        pass

    @abstractmethod
    def find_all(self) -> List[T]:
        """Retrieve all entities, in no particular order.

        Returns:
            List[T]: A new list of entities
        """
        pass

    @abstractmethod
    def delete_by_id(self, id: ID) -> None:
        """Delete an entity by its ID. Does nothing if it is absent.

        Args:
            id: Entity identifier
        """
        pass

    @abstractmethod
    def delete_all(self) -> None:
        """Remove every entity."""
        pass

    @abstractmethod
    def exists_by_id(self, id: ID) -> bool:
        """Check whether an entity with this ID is stored.

        Args:
            id: Entity identifier

        Returns:
            bool: True if present
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of stored entities."""
        pass
