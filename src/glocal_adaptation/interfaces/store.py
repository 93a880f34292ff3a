"""Record store interfaces for the Glocal Adaptation Engine."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence


class IRecordStore(ABC):
    """
    Abstract interface for the durable record store.

    Records are plain dictionaries addressed by table name. Implementations
    are synchronous; async callers run them in a worker thread.
    """

    @abstractmethod
    def upsert(
        self,
        table: str,
        record: Mapping[str, Any],
        conflict_key: Sequence[str],
        ignore_duplicates: bool = False,
    ) -> None:
        """
        Insert a record, or update the existing one matching ``conflict_key``.

        Args:
            table: Table name.
            record: Column values.
            conflict_key: Columns that identify an existing record.
            ignore_duplicates: If True, leave an existing record untouched.
        """
        pass

    @abstractmethod
    def update(
        self,
        table: str,
        filters: Mapping[str, Any],
        patch: Mapping[str, Any],
    ) -> int:
        """
        Apply ``patch`` to every record matching ``filters``.

        Returns:
            Number of records updated.
        """
        pass

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Return records matching ``filters`` (equality on every given column).
        """
        pass


class IInitializationRegistry(ABC):
    """Persistent one-time initialization markers."""

    @abstractmethod
    def is_initialized(self, key: str) -> bool:
        pass

    @abstractmethod
    def mark_initialized(self, key: str) -> None:
        pass
