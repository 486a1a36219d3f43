"""
Database Interface - Abstract Base Class for database operations.

This module defines the contract for all database implementations in
Digitale Kleiderkammer. Any database backend (SQLite, PostgreSQL, etc.)
must implement this interface.

Write methods never commit on their own: operations group them inside
transaction() so an article row and its ledger row are committed together.
Read methods return plain dicts; date columns come back as date, timestamps
as datetime.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import List, Optional, Dict, Any


class DatabaseInterface(ABC):
    """
    Abstract base class for database operations.

    This interface defines all methods required for managing:
    - Transactions and per-article / per-person exclusive access
    - Articles and their current location
    - The append-only movement ledger
    - Persons and their 1:1 locations
    """

    # ==================== Transactions & Locking ====================

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """
        Open a write transaction.

        Commits when the block exits normally, rolls back on any exception
        (the exception propagates). Nested use joins the outer transaction.
        """
        pass

    @abstractmethod
    def lock_article(self, article_id: str) -> AbstractContextManager:
        """
        Exclusive access to one article for the duration of a mutation.

        Mutations on different article ids do not block each other.
        """
        pass

    @abstractmethod
    def lock_person(self, person_id: int) -> AbstractContextManager:
        """Exclusive access to one person for the duration of a mutation."""
        pass

    # ==================== Location Operations ====================

    @property
    @abstractmethod
    def storage_location_id(self) -> int:
        """Id of the singleton storage location (resolved once at startup)."""
        pass

    @abstractmethod
    def get_person_location_id(self, person_id: int) -> Optional[int]:
        """
        Get the location id belonging to a person.

        Returns:
            Location id, or None if the person has no location
        """
        pass

    # ==================== Article Operations ====================

    @abstractmethod
    def insert_article(
        self,
        article_id: str,
        category: str,
        label: str,
        location_id: int,
        created_at: datetime,
        size: Optional[str] = None,
        notes: Optional[str] = None,
        expiry_date=None,
        helmet_manufactured_at=None,
        helmet_last_check=None,
        helmet_next_check=None,
    ) -> None:
        """
        Insert a new article.

        Raises:
            ConflictError: If an article with this id already exists
        """
        pass

    @abstractmethod
    def get_article(self, article_id: str) -> Optional[Dict[str, Any]]:
        """
        Get an active article joined with its live location.

        Returns:
            Dict with article columns plus location_kind, location_name,
            person_id, first_name, last_name, last_movement_at;
            None if not found or retired
        """
        pass

    @abstractmethod
    def get_article_for_update(self, article_id: str) -> Optional[Dict[str, Any]]:
        """
        Get the raw article row (active or retired) inside a transaction.

        Returns:
            Dict of article columns, or None if not found
        """
        pass

    @abstractmethod
    def list_articles(self, assigned_only: bool = False) -> List[Dict[str, Any]]:
        """
        List active articles ordered by id.

        Args:
            assigned_only: Only articles currently held by a person
        """
        pass

    @abstractmethod
    def list_person_articles(self, person_id: int) -> List[Dict[str, Any]]:
        """List active articles held by one person."""
        pass

    @abstractmethod
    def update_article_fields(
        self,
        article_id: str,
        fields: Dict[str, Any],
        updated_at: datetime,
    ) -> bool:
        """
        Update the given columns of an article.

        Args:
            fields: Column name -> new value (only whitelisted columns)
            updated_at: New updated_at timestamp

        Returns:
            True if a row was updated
        """
        pass

    @abstractmethod
    def update_article_location(
        self,
        article_id: str,
        location_id: int,
        updated_at: datetime,
    ) -> bool:
        """Point an article at a new location."""
        pass

    @abstractmethod
    def retire_article(self, article_id: str, updated_at: datetime) -> bool:
        """
        Soft-delete an article (active = 0).

        Returns:
            True if an active article was retired
        """
        pass

    @abstractmethod
    def count_active_articles_at_location(self, location_id: int) -> int:
        """Count active articles referencing a location."""
        pass

    @abstractmethod
    def move_retired_articles(self, from_location_id: int, to_location_id: int) -> int:
        """
        Re-point retired articles from one location to another.

        Used before a person's location is removed.

        Returns:
            Number of rows moved
        """
        pass

    # ==================== Movement Ledger ====================

    @abstractmethod
    def insert_movement(
        self,
        article_id: str,
        action: str,
        event_type: Optional[str],
        from_location_id: Optional[int],
        to_location_id: Optional[int],
        performed_at: datetime,
        old_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
        performed_by: Optional[str] = None,
    ) -> int:
        """
        Append a ledger row.

        Returns:
            New movement id
        """
        pass

    @abstractmethod
    def get_article_movements(
        self,
        article_id: str,
        limit: int = 3,
    ) -> List[Dict[str, Any]]:
        """
        Get most recent movements of an article (newest first).

        Each row includes from_kind/from_name/from_person_id and
        to_kind/to_name/to_person_id (None if the location is gone).
        """
        pass

    @abstractmethod
    def count_article_movements(self, article_id: str) -> int:
        """Count all ledger rows of an article."""
        pass

    # ==================== Person Operations ====================

    @abstractmethod
    def insert_person(
        self,
        first_name: str,
        last_name: str,
        created_at: datetime,
        status: str = "active",
    ) -> int:
        """
        Insert a person (without location).

        Returns:
            New person id
        """
        pass

    @abstractmethod
    def insert_person_location(self, person_id: int, name: str) -> int:
        """
        Create the 1:1 location of a person.

        Returns:
            New location id
        """
        pass

    @abstractmethod
    def rename_person_location(self, person_id: int, name: str) -> bool:
        """Rename the location of a person."""
        pass

    @abstractmethod
    def get_person(self, person_id: int) -> Optional[Dict[str, Any]]:
        """Get person by id, None if not found."""
        pass

    @abstractmethod
    def list_persons(self) -> List[Dict[str, Any]]:
        """
        List all persons with their active article count.

        Ordered by last name, then first name (case-insensitive).
        """
        pass

    @abstractmethod
    def update_person_fields(self, person_id: int, fields: Dict[str, Any]) -> bool:
        """Update the given columns of a person."""
        pass

    @abstractmethod
    def delete_person(self, person_id: int) -> bool:
        """
        Delete a person and (by cascade) their location.

        Returns:
            True if deleted, False if not found
        """
        pass

    # ==================== Utility Operations ====================

    @abstractmethod
    def ping(self) -> bool:
        """Check that the database answers a trivial query."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close database connection."""
        pass
