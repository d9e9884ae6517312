"""
Repository interfaces for the library entities.

These interfaces add the domain finders to the generic contract. Every
finder returns a new list in a deterministic order; callers that hold on
to it cannot reach the repository's internal storage.
"""
from abc import abstractmethod
from typing import List, Optional

from .base_repository import BaseRepository
from .models import Book, Loan, User


class BookRepository(BaseRepository[str, Book]):
    """Repository interface for Book operations, keyed by ISBN."""

    @abstractmethod
    def find_by_isbn(self, isbn: str) -> Optional[Book]:
        """Get a book by ISBN."""
        pass

    @abstractmethod
    def find_by_title_containing(self, keyword: str) -> List[Book]:
        """Books whose title contains ``keyword`` (case-insensitive), ordered by title."""
        pass

    @abstractmethod
    def find_by_author_containing(self, keyword: str) -> List[Book]:
        """Books with at least one matching author, ordered by first author then title."""
        pass

    @abstractmethod
    def find_all_order_by_title(self) -> List[Book]:
        """All books ordered by title, case-insensitive."""
        pass


class UserRepository(BaseRepository[str, User]):
    """Repository interface for User operations, keyed by matricola."""

    @abstractmethod
    def find_by_matricola(self, matricola: str) -> Optional[User]:
        """Get a user by matricola."""
        pass

    @abstractmethod
    def find_by_last_name_containing(self, keyword: str) -> List[User]:
        """Users whose last name contains ``keyword``, ordered by last then first name."""
        pass

    @abstractmethod
    def find_all_order_by_last_name_and_first_name(self) -> List[User]:
        """All users ordered by last then first name, case-insensitive."""
        pass


class LoanRepository(BaseRepository[str, Loan]):
    """Repository interface for the loan ledger, keyed by ``matricola:isbn:loan_date``."""

    @abstractmethod
    def find_by_user_matricola(self, matricola: str) -> List[Loan]:
        """Every loan (active or closed) of a user."""
        pass

    @abstractmethod
    def find_by_book_isbn(self, isbn: str) -> List[Loan]:
        """Every loan (active or closed) of a book."""
        pass

    @abstractmethod
    def find_active_loans_order_by_due_date(self) -> List[Loan]:
        """Active loans ordered by due date, then matricola, then ISBN."""
        pass

    @abstractmethod
    def find_active_loans_by_user(self, matricola: str) -> List[Loan]:
        """Active loans of a user ordered by due date, then ISBN."""
        pass
