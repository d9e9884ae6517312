"""
Entities and storage for the library core.
"""

from biblioteca.data.models import Book, Loan, User, loan_id
from biblioteca.data.base_repository import BaseRepository
from biblioteca.data.repositories import BookRepository, LoanRepository, UserRepository
from biblioteca.data.memory_repository import (
    InMemoryBookRepository,
    InMemoryLoanRepository,
    InMemoryRepository,
    InMemoryUserRepository,
)
from biblioteca.data.file_manager import FileManager
from biblioteca.data.file_repository import (
    FileBackedBookRepository,
    FileBackedLoanRepository,
    FileBackedRepository,
    FileBackedUserRepository,
)

__all__ = [
    "Book",
    "Loan",
    "User",
    "loan_id",
    "BaseRepository",
    "BookRepository",
    "LoanRepository",
    "UserRepository",
    "InMemoryRepository",
    "InMemoryBookRepository",
    "InMemoryLoanRepository",
    "InMemoryUserRepository",
    "FileManager",
    "FileBackedRepository",
    "FileBackedBookRepository",
    "FileBackedLoanRepository",
    "FileBackedUserRepository",
]
