"""
File-backed repository implementations.

A file-backed repository wraps an in-memory delegate that holds the data
between writes. The backing file is read once when the repository is
created; after that every mutating call rewrites the whole file from the
delegate's content.
"""
import logging
from pathlib import Path
from typing import Generic, List, Optional, TypeVar, Union

from .base_repository import BaseRepository
from .file_manager import BOOK_CODEC, LOAN_CODEC, USER_CODEC, FileManager, RecordCodec
from .models import Book, Loan, User
from .repositories import BookRepository, LoanRepository, UserRepository
from biblioteca.utils.error_handling import PersistenceError

ID = TypeVar('ID')
T = TypeVar('T')
logger = logging.getLogger(__name__)


class FileBackedRepository(BaseRepository[ID, T], Generic[ID, T]):
    """Persists a delegate repository's whole collection to one file.

    A failed write raises ``PersistenceError`` and puts the delegate back
    to its content before the call, so memory never runs ahead of the file.
    """

    def __init__(
        self,
        delegate: BaseRepository[ID, T],
        file_manager: FileManager,
        path: Union[str, Path],
        codec: RecordCodec[T],
    ):
        self._delegate = delegate
        self._file_manager = file_manager
        self._path = Path(path)
        self._codec = codec
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        records = self._file_manager.load(self._path, self._codec)
        self._delegate.delete_all()
        for record in records:
            self._delegate.save(record)
        logger.debug(f"Loaded {len(records)} records from {self._path}")

    def _persist(self, snapshot: List[T]) -> None:
        try:
            self._file_manager.save(self._path, self._codec, self._delegate.find_all())
        except PersistenceError:
            logger.warning(f"Write to {self._path} failed, restoring {len(snapshot)} records")
            self._delegate.delete_all()
            for record in snapshot:
                self._delegate.save(record)
            raise

    def save(self, entity: T) -> T:
        if entity is not None:
            # Reject reserved delimiters before the delegate changes
            self._codec.encode(entity)
        snapshot = self._delegate.find_all()
        saved = self._delegate.save(entity)
        self._persist(snapshot)
        return saved

    def find_by_id(self, id: ID) -> Optional[T]:
        return self._delegate.find_by_id(id)

    def find_all(self) -> List[T]:
        return self._delegate.find_all()

    def delete_by_id(self, id: ID) -> None:
        snapshot = self._delegate.find_all()
        self._delegate.delete_by_id(id)
        self._persist(snapshot)

    def delete_all(self) -> None:
        snapshot = self._delegate.find_all()
        self._delegate.delete_all()
        self._persist(snapshot)

    def exists_by_id(self, id: ID) -> bool:
        return self._delegate.exists_by_id(id)

    def count(self) -> int:
        return self._delegate.count()


class FileBackedBookRepository(FileBackedRepository[str, Book], BookRepository):
    """Book catalog persisted to the books file."""

    def __init__(self, delegate: BookRepository, file_manager: FileManager, path: Union[str, Path]):
        self._books = delegate
        super().__init__(delegate, file_manager, path, BOOK_CODEC)

    def find_by_isbn(self, isbn: str) -> Optional[Book]:
        return self._books.find_by_isbn(isbn)

    def find_by_title_containing(self, keyword: str) -> List[Book]:
        return self._books.find_by_title_containing(keyword)

    def find_by_author_containing(self, keyword: str) -> List[Book]:
        return self._books.find_by_author_containing(keyword)

    def find_all_order_by_title(self) -> List[Book]:
        return self._books.find_all_order_by_title()


class FileBackedUserRepository(FileBackedRepository[str, User], UserRepository):
    """Registered users persisted to the users file."""

    def __init__(self, delegate: UserRepository, file_manager: FileManager, path: Union[str, Path]):
        self._users = delegate
        super().__init__(delegate, file_manager, path, USER_CODEC)

    def find_by_matricola(self, matricola: str) -> Optional[User]:
        return self._users.find_by_matricola(matricola)

    def find_by_last_name_containing(self, keyword: str) -> List[User]:
        return self._users.find_by_last_name_containing(keyword)

    def find_all_order_by_last_name_and_first_name(self) -> List[User]:
        return self._users.find_all_order_by_last_name_and_first_name()


class FileBackedLoanRepository(FileBackedRepository[str, Loan], LoanRepository):
    """Loan ledger persisted to the loans file."""

    def __init__(self, delegate: LoanRepository, file_manager: FileManager, path: Union[str, Path]):
        self._loans = delegate
        super().__init__(delegate, file_manager, path, LOAN_CODEC)

    def find_by_user_matricola(self, matricola: str) -> List[Loan]:
        return self._loans.find_by_user_matricola(matricola)

    def find_by_book_isbn(self, isbn: str) -> List[Loan]:
        return self._loans.find_by_book_isbn(isbn)

    def find_active_loans_order_by_due_date(self) -> List[Loan]:
        return self._loans.find_active_loans_order_by_due_date()

    def find_active_loans_by_user(self, matricola: str) -> List[Loan]:
        return self._loans.find_active_loans_by_user(matricola)
