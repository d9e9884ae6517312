"""
In-memory repository implementations.

These repositories are the single source of truth between writes. The
file-backed repositories wrap them and only add persistence.
"""
import copy
import logging
from abc import abstractmethod
from datetime import date
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from .base_repository import BaseRepository
from .models import Book, Loan, User, loan_id
from .repositories import BookRepository, LoanRepository, UserRepository
from biblioteca.utils.error_handling import ValidationError

ID = TypeVar('ID')
T = TypeVar('T')
logger = logging.getLogger(__name__)


def text_sort_key(value: Optional[str]) -> Tuple[bool, str]:
    """Case-insensitive ordering with None after every string."""
    return (value is None, value.casefold() if value is not None else "")


def date_sort_key(value: Optional[date]) -> Tuple[bool, date]:
    """Chronological ordering with None after every date."""
    return (value is None, value if value is not None else date.max)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class InMemoryRepository(BaseRepository[ID, T], Generic[ID, T]):
    """In-memory repository implementation.

    Entities are copied when stored and when returned, so nothing outside
    the repository can change its content without calling ``save``.
    """

    entity_name = "entity"

    def __init__(self):
        """Initialize the repository with an empty store."""
        self._store: Dict[ID, T] = {}

    @abstractmethod
    def _entity_id(self, entity: T) -> Optional[ID]:
        """Extract the natural identifier of an entity."""
        pass

    def save(self, entity: T) -> T:
        """Insert or replace an entity.

        Args:
            entity: Entity to store

        Returns:
            T: A copy of the stored entity
        """
        if entity is None:
            raise ValidationError(f"{self.entity_name} must not be None")

        entity_id = self._entity_id(entity)
        if entity_id is None or entity_id == "":
            raise ValidationError(f"{self.entity_name} identifier must not be empty")

        self._store[entity_id] = copy.deepcopy(entity)
        logger.debug(f"Stored {self.entity_name} {entity_id}")
        return copy.deepcopy(entity)

    def find_by_id(self, id: ID) -> Optional[T]:
        if id is None:
            return None
        entity = self._store.get(id)
        return copy.deepcopy(entity) if entity is not None else None

    def find_all(self) -> List[T]:
        return [copy.deepcopy(entity) for entity in self._store.values()]

    def delete_by_id(self, id: ID) -> None:
        if id is None:
            return
        if self._store.pop(id, None) is not None:
            logger.debug(f"Deleted {self.entity_name} {id}")

    def delete_all(self) -> None:
        self._store.clear()

    def exists_by_id(self, id: ID) -> bool:
        if id is None:
            return False
        return id in self._store

    def count(self) -> int:
        return len(self._store)

    def _select(self, predicate: Callable[[T], bool], sort_key: Optional[Callable[[T], Any]] = None) -> List[T]:
        """Copy out the entities matching ``predicate``, optionally sorted."""
        result = [copy.deepcopy(entity) for entity in self._store.values() if predicate(entity)]
        if sort_key is not None:
            result.sort(key=sort_key)
        return result


def _book_title_key(book: Book) -> Tuple:
    return text_sort_key(book.title)


def _book_author_key(book: Book) -> Tuple:
    first_author = book.authors[0] if book.authors else ""
    return text_sort_key(first_author) + text_sort_key(book.title)


class InMemoryBookRepository(InMemoryRepository[str, Book], BookRepository):
    """Book catalog held in a dict keyed by ISBN."""

    entity_name = "book"

    def _entity_id(self, entity: Book) -> Optional[str]:
        return entity.isbn

    def find_by_isbn(self, isbn: str) -> Optional[Book]:
        return self.find_by_id(isbn)

    def find_by_title_containing(self, keyword: str) -> List[Book]:
        if _is_blank(keyword):
            return []
        needle = keyword.strip().casefold()
        return self._select(
            lambda book: book.title is not None and needle in book.title.casefold(),
            _book_title_key,
        )

    def find_by_author_containing(self, keyword: str) -> List[Book]:
        if _is_blank(keyword):
            return []
        needle = keyword.strip().casefold()
        return self._select(
            lambda book: any(author and needle in author.casefold() for author in book.authors),
            _book_author_key,
        )

    def find_all_order_by_title(self) -> List[Book]:
        return self._select(lambda book: True, _book_title_key)


def _user_name_key(user: User) -> Tuple:
    return text_sort_key(user.last_name) + text_sort_key(user.first_name)


class InMemoryUserRepository(InMemoryRepository[str, User], UserRepository):
    """Registered users held in a dict keyed by matricola."""

    entity_name = "user"

    def _entity_id(self, entity: User) -> Optional[str]:
        return entity.matricola

    def find_by_matricola(self, matricola: str) -> Optional[User]:
        return self.find_by_id(matricola)

    def find_by_last_name_containing(self, keyword: str) -> List[User]:
        if _is_blank(keyword):
            return []
        needle = keyword.strip().casefold()
        return self._select(
            lambda user: user.last_name is not None and needle in user.last_name.casefold(),
            _user_name_key,
        )

    def find_all_order_by_last_name_and_first_name(self) -> List[User]:
        return self._select(lambda user: True, _user_name_key)


def _active_ledger_key(loan: Loan) -> Tuple:
    return date_sort_key(loan.due_date) + (loan.user_matricola, loan.book_isbn)


def _active_user_key(loan: Loan) -> Tuple:
    return date_sort_key(loan.due_date) + (loan.book_isbn,)


class InMemoryLoanRepository(InMemoryRepository[str, Loan], LoanRepository):
    """Loan ledger held in a dict keyed by ``matricola:isbn:loan_date``."""

    entity_name = "loan"

    def _entity_id(self, entity: Loan) -> Optional[str]:
        return loan_id(entity.user_matricola, entity.book_isbn, entity.loan_date)

    def find_by_user_matricola(self, matricola: str) -> List[Loan]:
        if _is_blank(matricola):
            return []
        return self._select(lambda loan: loan.user_matricola == matricola)

    def find_by_book_isbn(self, isbn: str) -> List[Loan]:
        if _is_blank(isbn):
            return []
        return self._select(lambda loan: loan.book_isbn == isbn)

    def find_active_loans_order_by_due_date(self) -> List[Loan]:
        return self._select(lambda loan: loan.is_active(), _active_ledger_key)

    def find_active_loans_by_user(self, matricola: str) -> List[Loan]:
        if _is_blank(matricola):
            return []
        return self._select(
            lambda loan: loan.is_active() and loan.user_matricola == matricola,
            _active_user_key,
        )

