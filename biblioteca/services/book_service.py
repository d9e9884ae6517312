"""
Catalog management: adding, editing, removing and searching books.
"""
from datetime import date
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple, Union

from biblioteca.config.logging_config import get_logger
from biblioteca.data.models import Book
from biblioteca.data.repositories import BookRepository
from biblioteca.events.event_interface import EventEmitter, EventType
from biblioteca.services.base_service import BaseService
from biblioteca.services.loan_service import LoanService
from biblioteca.utils.error_handling import NotFoundError
from biblioteca.utils.validators import normalize_text, parse_authors, require_isbn, require_text

logger = get_logger(__name__)

Authors = Union[str, Iterable[str], None]


def _semantic_key(title: str, authors: Iterable[str], year: int) -> Tuple[str, FrozenSet[str], int]:
    return normalize_text(title), frozenset(normalize_text(a) for a in authors), year


class BookService(BaseService):
    """Orchestrates catalog changes over the book repository.

    Structural edits (ISBN change, removal) are refused while the book has
    active loans, since the ledger refers to books by ISBN.
    """

    def __init__(
        self,
        book_repository: BookRepository,
        loan_service: LoanService,
        events: Optional[EventEmitter] = None,
        today: Callable[[], date] = date.today,
    ):
        super().__init__(events)
        self.book_repository = book_repository
        self.loan_service = loan_service
        self.today = today

    def _validate(
        self, op: str, isbn: str, title: str, authors: Authors, year: int, total_copies: int
    ) -> Tuple[str, List[str]]:
        self.check(op, require_isbn, isbn)
        title = self.check(op, require_text, title, "Title")
        author_list = parse_authors(authors)
        if not author_list:
            self.reject(op, "At least one author is required")
        current_year = self.today().year
        if year is None or not 1 <= year <= current_year:
            self.reject(op, f"Year must be between 1 and {current_year}: {year!r}")
        if total_copies is None or total_copies < 1:
            self.reject(op, f"Total copies must be at least 1: {total_copies!r}")
        return title, author_list

    def _find_semantic_duplicate(
        self, title: str, authors: List[str], year: int, exclude_isbn: Optional[str] = None
    ) -> Optional[Book]:
        key = _semantic_key(title, authors, year)
        for book in self.book_repository.find_all():
            if book.isbn != exclude_isbn and _semantic_key(book.title, book.authors, book.year) == key:
                return book
        return None

    def add_book(self, isbn: str, title: str, authors: Authors, year: int, total_copies: int) -> Book:
        """
        Add a new book with every copy available.

        A book with the same title, authors and year as an existing one is a
        duplicate even under a different ISBN; a different year is a new
        edition and is accepted.

        Raises:
            ValidationError: On malformed input or a duplicate
        """
        op = "add_book"
        title, author_list = self._validate(op, isbn, title, authors, year, total_copies)

        if self.book_repository.exists_by_id(isbn):
            self.reject(op, f"A book with ISBN {isbn} already exists", isbn=isbn)
        duplicate = self._find_semantic_duplicate(title, author_list, year)
        if duplicate is not None:
            self.reject(op, f"Book already in catalog as ISBN {duplicate.isbn}", isbn=duplicate.isbn)

        book = Book(
            isbn=isbn,
            title=title,
            authors=author_list,
            year=year,
            total_copies=total_copies,
            available_copies=total_copies,
        )
        saved = self.book_repository.save(book)
        logger.info(f"Added book {isbn} '{title}' with {total_copies} copies")
        self.emit(EventType.BOOK_ADDED, saved.to_dict())
        return saved

    def update_book(
        self,
        old_isbn: str,
        new_isbn: str,
        title: str,
        authors: Authors,
        year: int,
        total_copies: int,
    ) -> Book:
        """
        Edit a book, possibly changing its ISBN.

        Available copies are recomputed from the active loans of the book.

        Raises:
            NotFoundError: If ``old_isbn`` is not in the catalog
            ValidationError: On malformed input, a duplicate, fewer copies than
                active loans, or an ISBN change while loans are active
        """
        op = "update_book"
        self.check(op, require_isbn, old_isbn)
        title, author_list = self._validate(op, new_isbn, title, authors, year, total_copies)

        existing = self.book_repository.find_by_isbn(old_isbn)
        if existing is None:
            self.reject(op, f"Book {old_isbn} not found", NotFoundError, isbn=old_isbn)

        active = self.loan_service.count_active_loans_by_isbn(old_isbn)
        available = total_copies - active
        if available < 0:
            self.reject(
                op,
                f"Total copies ({total_copies}) cannot be less than active loans ({active}) for book {old_isbn}",
                isbn=old_isbn,
            )

        isbn_changed = new_isbn != old_isbn
        if isbn_changed:
            if active > 0:
                self.reject(op, f"Cannot change ISBN of book {old_isbn}: it has {active} active loans")
            if self.book_repository.exists_by_id(new_isbn):
                self.reject(op, f"A book with ISBN {new_isbn} already exists", isbn=new_isbn)

        duplicate = self._find_semantic_duplicate(title, author_list, year, exclude_isbn=old_isbn)
        if duplicate is not None:
            self.reject(op, f"Book already in catalog as ISBN {duplicate.isbn}", isbn=duplicate.isbn)

        book = Book(
            isbn=new_isbn,
            title=title,
            authors=author_list,
            year=year,
            total_copies=total_copies,
            available_copies=available,
        )
        # New record first: a rejected record leaves the old one in place
        saved = self.book_repository.save(book)
        if isbn_changed:
            self.book_repository.delete_by_id(old_isbn)

        logger.info(f"Updated book {old_isbn}" + (f" as {new_isbn}" if isbn_changed else ""))
        self.emit(EventType.BOOK_UPDATED, {"old_isbn": old_isbn, **saved.to_dict()})
        return saved

    def delete_book(self, isbn: str) -> None:
        """Remove a book with no active loans.

        Raises:
            NotFoundError: If the book does not exist
            ValidationError: On a malformed ISBN or if the book is on loan
        """
        op = "delete_book"
        self.check(op, require_isbn, isbn)
        if not self.book_repository.exists_by_id(isbn):
            self.reject(op, f"Book {isbn} not found", NotFoundError, isbn=isbn)
        active = self.loan_service.count_active_loans_by_isbn(isbn)
        if active > 0:
            self.reject(op, f"Cannot delete book {isbn}: it has {active} active loans", isbn=isbn)

        self.book_repository.delete_by_id(isbn)
        logger.info(f"Deleted book {isbn}")
        self.emit(EventType.BOOK_DELETED, {"isbn": isbn})

    def get_book(self, isbn: str) -> Optional[Book]:
        return self.book_repository.find_by_isbn(isbn)

    def search_by_title(self, keyword: str) -> List[Book]:
        return self.book_repository.find_by_title_containing(keyword)

    def search_by_author(self, keyword: str) -> List[Book]:
        return self.book_repository.find_by_author_containing(keyword)

    def get_all_books_ordered_by_title(self) -> List[Book]:
        return self.book_repository.find_all_order_by_title()

    def search_books(self, keyword: Optional[str]) -> List[Book]:
        """Books whose ISBN, title or any author contains ``keyword``, ordered by title.

        A blank keyword returns the whole catalog.
        """
        books = self.book_repository.find_all_order_by_title()
        if keyword is None or not keyword.strip():
            return books
        needle = keyword.strip().casefold()
        return [
            book for book in books
            if needle in book.isbn
            or (book.title and needle in book.title.casefold())
            or any(needle in author.casefold() for author in book.authors)
        ]
