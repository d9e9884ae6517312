"""
Loan lifecycle service.

This service owns every transition of the loan ledger and keeps it
consistent with the catalog: a book's available copies always equal its
total copies minus its active loans, and no user holds more than
``MAX_ACTIVE_LOANS`` active loans.
"""
from datetime import date
from typing import Callable, List, Optional

from biblioteca.config.logging_config import get_logger
from biblioteca.data.models import Loan, loan_id
from biblioteca.data.repositories import BookRepository, LoanRepository, UserRepository
from biblioteca.events.event_interface import EventEmitter, EventType
from biblioteca.services.base_service import BaseService
from biblioteca.utils.error_handling import NotFoundError, PersistenceError
from biblioteca.utils.validators import require_isbn, require_matricola

logger = get_logger(__name__)

MAX_ACTIVE_LOANS = 3


class LoanService(BaseService):
    """Registers loans and returns, and answers queries on the ledger.

    Every check of an operation runs before its first write, in a fixed
    order, and the first failing check decides the error raised.

    Args:
        loan_repository: Storage of the loan ledger
        book_repository: Storage of the catalog
        user_repository: Storage of the registered users
        events: Emitter receiving LOAN_REGISTERED / LOAN_RETURNED
        today: Callable returning the current date
    """

    def __init__(
        self,
        loan_repository: LoanRepository,
        book_repository: BookRepository,
        user_repository: UserRepository,
        events: Optional[EventEmitter] = None,
        today: Callable[[], date] = date.today,
    ):
        super().__init__(events)
        self.loan_repository = loan_repository
        self.book_repository = book_repository
        self.user_repository = user_repository
        self.today = today

    def register_loan(self, matricola: str, isbn: str, loan_date: date, due_date: date) -> Loan:
        """
        Lend one copy of a book to a user.

        Args:
            matricola: The borrowing user
            isbn: The lent book
            loan_date: Day the loan starts, not in the future
            due_date: Expected return day, not before ``loan_date``

        Returns:
            Loan: The new active loan

        Raises:
            ValidationError: On malformed input or a violated loan rule
            NotFoundError: If the user or the book does not exist
            PersistenceError: If the ledger or the catalog cannot be written
        """
        op = "register_loan"
        self.check(op, require_matricola, matricola)
        self.check(op, require_isbn, isbn)

        if loan_date is None or due_date is None:
            self.reject(op, "Loan date and due date are required")
        if due_date < loan_date:
            self.reject(op, f"Due date {due_date} is before loan date {loan_date}")
        if loan_date > self.today():
            self.reject(op, f"Loan date {loan_date} is in the future")

        if self.user_repository.find_by_matricola(matricola) is None:
            self.reject(op, f"User {matricola} not found", NotFoundError, matricola=matricola)
        book = self.book_repository.find_by_isbn(isbn)
        if book is None:
            self.reject(op, f"Book {isbn} not found", NotFoundError, isbn=isbn)

        if book.available_copies <= 0:
            self.reject(op, f"No copies available for book {isbn}", isbn=isbn)

        active_loans = self.loan_repository.find_active_loans_by_user(matricola)
        if len(active_loans) >= MAX_ACTIVE_LOANS:
            self.reject(
                op,
                f"Borrowing limit reached: user {matricola} already has {MAX_ACTIVE_LOANS} active loans",
                matricola=matricola,
            )
        if any(loan.book_isbn == isbn for loan in active_loans):
            self.reject(op, f"Duplicate active loan: user {matricola} already holds book {isbn}")

        key = loan_id(matricola, isbn, loan_date)
        if self.loan_repository.exists_by_id(key):
            self.reject(op, f"A loan of book {isbn} to user {matricola} on {loan_date} is already recorded")

        loan = Loan(user_matricola=matricola, book_isbn=isbn, loan_date=loan_date, due_date=due_date)
        self.loan_repository.save(loan)

        book.available_copies -= 1
        try:
            self.book_repository.save(book)
        except PersistenceError as e:
            self.handle_error(e, op)
            logger.warning(f"Removing loan {key} after failed inventory update of book {isbn}")
            self.loan_repository.delete_by_id(key)
            self._restore_book(isbn, book.available_copies + 1)
            raise PersistenceError(
                f"Loan not registered: could not update inventory of book {isbn}",
                cause=e,
                details={"loan": key},
            ) from e

        logger.info(f"Registered loan {key} due {due_date}, {book.available_copies} copies left")
        self.emit(EventType.LOAN_REGISTERED, loan.to_dict())
        return loan

    def _restore_book(self, isbn: str, available_copies: int) -> None:
        """Reset the available copies of a book whose inventory write failed."""
        current = self.book_repository.find_by_isbn(isbn)
        if current is None or current.available_copies == available_copies:
            return
        current.available_copies = available_copies
        try:
            self.book_repository.save(current)
        except PersistenceError as e:
            logger.error(f"Could not restore available copies of book {isbn}: {e}")

    def register_return(self, loan: Loan, return_date: date) -> Loan:
        """
        Close an active loan and give its copy back to the catalog.

        The caller's ``loan`` object receives the return date as well.

        Raises:
            ValidationError: If the loan was already returned or the date is invalid
            NotFoundError: If the loan or its book no longer exists
            PersistenceError: If the ledger or the catalog cannot be written
        """
        op = "register_return"
        if loan is None:
            self.reject(op, "Loan is required")
        if return_date is None:
            self.reject(op, "Return date is required")

        key = loan.key()
        stored = self.loan_repository.find_by_id(key)
        if stored is None:
            self.reject(op, f"Loan {key} not found", NotFoundError, loan=key)
        if not loan.is_active() or not stored.is_active():
            self.reject(op, f"Loan {key} already returned", loan=key)
        if return_date < stored.loan_date:
            self.reject(op, f"Return date {return_date} is before loan date {stored.loan_date}")

        book = self.book_repository.find_by_isbn(stored.book_isbn)
        if book is None:
            self.reject(op, f"Book {stored.book_isbn} not found", NotFoundError, isbn=stored.book_isbn)
        if book.available_copies + 1 > book.total_copies:
            self.reject(
                op,
                f"Book {book.isbn} already has all {book.total_copies} copies available",
                isbn=book.isbn,
            )

        stored.return_date = return_date
        self.loan_repository.save(stored)

        book.available_copies += 1
        try:
            self.book_repository.save(book)
        except PersistenceError as e:
            self.handle_error(e, op)
            logger.warning(f"Reopening loan {key} after failed inventory update of book {book.isbn}")
            stored.return_date = None
            self.loan_repository.save(stored)
            self._restore_book(book.isbn, book.available_copies - 1)
            raise PersistenceError(
                f"Return not registered: could not update inventory of book {book.isbn}",
                cause=e,
                details={"loan": key},
            ) from e
        loan.return_date = return_date

        logger.info(f"Returned loan {key} on {return_date}, {book.available_copies} copies available")
        self.emit(EventType.LOAN_RETURNED, stored.to_dict())
        return stored

    def get_active_loans_ordered_by_due_date(self) -> List[Loan]:
        return self.loan_repository.find_active_loans_order_by_due_date()

    def get_active_loans_by_user(self, matricola: str) -> List[Loan]:
        return self.loan_repository.find_active_loans_by_user(matricola)

    def count_active_loans_for_user(self, matricola: str) -> int:
        return len(self.loan_repository.find_active_loans_by_user(matricola))

    def count_active_loans_by_isbn(self, isbn: Optional[str]) -> int:
        """Number of active loans of a book, 0 for a missing ISBN."""
        if isbn is None:
            return 0
        return sum(1 for loan in self.loan_repository.find_by_book_isbn(isbn) if loan.is_active())

    def get_loans_by_user(self, matricola: str) -> List[Loan]:
        """Full loan history of a user, newest loan first."""
        loans = self.loan_repository.find_by_user_matricola(matricola)
        loans.sort(key=lambda loan: loan.book_isbn)
        loans.sort(key=lambda loan: loan.loan_date, reverse=True)
        return loans

    def get_overdue_loans(self, reference_date: Optional[date] = None) -> List[Loan]:
        """Active loans past their due date on ``reference_date`` (default today)."""
        reference = reference_date or self.today()
        return [
            loan for loan in self.loan_repository.find_active_loans_order_by_due_date()
            if loan.is_overdue(reference)
        ]

    def find_loan(self, matricola: str, isbn: str, loan_date: date) -> Loan:
        """Look up a loan by its ledger key.

        Raises:
            ValidationError: If the loan date is missing
            NotFoundError: If no such loan exists
        """
        if loan_date is None:
            self.reject("find_loan", "Loan date is required")
        key = loan_id(matricola, isbn, loan_date)
        loan = self.loan_repository.find_by_id(key)
        if loan is None:
            raise NotFoundError(f"Loan {key} not found", details={"loan": key})
        return loan
