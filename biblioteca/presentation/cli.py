"""
Command-line interface for the library.

Every invocation loads the backing files, runs one command against the
services and prints the result. Rejected operations are reported as
``Error: <reason>`` with exit status 1.
"""

import argparse
import sys
from datetime import date, timedelta
from typing import Callable, Iterable, List, Optional

from biblioteca import __version__
from biblioteca.application import LibraryApplication
from biblioteca.config import Settings, settings as default_settings
from biblioteca.config.logging_config import get_logger, setup_logging
from biblioteca.data.models import Book, Loan, User
from biblioteca.utils.error_handling import AppError, NotFoundError
from biblioteca.utils.validators import parse_authors, parse_date

logger = get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def format_book(book: Book) -> str:
    return (
        f"{book.isbn}  {book.title} - {book.authors_as_string()} ({book.year})  "
        f"{book.available_copies}/{book.total_copies} available"
    )


def format_user(user: User) -> str:
    return f"{user.matricola}  {user.last_name}, {user.first_name}  <{user.email}>"


def format_loan(loan: Loan, today: Optional[date] = None) -> str:
    if loan.return_date is not None:
        status = f"returned {loan.return_date.isoformat()}"
    elif today is not None and loan.is_overdue(today):
        status = "OVERDUE"
    else:
        status = "active"
    return (
        f"{loan.user_matricola}  {loan.book_isbn}  {loan.loan_date.isoformat()} -> "
        f"{loan.due_date.isoformat()}  {status}"
    )


def _print_lines(lines: Iterable[str], empty_message: str) -> None:
    lines = list(lines)
    if not lines:
        print(empty_message)
    for line in lines:
        print(line)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with the book, user and loan commands."""
    parser = argparse.ArgumentParser(prog="biblioteca", description="Library loan ledger")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--data-dir", help="Directory holding the data files")
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="Set logging level")
    groups = parser.add_subparsers(dest="group", required=True)

    # Books
    book = groups.add_parser("book", help="Manage the catalog").add_subparsers(dest="command", required=True)

    cmd = book.add_parser("add", help="Add a book")
    cmd.add_argument("isbn")
    cmd.add_argument("--title", required=True)
    cmd.add_argument("--authors", required=True, help="Authors separated by ',' or ';'")
    cmd.add_argument("--year", type=int, required=True)
    cmd.add_argument("--copies", type=int, default=1, help="Total copies")
    cmd.set_defaults(handler=_book_add)

    cmd = book.add_parser("update", help="Edit a book")
    cmd.add_argument("isbn")
    cmd.add_argument("--new-isbn")
    cmd.add_argument("--title")
    cmd.add_argument("--authors")
    cmd.add_argument("--year", type=int)
    cmd.add_argument("--copies", type=int)
    cmd.set_defaults(handler=_book_update)

    cmd = book.add_parser("delete", help="Remove a book")
    cmd.add_argument("isbn")
    cmd.set_defaults(handler=_book_delete)

    cmd = book.add_parser("list", help="List the catalog by title")
    cmd.set_defaults(handler=_book_list)

    cmd = book.add_parser("search", help="Search by ISBN, title or author")
    cmd.add_argument("keyword", nargs="?", default="")
    cmd.set_defaults(handler=_book_search)

    # Users
    user = groups.add_parser("user", help="Manage registered users").add_subparsers(dest="command", required=True)

    cmd = user.add_parser("add", help="Register a user")
    cmd.add_argument("matricola")
    cmd.add_argument("--first-name", required=True)
    cmd.add_argument("--last-name", required=True)
    cmd.add_argument("--email", required=True)
    cmd.set_defaults(handler=_user_add)

    cmd = user.add_parser("update", help="Edit a user")
    cmd.add_argument("matricola")
    cmd.add_argument("--new-matricola")
    cmd.add_argument("--first-name")
    cmd.add_argument("--last-name")
    cmd.add_argument("--email")
    cmd.set_defaults(handler=_user_update)

    cmd = user.add_parser("delete", help="Remove a user")
    cmd.add_argument("matricola")
    cmd.set_defaults(handler=_user_delete)

    cmd = user.add_parser("list", help="List users by name")
    cmd.set_defaults(handler=_user_list)

    cmd = user.add_parser("search", help="Search by matricola or last name")
    cmd.add_argument("keyword", nargs="?", default="")
    cmd.set_defaults(handler=_user_search)

    # Loans
    loan = groups.add_parser("loan", help="Manage loans").add_subparsers(dest="command", required=True)

    cmd = loan.add_parser("register", help="Lend a book to a user")
    cmd.add_argument("matricola")
    cmd.add_argument("isbn")
    cmd.add_argument("--loan-date", help="YYYY-MM-DD, default today")
    cmd.add_argument("--due-date", help="YYYY-MM-DD, default loan date plus the loan length")
    cmd.set_defaults(handler=_loan_register)

    cmd = loan.add_parser("return", help="Register the return of a loan")
    cmd.add_argument("matricola")
    cmd.add_argument("isbn")
    cmd.add_argument("loan_date", help="YYYY-MM-DD")
    cmd.add_argument("--return-date", help="YYYY-MM-DD, default today")
    cmd.set_defaults(handler=_loan_return)

    cmd = loan.add_parser("active", help="List active loans by due date")
    cmd.set_defaults(handler=_loan_active)

    cmd = loan.add_parser("user", help="Show the loan history of a user")
    cmd.add_argument("matricola")
    cmd.set_defaults(handler=_loan_user)

    cmd = loan.add_parser("overdue", help="List overdue loans")
    cmd.add_argument("--date", help="Reference date YYYY-MM-DD, default today")
    cmd.set_defaults(handler=_loan_overdue)

    return parser


def _book_add(app: LibraryApplication, args: argparse.Namespace) -> None:
    book = app.book_service.add_book(args.isbn, args.title, args.authors, args.year, args.copies)
    print(f"Added {format_book(book)}")


def _book_update(app: LibraryApplication, args: argparse.Namespace) -> None:
    current = app.book_service.get_book(args.isbn)
    if current is None:
        raise NotFoundError(f"Book {args.isbn} not found")
    book = app.book_service.update_book(
        args.isbn,
        args.new_isbn or current.isbn,
        args.title if args.title is not None else current.title,
        parse_authors(args.authors) if args.authors is not None else current.authors,
        args.year if args.year is not None else current.year,
        args.copies if args.copies is not None else current.total_copies,
    )
    print(f"Updated {format_book(book)}")


def _book_delete(app: LibraryApplication, args: argparse.Namespace) -> None:
    app.book_service.delete_book(args.isbn)
    print(f"Deleted book {args.isbn}")


def _book_list(app: LibraryApplication, args: argparse.Namespace) -> None:
    books = app.book_service.get_all_books_ordered_by_title()
    _print_lines((format_book(b) for b in books), "No books")


def _book_search(app: LibraryApplication, args: argparse.Namespace) -> None:
    books = app.book_service.search_books(args.keyword)
    _print_lines((format_book(b) for b in books), "No books found")


def _user_add(app: LibraryApplication, args: argparse.Namespace) -> None:
    user = app.user_service.add_user(args.matricola, args.first_name, args.last_name, args.email)
    print(f"Added {format_user(user)}")


def _user_update(app: LibraryApplication, args: argparse.Namespace) -> None:
    current = app.user_service.get_user(args.matricola)
    if current is None:
        raise NotFoundError(f"User {args.matricola} not found")
    user = app.user_service.update_user(
        args.matricola,
        args.new_matricola or current.matricola,
        args.first_name if args.first_name is not None else current.first_name,
        args.last_name if args.last_name is not None else current.last_name,
        args.email if args.email is not None else current.email,
    )
    print(f"Updated {format_user(user)}")


def _user_delete(app: LibraryApplication, args: argparse.Namespace) -> None:
    app.user_service.delete_user(args.matricola)
    print(f"Deleted user {args.matricola}")


def _user_list(app: LibraryApplication, args: argparse.Namespace) -> None:
    users = app.user_service.get_all_users_ordered_by_last_name_and_first_name()
    _print_lines((format_user(u) for u in users), "No users")


def _user_search(app: LibraryApplication, args: argparse.Namespace) -> None:
    users = app.user_service.search_users(args.keyword)
    _print_lines((format_user(u) for u in users), "No users found")


def _loan_register(app: LibraryApplication, args: argparse.Namespace) -> None:
    loan_date = parse_date(args.loan_date, "loan date") or app.loan_service.today()
    due_date = parse_date(args.due_date, "due date") or (
        loan_date + timedelta(days=app.settings.library.loan_days)
    )
    loan = app.loan_service.register_loan(args.matricola, args.isbn, loan_date, due_date)
    print(f"Registered {format_loan(loan)}")


def _loan_return(app: LibraryApplication, args: argparse.Namespace) -> None:
    loan_date = parse_date(args.loan_date, "loan date")
    loan = app.loan_service.find_loan(args.matricola, args.isbn, loan_date)
    return_date = parse_date(args.return_date, "return date") or app.loan_service.today()
    loan = app.loan_service.register_return(loan, return_date)
    print(f"Returned {format_loan(loan)}")


def _loan_active(app: LibraryApplication, args: argparse.Namespace) -> None:
    today = app.loan_service.today()
    loans = app.loan_service.get_active_loans_ordered_by_due_date()
    _print_lines((format_loan(loan, today) for loan in loans), "No active loans")


def _loan_user(app: LibraryApplication, args: argparse.Namespace) -> None:
    today = app.loan_service.today()
    loans = app.loan_service.get_loans_by_user(args.matricola)
    _print_lines((format_loan(loan, today) for loan in loans), f"No loans for user {args.matricola}")


def _loan_overdue(app: LibraryApplication, args: argparse.Namespace) -> None:
    reference = parse_date(args.date, "reference date")
    loans = app.loan_service.get_overdue_loans(reference)
    _print_lines((format_loan(loan, reference or app.loan_service.today()) for loan in loans), "No overdue loans")


def main(
    argv: Optional[List[str]] = None,
    app_settings: Optional[Settings] = None,
    today: Callable[[], date] = date.today,
) -> int:
    """Main entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    config = app_settings or default_settings

    setup_logging(
        level=args.log_level or config.effective_log_level,
        log_dir=config.logging.log_dir,
        file_enabled=config.logging.file_enabled,
        console_enabled=config.logging.console_enabled,
        fmt=config.logging.format,
    )

    try:
        app = LibraryApplication(settings=config, data_dir=args.data_dir, today=today)
        args.handler(app, args)
    except AppError as e:
        logger.debug(f"Command {args.group} {args.command} failed: {e.to_dict()}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
