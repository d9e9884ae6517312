"""
Flat-file encoding of books, users and loans.

Each entity type lives in its own UTF-8 text file: a fixed header line,
then one record per line with fields separated by ``|``. Book authors are
joined with ``;`` inside their field. Empty fields stand for None.

Files are always written whole: the records go to a sibling ``.tmp`` file
which then replaces the target.
"""
import logging
import os
from datetime import date
from pathlib import Path
from typing import Generic, Iterable, List, Optional, Sequence, TypeVar, Union

from .models import Book, Loan, User
from biblioteca.utils.error_handling import PersistenceError, ValidationError

T = TypeVar('T')
PathLike = Union[str, Path]
logger = logging.getLogger(__name__)

SEPARATOR = "|"
AUTHOR_SEPARATOR = ";"

BOOKS_HEADER = "ISBN|Titolo|Autori|Anno|CopieTotali|CopieDisponibili"
USERS_HEADER = "Matricola|Nome|Cognome|Email"
LOANS_HEADER = "Matricola|ISBN|DataPrestito|DataRestituzionePrevista|DataRestituzioneEffettiva"


def null_to_empty(value: Optional[str]) -> str:
    return "" if value is None else value


def empty_to_null(value: str) -> Optional[str]:
    return None if value is None or value == "" else value


def require_no_separator(value: Optional[str], field_name: str, separator: str = SEPARATOR) -> str:
    """Return the field text, rejecting values that would break the line format."""
    text = null_to_empty(value)
    if separator in text or "\n" in text or "\r" in text:
        raise ValidationError(
            f"{field_name} must not contain {separator!r} or line breaks: {text!r}",
            details={"field": field_name},
        )
    return text


class RecordCodec(Generic[T]):
    """Converts one entity type to and from its line fields."""

    header: str = ""

    @property
    def field_count(self) -> int:
        return len(self.header.split(SEPARATOR))

    def encode(self, entity: T) -> List[str]:
        raise NotImplementedError

    def decode(self, fields: Sequence[str]) -> T:
        raise NotImplementedError

    def encode_line(self, entity: T) -> str:
        return SEPARATOR.join(self.encode(entity))


class BookCodec(RecordCodec[Book]):
    header = BOOKS_HEADER

    def encode(self, entity: Book) -> List[str]:
        authors = [require_no_separator(author, "author", AUTHOR_SEPARATOR) for author in entity.authors]
        return [
            require_no_separator(entity.isbn, "ISBN"),
            require_no_separator(entity.title, "title"),
            require_no_separator(AUTHOR_SEPARATOR.join(authors), "authors"),
            str(entity.year),
            str(entity.total_copies),
            str(entity.available_copies),
        ]

    def decode(self, fields: Sequence[str]) -> Book:
        isbn, title, authors, year, total, available = fields
        author_list = [author for author in authors.split(AUTHOR_SEPARATOR) if author] if authors else []
        return Book(
            isbn=isbn,
            title=title,
            authors=author_list,
            year=int(year),
            total_copies=int(total),
            available_copies=int(available),
        )


class UserCodec(RecordCodec[User]):
    header = USERS_HEADER

    def encode(self, entity: User) -> List[str]:
        return [
            require_no_separator(entity.matricola, "matricola"),
            require_no_separator(entity.first_name, "first name"),
            require_no_separator(entity.last_name, "last name"),
            require_no_separator(entity.email, "email"),
        ]

    def decode(self, fields: Sequence[str]) -> User:
        matricola, first_name, last_name, email = fields
        return User(
            matricola=matricola,
            first_name=empty_to_null(first_name),
            last_name=empty_to_null(last_name),
            email=empty_to_null(email),
        )


def _format_date(value: Optional[date]) -> str:
    return value.isoformat() if value is not None else ""


def _parse_date(value: str) -> Optional[date]:
    text = empty_to_null(value)
    return date.fromisoformat(text) if text is not None else None


class LoanCodec(RecordCodec[Loan]):
    header = LOANS_HEADER

    def encode(self, entity: Loan) -> List[str]:
        return [
            require_no_separator(entity.user_matricola, "matricola"),
            require_no_separator(entity.book_isbn, "ISBN"),
            _format_date(entity.loan_date),
            _format_date(entity.due_date),
            _format_date(entity.return_date),
        ]

    def decode(self, fields: Sequence[str]) -> Loan:
        matricola, isbn, loan_date, due_date, return_date = fields
        return Loan(
            user_matricola=matricola,
            book_isbn=isbn,
            loan_date=_parse_date(loan_date),
            due_date=_parse_date(due_date),
            return_date=_parse_date(return_date),
        )


BOOK_CODEC = BookCodec()
USER_CODEC = UserCodec()
LOAN_CODEC = LoanCodec()


class FileManager:
    """Loads and saves whole collections of records from and to text files."""

    encoding = "utf-8"

    def load(self, path: PathLike, codec: RecordCodec[T]) -> List[T]:
        """
        Read every record in ``path``.

        A missing file is created holding only the header. The header line
        and blank lines are skipped.

        Raises:
            PersistenceError: If the file cannot be read or a line is malformed
        """
        file_path = Path(path)
        if not file_path.exists():
            logger.info(f"Creating missing data file {file_path}")
            self._write_lines(file_path, [codec.header])
            return []

        try:
            with open(file_path, "r", encoding=self.encoding) as f:
                lines = f.read().splitlines()
        except OSError as e:
            raise PersistenceError(f"Error reading file {file_path}", cause=e, details={"path": str(file_path)}) from e

        records: List[T] = []
        for line_number, line in enumerate(lines, start=1):
            if not line.strip() or line == codec.header:
                continue
            fields = line.split(SEPARATOR)
            if len(fields) != codec.field_count:
                raise PersistenceError(
                    f"Malformed record in {file_path} at line {line_number}: "
                    f"expected {codec.field_count} fields, found {len(fields)}",
                    details={"path": str(file_path), "line": line_number},
                )
            try:
                records.append(codec.decode(fields))
            except (ValueError, ValidationError) as e:
                raise PersistenceError(
                    f"Malformed record in {file_path} at line {line_number}: {e}",
                    cause=e,
                    details={"path": str(file_path), "line": line_number},
                ) from e

        logger.debug(f"Loaded {len(records)} records from {file_path}")
        return records

    def save(self, path: PathLike, codec: RecordCodec[T], records: Iterable[T]) -> None:
        """
        Replace the content of ``path`` with ``records``.

        Every record is encoded before anything touches the disk, so a
        rejected field leaves the file as it was.

        Raises:
            ValidationError: If a field contains a reserved separator
            PersistenceError: If the file cannot be written
        """
        lines = [codec.header] + [codec.encode_line(record) for record in records]
        self._write_lines(Path(path), lines)
        logger.debug(f"Saved {len(lines) - 1} records to {path}")

    def load_books(self, path: PathLike) -> List[Book]:
        return self.load(path, BOOK_CODEC)

    def save_books(self, path: PathLike, books: Iterable[Book]) -> None:
        self.save(path, BOOK_CODEC, books)

    def load_users(self, path: PathLike) -> List[User]:
        return self.load(path, USER_CODEC)

    def save_users(self, path: PathLike, users: Iterable[User]) -> None:
        self.save(path, USER_CODEC, users)

    def load_loans(self, path: PathLike) -> List[Loan]:
        return self.load(path, LOAN_CODEC)

    def save_loans(self, path: PathLike, loans: Iterable[Loan]) -> None:
        self.save(path, LOAN_CODEC, loans)

    def _write_lines(self, file_path: Path, lines: List[str]) -> None:
        """Write data to the given file atomically."""
        tmp_path = file_path.with_name(file_path.name + ".tmp")
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding=self.encoding, newline="\n") as f:
                for line in lines:
                    f.write(line)
                    f.write("\n")
            os.replace(tmp_path, file_path)
        except OSError as e:
            raise PersistenceError(f"Error writing file {file_path}", cause=e, details={"path": str(file_path)}) from e
