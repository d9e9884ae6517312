"""
Data models for persistence and business logic.

Relations between entities are by key only: a loan stores the user's
matricola and the book's ISBN, never the objects themselves.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from biblioteca.utils.error_handling import ValidationError


def loan_id(matricola: str, isbn: str, loan_date: date) -> str:
    """Build the ledger key ``matricola:isbn:YYYY-MM-DD`` for a loan."""
    return f"{matricola}:{isbn}:{loan_date.isoformat()}"


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


@dataclass
class Book:
    """A catalog entry, identified by its ISBN."""

    isbn: str
    title: str
    authors: List[str] = field(default_factory=list)
    year: int = 0
    total_copies: int = 1
    available_copies: int = 1

    def __post_init__(self):
        if not self.isbn:
            raise ValidationError("Book ISBN is required")
        self.authors = list(self.authors or [])
        if self.available_copies < 0:
            raise ValidationError(f"Available copies cannot be negative for ISBN {self.isbn}")
        if self.available_copies > self.total_copies:
            raise ValidationError(
                f"Available copies ({self.available_copies}) exceed total copies "
                f"({self.total_copies}) for ISBN {self.isbn}"
            )

    def authors_as_string(self) -> str:
        return ", ".join(self.authors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the model to a dictionary."""
        return {
            "isbn": self.isbn,
            "title": self.title,
            "authors": list(self.authors),
            "year": self.year,
            "total_copies": self.total_copies,
            "available_copies": self.available_copies
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Book':
        """Create a model from a dictionary."""
        total = int(data.get("total_copies", 1))
        return cls(
            isbn=data["isbn"],
            title=data.get("title", ""),
            authors=list(data.get("authors") or []),
            year=int(data.get("year", 0)),
            total_copies=total,
            available_copies=int(data.get("available_copies", total))
        )


@dataclass
class User:
    """A registered library user, identified by matricola."""

    matricola: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""

    def __post_init__(self):
        if not self.matricola:
            raise ValidationError("User matricola is required")

    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the model to a dictionary."""
        return {
            "matricola": self.matricola,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        """Create a model from a dictionary."""
        return cls(
            matricola=data["matricola"],
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            email=data.get("email", "")
        )


@dataclass
class Loan:
    """
    A loan of one copy of a book to one user.

    ``user_matricola``, ``book_isbn`` and ``loan_date`` form the ledger key
    and do not change after creation. A loan is active while
    ``return_date`` is None.
    """

    user_matricola: str
    book_isbn: str
    loan_date: date
    due_date: date
    return_date: Optional[date] = None

    def __post_init__(self):
        if not self.user_matricola:
            raise ValidationError("Loan user matricola is required")
        if not self.book_isbn:
            raise ValidationError("Loan book ISBN is required")
        if self.loan_date is None:
            raise ValidationError("Loan date is required")
        if self.due_date is None:
            raise ValidationError("Loan due date is required")
        if self.due_date < self.loan_date:
            raise ValidationError("Due date cannot precede the loan date")

    def key(self) -> str:
        return loan_id(self.user_matricola, self.book_isbn, self.loan_date)

    def is_active(self) -> bool:
        return self.return_date is None

    def is_overdue(self, reference_date: date) -> bool:
        """True if the loan is still active and ``reference_date`` is past the due date."""
        if reference_date is None:
            raise ValueError("reference_date must not be None")
        return self.is_active() and reference_date > self.due_date

    def to_dict(self) -> Dict[str, Any]:
        """Convert the model to a dictionary."""
        return {
            "user_matricola": self.user_matricola,
            "book_isbn": self.book_isbn,
            "loan_date": self.loan_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "return_date": self.return_date.isoformat() if self.return_date else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Loan':
        """Create a model from a dictionary."""
        return cls(
            user_matricola=data["user_matricola"],
            book_isbn=data["book_isbn"],
            loan_date=_parse_date(data["loan_date"]),
            due_date=_parse_date(data["due_date"]),
            return_date=_parse_date(data.get("return_date"))
        )
