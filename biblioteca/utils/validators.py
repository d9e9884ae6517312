"""
Field validators shared by the services and the command line.

Identifier formats are fixed for this system: a matricola is exactly ten
ASCII digits and an ISBN exactly thirteen (no checksum is verified).
"""
import re
from datetime import date
from typing import Iterable, List, Optional, Union

from biblioteca.utils.error_handling import ValidationError

ISBN_PATTERN = re.compile(r"[0-9]{13}")
MATRICOLA_PATTERN = re.compile(r"[0-9]{10}")
_AUTHOR_SPLIT = re.compile(r"[;,]")
_WHITESPACE = re.compile(r"\s+")


def is_valid_isbn(isbn: Optional[str]) -> bool:
    return isbn is not None and bool(ISBN_PATTERN.fullmatch(isbn))


def is_valid_matricola(matricola: Optional[str]) -> bool:
    return matricola is not None and bool(MATRICOLA_PATTERN.fullmatch(matricola))


def require_isbn(isbn: Optional[str]) -> str:
    """Return ``isbn`` or raise ``ValidationError`` if it is blank or malformed."""
    if isbn is None or not isbn.strip():
        raise ValidationError("ISBN must not be blank")
    if not is_valid_isbn(isbn):
        raise ValidationError(f"ISBN must be exactly 13 digits: {isbn!r}")
    return isbn


def require_matricola(matricola: Optional[str]) -> str:
    """Return ``matricola`` or raise ``ValidationError`` if it is blank or malformed."""
    if matricola is None or not matricola.strip():
        raise ValidationError("Matricola must not be blank")
    if not is_valid_matricola(matricola):
        raise ValidationError(f"Matricola must be exactly 10 digits: {matricola!r}")
    return matricola


def require_text(value: Optional[str], field_name: str) -> str:
    """Return ``value`` stripped, or raise if it is missing or blank."""
    if value is None or not value.strip():
        raise ValidationError(f"{field_name} must not be blank")
    return value.strip()


def normalize_text(value: Optional[str]) -> str:
    """Trim, collapse inner whitespace and casefold for comparisons."""
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", value.strip()).casefold()


def parse_authors(raw: Union[str, Iterable[str], None]) -> List[str]:
    """
    Turn form input into an ordered author list.

    A single string is split on ``,`` or ``;``. Blank names are dropped.
    """
    if raw is None:
        return []
    parts = _AUTHOR_SPLIT.split(raw) if isinstance(raw, str) else list(raw)
    return [part.strip() for part in parts if part is not None and part.strip()]


def parse_date(raw: Union[str, date, None], field_name: str = "date") -> Optional[date]:
    """Parse an ISO ``YYYY-MM-DD`` string; dates pass through, blanks become None."""
    if raw is None or isinstance(raw, date):
        return raw
    text = raw.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name} {raw!r}, expected YYYY-MM-DD", cause=e)
