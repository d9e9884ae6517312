# tests/test_file_repository.py
import pytest
from datetime import date
from unittest.mock import MagicMock

from biblioteca.data.file_manager import BOOKS_HEADER, FileManager
from biblioteca.data.file_repository import (
    FileBackedBookRepository,
    FileBackedLoanRepository,
    FileBackedUserRepository,
)
from biblioteca.data.memory_repository import (
    InMemoryBookRepository,
    InMemoryLoanRepository,
    InMemoryUserRepository,
)
from biblioteca.data.models import Book, Loan, User, loan_id
from biblioteca.utils.error_handling import PersistenceError, ValidationError


def make_book_repo(path, file_manager=None):
    return FileBackedBookRepository(InMemoryBookRepository(), file_manager or FileManager(), path)


def test_construction_loads_existing_records(tmp_path):
    """Test the delegate is replaced by the file content on construction"""
    path = tmp_path / "books.txt"
    path.write_text(
        BOOKS_HEADER + "\n9780000000001|Alpha|Rossi|2000|2|1\n9780000000002|Beta|Verdi;Neri|2001|1|1\n",
        encoding="utf-8",
    )
    delegate = InMemoryBookRepository()
    delegate.save(Book("9789999999999", "Stale", ["X"], 1999, 1, 1))

    repo = FileBackedBookRepository(delegate, FileManager(), path)

    assert repo.count() == 2
    assert not repo.exists_by_id("9789999999999")
    assert repo.find_by_isbn("9780000000002").authors == ["Verdi", "Neri"]


def test_missing_file_created_on_construction(tmp_path):
    """Test a missing backing file is created with its header"""
    path = tmp_path / "books.txt"

    repo = make_book_repo(path)

    assert repo.count() == 0
    assert path.read_text(encoding="utf-8") == BOOKS_HEADER + "\n"


def test_every_mutation_rewrites_the_file(tmp_path):
    """Test save, delete and delete all are reloaded by a new instance"""
    path = tmp_path / "books.txt"
    repo = make_book_repo(path)

    repo.save(Book("9780000000001", "Alpha", ["Rossi"], 2000, 2, 2))
    repo.save(Book("9780000000002", "Beta", ["Verdi"], 2001, 1, 1))
    assert make_book_repo(path).count() == 2

    repo.delete_by_id("9780000000001")
    reloaded = make_book_repo(path)
    assert [b.isbn for b in reloaded.find_all()] == ["9780000000002"]

    repo.delete_all()
    assert make_book_repo(path).count() == 0


def test_reserved_delimiter_rejected_before_any_change(tmp_path):
    """Test a record that cannot be encoded changes neither memory nor file"""
    path = tmp_path / "books.txt"
    repo = make_book_repo(path)
    repo.save(Book("9780000000001", "Alpha", ["Rossi"], 2000, 1, 1))
    before = path.read_text(encoding="utf-8")

    with pytest.raises(ValidationError):
        repo.save(Book("9780000000002", "Pipe | Title", ["Rossi"], 2000, 1, 1))

    assert repo.count() == 1
    assert path.read_text(encoding="utf-8") == before


def test_write_failure_restores_memory(tmp_path):
    """Test an I/O failure is raised and the in-memory change is undone"""
    file_manager = MagicMock(spec=FileManager)
    file_manager.load.return_value = [Book("9780000000001", "Alpha", ["Rossi"], 2000, 2, 2)]
    file_manager.save.side_effect = PersistenceError("disk full")
    repo = make_book_repo(tmp_path / "books.txt", file_manager)

    with pytest.raises(PersistenceError):
        repo.save(Book("9780000000002", "Beta", ["Verdi"], 2001, 1, 1))
    with pytest.raises(PersistenceError):
        repo.save(Book("9780000000001", "Alpha", ["Rossi"], 2000, 2, 1))
    with pytest.raises(PersistenceError):
        repo.delete_by_id("9780000000001")
    with pytest.raises(PersistenceError):
        repo.delete_all()

    assert [b.isbn for b in repo.find_all()] == ["9780000000001"]
    assert repo.find_by_isbn("9780000000001").available_copies == 2


def test_user_finders_delegate(tmp_path):
    """Test domain finders answer from the delegate"""
    repo = FileBackedUserRepository(InMemoryUserRepository(), FileManager(), tmp_path / "users.txt")
    repo.save(User("0000000001", "Mario", "Rossi", "m@studenti.unisa.it"))
    repo.save(User("0000000002", "Anna", "Bianchi", "a@studenti.unisa.it"))

    assert [u.last_name for u in repo.find_all_order_by_last_name_and_first_name()] == ["Bianchi", "Rossi"]
    assert repo.find_by_matricola("0000000001").first_name == "Mario"
    assert [u.matricola for u in repo.find_by_last_name_containing("ross")] == ["0000000001"]


def test_loans_reload_with_composite_key(tmp_path):
    """Test the loan ledger round-trips through its file"""
    path = tmp_path / "loans.txt"
    repo = FileBackedLoanRepository(InMemoryLoanRepository(), FileManager(), path)
    repo.save(Loan("0612709530", "9781234567890", date(2024, 3, 1), date(2024, 3, 15)))
    repo.save(Loan("0612709530", "9780000000001", date(2024, 2, 1), date(2024, 2, 15), date(2024, 2, 12)))

    reloaded = FileBackedLoanRepository(InMemoryLoanRepository(), FileManager(), path)

    loan = reloaded.find_by_id(loan_id("0612709530", "9781234567890", date(2024, 3, 1)))
    assert loan is not None and loan.is_active()
    assert [l.book_isbn for l in reloaded.find_active_loans_by_user("0612709530")] == ["9781234567890"]
    assert len(reloaded.find_by_user_matricola("0612709530")) == 2
