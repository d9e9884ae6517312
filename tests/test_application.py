# tests/test_application.py
import pytest
from datetime import date

from biblioteca.application import LibraryApplication
from biblioteca.config.settings import LoggingSettings, Settings, StorageSettings
from biblioteca.data.file_manager import BOOKS_HEADER, LOANS_HEADER, USERS_HEADER
from biblioteca.events.event_interface import EventEmitter
from biblioteca.presentation.cli import main

TODAY = date(2024, 6, 1)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        storage=StorageSettings(data_dir=tmp_path / "data"),
        logging=LoggingSettings(log_dir=tmp_path / "logs", file_enabled=False, console_enabled=False),
    )


@pytest.fixture
def app(settings):
    return LibraryApplication(settings=settings, events=EventEmitter(), today=lambda: TODAY)


def run(settings, *argv):
    return main(list(argv), app_settings=settings, today=lambda: TODAY)


def test_application_creates_three_files(app, settings):
    """Test each repository owns a distinct file with its header"""
    data_dir = settings.storage.data_dir

    assert (data_dir / "books.txt").read_text(encoding="utf-8").startswith(BOOKS_HEADER)
    assert (data_dir / "users.txt").read_text(encoding="utf-8").startswith(USERS_HEADER)
    assert (data_dir / "loans.txt").read_text(encoding="utf-8").startswith(LOANS_HEADER)
    assert len({app.book_repository.path, app.user_repository.path, app.loan_repository.path}) == 3


def test_state_survives_restart(app, settings):
    """Test a new application over the same files sees the same ledger"""
    app.book_service.add_book("9781234567890", "Basi di dati", ["Atzeni"], 2018, 5)
    app.user_service.add_user("0612709530", "Mario", "Rossi", "m.rossi@studenti.unisa.it")
    app.loan_service.register_loan("0612709530", "9781234567890", date(2024, 3, 1), date(2024, 3, 15))

    restarted = LibraryApplication(settings=settings, events=EventEmitter(), today=lambda: TODAY)

    assert restarted.book_service.get_book("9781234567890").available_copies == 4
    assert restarted.loan_service.count_active_loans_for_user("0612709530") == 1


def test_data_dir_override(settings, tmp_path):
    """Test an explicit data directory wins over the configured one"""
    other = tmp_path / "other"

    app = LibraryApplication(settings=settings, data_dir=other, events=EventEmitter())

    assert app.book_repository.path == other / "books.txt"


def test_cli_full_loan_cycle(settings, capsys):
    """Test adding a book and a user, lending and returning through the CLI"""
    assert run(settings, "book", "add", "9781234567890", "--title", "Basi di dati",
               "--authors", "Atzeni, Ceri", "--year", "2018", "--copies", "5") == 0
    assert run(settings, "user", "add", "0612709530", "--first-name", "Mario",
               "--last-name", "Rossi", "--email", "m.rossi@studenti.unisa.it") == 0
    assert run(settings, "loan", "register", "0612709530", "9781234567890",
               "--loan-date", "2024-03-01", "--due-date", "2024-03-15") == 0
    capsys.readouterr()

    assert run(settings, "loan", "overdue") == 0
    assert "0612709530  9781234567890  2024-03-01 -> 2024-03-15  OVERDUE" in capsys.readouterr().out

    assert run(settings, "loan", "return", "0612709530", "9781234567890", "2024-03-01",
               "--return-date", "2024-03-10") == 0
    assert run(settings, "book", "list") == 0

    out = capsys.readouterr().out
    assert "returned 2024-03-10" in out
    assert "5/5 available" in out


def test_cli_default_due_date(settings, capsys):
    """Test the loan length setting fills in a missing due date"""
    run(settings, "book", "add", "9781234567890", "--title", "T", "--authors", "A", "--year", "2000")
    run(settings, "user", "add", "0612709530", "--first-name", "Mario",
        "--last-name", "Rossi", "--email", "m.rossi@studenti.unisa.it")

    assert run(settings, "loan", "register", "0612709530", "9781234567890") == 0
    assert "2024-06-01 -> 2024-06-15" in capsys.readouterr().out


def test_cli_update_keeps_unspecified_fields(settings, capsys):
    """Test update only changes the given options"""
    run(settings, "book", "add", "9781234567890", "--title", "Basi di dati",
        "--authors", "Atzeni", "--year", "2018", "--copies", "2")

    assert run(settings, "book", "update", "9781234567890", "--copies", "4") == 0
    assert run(settings, "book", "search", "atzeni") == 0

    assert "Basi di dati - Atzeni (2018)  4/4 available" in capsys.readouterr().out


def test_cli_reports_errors(settings, capsys):
    """Test rejected operations print the reason and exit with status 1"""
    assert run(settings, "user", "delete", "0612709530") == 1
    assert "Error: User 0612709530 not found" in capsys.readouterr().err

    assert run(settings, "loan", "register", "123", "9781234567890") == 1
    assert "Error: Matricola must be exactly 10 digits" in capsys.readouterr().err

    assert run(settings, "loan", "return", "0612709530", "9781234567890", "") == 1
    assert "Error: Loan date is required" in capsys.readouterr().err

    assert run(settings, "book", "update", "9781234567890", "--copies", "2") == 1
    assert "Error: Book 9781234567890 not found" in capsys.readouterr().err


def test_cli_empty_listings(settings, capsys):
    """Test empty lists print a placeholder"""
    assert run(settings, "user", "list") == 0
    assert run(settings, "loan", "active") == 0

    out = capsys.readouterr().out
    assert "No users" in out
    assert "No active loans" in out
