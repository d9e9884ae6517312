# tests/test_user_service.py
import pytest
from datetime import date

from biblioteca.data.file_manager import FileManager
from biblioteca.data.file_repository import FileBackedUserRepository
from biblioteca.data.memory_repository import (
    InMemoryBookRepository,
    InMemoryLoanRepository,
    InMemoryUserRepository,
)
from biblioteca.data.models import Book
from biblioteca.events.event_interface import EventEmitter, EventType
from biblioteca.services.loan_service import LoanService
from biblioteca.services.user_service import UserService
from biblioteca.utils.error_handling import NotFoundError, ValidationError

TODAY = date(2024, 6, 1)
ISBN = "9781234567890"


@pytest.fixture
def events():
    return EventEmitter()


@pytest.fixture
def user_repository():
    return InMemoryUserRepository()


@pytest.fixture
def loan_service(user_repository, events):
    books = InMemoryBookRepository()
    books.save(Book(ISBN, "Basi di dati", ["Atzeni"], 2018, 2, 2))
    return LoanService(InMemoryLoanRepository(), books, user_repository, events=events, today=lambda: TODAY)


@pytest.fixture
def service(user_repository, loan_service, events):
    return UserService(user_repository, loan_service, events=events)


def test_add_user(service, events):
    """Test registering a user publishes the change"""
    added = []
    events.on(EventType.USER_ADDED, added.append)

    user = service.add_user("0612709530", " Mario ", "Rossi", "M.Rossi@Studenti.Unisa.it")

    assert user.first_name == "Mario"
    assert service.get_user("0612709530") == user
    assert added[0].data["matricola"] == "0612709530"


@pytest.mark.parametrize("matricola,first_name,last_name,email", [
    ("061270953", "Mario", "Rossi", "m.rossi@studenti.unisa.it"),
    ("0612709530", "", "Rossi", "m.rossi@studenti.unisa.it"),
    ("0612709530", "Mario", "  ", "m.rossi@studenti.unisa.it"),
    ("0612709530", "Mario", "Rossi", "m.rossi.studenti.unisa.it"),
    ("0612709530", "Mario", "Rossi", "m.rossi@gmail.com"),
    ("0612709530", "Mario", "Rossi", None),
])
def test_add_user_validation(service, user_repository, matricola, first_name, last_name, email):
    with pytest.raises(ValidationError):
        service.add_user(matricola, first_name, last_name, email)

    assert user_repository.count() == 0


def test_add_user_duplicates(service):
    """Test matricola and e-mail must be unique"""
    service.add_user("0612709530", "Mario", "Rossi", "m.rossi@studenti.unisa.it")

    with pytest.raises(ValidationError, match="already exists"):
        service.add_user("0612709530", "Anna", "Bianchi", "a.bianchi@studenti.unisa.it")
    with pytest.raises(ValidationError, match="already in use"):
        service.add_user("0612709531", "Anna", "Bianchi", "M.ROSSI@studenti.unisa.it")


def test_custom_email_domain(user_repository, loan_service):
    """Test the institutional domain is configurable"""
    service = UserService(user_repository, loan_service, email_domain="unina.it", events=EventEmitter())

    assert service.email_domain == "@unina.it"
    service.add_user("0612709530", "Mario", "Rossi", "m.rossi@unina.it")
    with pytest.raises(ValidationError):
        service.add_user("0612709531", "Anna", "Bianchi", "a.bianchi@studenti.unisa.it")


def test_update_user(service, user_repository):
    """Test editing details, keeping the own e-mail and changing matricola"""
    service.add_user("0612709530", "Mario", "Rossi", "m.rossi@studenti.unisa.it")
    service.add_user("0612709531", "Anna", "Bianchi", "a.bianchi@studenti.unisa.it")

    user = service.update_user("0612709530", "0612709530", "Mario", "Verdi", "m.rossi@studenti.unisa.it")
    assert user.last_name == "Verdi"

    with pytest.raises(ValidationError, match="already in use"):
        service.update_user("0612709530", "0612709530", "Mario", "Verdi", "a.bianchi@studenti.unisa.it")
    with pytest.raises(ValidationError, match="already exists"):
        service.update_user("0612709530", "0612709531", "Mario", "Verdi", "m.rossi@studenti.unisa.it")

    moved = service.update_user("0612709530", "0612709539", "Mario", "Verdi", "m.rossi@studenti.unisa.it")
    assert moved.matricola == "0612709539"
    assert not user_repository.exists_by_id("0612709530")
    assert user_repository.count() == 2

    with pytest.raises(NotFoundError):
        service.update_user("0612709530", "0612709530", "Mario", "Verdi", "m.rossi@studenti.unisa.it")


def test_matricola_change_blocked_by_active_loans(service, loan_service, user_repository):
    """Test a user with active loans keeps its matricola"""
    service.add_user("0612709530", "Mario", "Rossi", "m.rossi@studenti.unisa.it")
    loan = loan_service.register_loan("0612709530", ISBN, date(2024, 3, 1), date(2024, 3, 15))

    with pytest.raises(ValidationError, match="active loans"):
        service.update_user("0612709530", "0612709539", "Mario", "Rossi", "m.rossi@studenti.unisa.it")
    assert user_repository.exists_by_id("0612709530")

    loan_service.register_return(loan, date(2024, 3, 10))
    moved = service.update_user("0612709530", "0612709539", "Mario", "Rossi", "m.rossi@studenti.unisa.it")

    assert moved.matricola == "0612709539"
    # Closed loans keep the old matricola
    assert loan_service.get_loans_by_user("0612709530")[0].return_date == date(2024, 3, 10)


def test_delete_user(service, loan_service, user_repository, events):
    """Test deletion is blocked by active loans"""
    deleted = []
    events.on(EventType.USER_DELETED, deleted.append)
    service.add_user("0612709530", "Mario", "Rossi", "m.rossi@studenti.unisa.it")
    service.add_user("0612709531", "Anna", "Bianchi", "a.bianchi@studenti.unisa.it")
    loan_service.register_loan("0612709530", ISBN, date(2024, 3, 1), date(2024, 3, 15))

    with pytest.raises(ValidationError, match="active loans"):
        service.delete_user("0612709530")
    assert user_repository.count() == 2

    service.delete_user("0612709531")
    assert [u.matricola for u in user_repository.find_all()] == ["0612709530"]
    assert deleted[0].data == {"matricola": "0612709531"}

    with pytest.raises(NotFoundError):
        service.delete_user("0612709531")


def test_search_users(service):
    """Test matricola lookup, last-name search and full listing"""
    service.add_user("0612709530", "Mario", "Rossi", "m.rossi@studenti.unisa.it")
    service.add_user("0612709531", "Anna", "Rossini", "a.rossini@studenti.unisa.it")
    service.add_user("0612709532", "Luca", "Bianchi", "l.bianchi@studenti.unisa.it")

    assert [u.last_name for u in service.search_users("0612709531")] == ["Rossini"]
    assert service.search_users("0000000000") == []
    assert [u.last_name for u in service.search_users("ross")] == ["Rossi", "Rossini"]
    assert [u.last_name for u in service.search_users("")] == ["Bianchi", "Rossi", "Rossini"]
    assert [u.matricola for u in service.search_by_last_name("bian")] == ["0612709532"]


def test_rejected_matricola_change_keeps_user(tmp_path, loan_service, events):
    """Test a record the users file cannot hold leaves the old user in place"""
    users = FileBackedUserRepository(InMemoryUserRepository(), FileManager(), tmp_path / "users.txt")
    service = UserService(users, loan_service, events=events)
    service.add_user("0612709530", "Mario", "Rossi", "m.rossi@studenti.unisa.it")

    with pytest.raises(ValidationError):
        service.update_user("0612709530", "0612709531", "Ma|rio", "Rossi", "m.rossi@studenti.unisa.it")

    assert users.exists_by_id("0612709530")
    assert not users.exists_by_id("0612709531")
    reloaded = FileBackedUserRepository(InMemoryUserRepository(), FileManager(), tmp_path / "users.txt")
    assert reloaded.find_by_matricola("0612709530").first_name == "Mario"
