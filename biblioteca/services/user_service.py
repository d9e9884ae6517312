"""
User registry management.
"""
from typing import List, Optional

from biblioteca.config.logging_config import get_logger
from biblioteca.data.models import User
from biblioteca.data.repositories import UserRepository
from biblioteca.events.event_interface import EventEmitter, EventType
from biblioteca.services.base_service import BaseService
from biblioteca.services.loan_service import LoanService
from biblioteca.utils.error_handling import NotFoundError
from biblioteca.utils.validators import is_valid_matricola, require_matricola, require_text

logger = get_logger(__name__)

DEFAULT_EMAIL_DOMAIN = "@studenti.unisa.it"


class UserService(BaseService):
    """Orchestrates changes to the registered users.

    E-mail addresses must belong to the institutional domain and are unique
    across users, compared case-insensitively.
    """

    def __init__(
        self,
        user_repository: UserRepository,
        loan_service: LoanService,
        email_domain: Optional[str] = None,
        events: Optional[EventEmitter] = None,
    ):
        super().__init__(events)
        self.user_repository = user_repository
        self.loan_service = loan_service
        domain = (email_domain or DEFAULT_EMAIL_DOMAIN).strip().lower()
        self.email_domain = domain if domain.startswith("@") else f"@{domain}"

    def _validate(self, op: str, matricola: str, first_name: str, last_name: str, email: str) -> User:
        self.check(op, require_matricola, matricola)
        first_name = self.check(op, require_text, first_name, "First name")
        last_name = self.check(op, require_text, last_name, "Last name")
        if email is None or "@" not in email:
            self.reject(op, f"Invalid email {email!r}")
        email = email.strip()
        if not email.lower().endswith(self.email_domain):
            self.reject(op, f"Email must end with {self.email_domain}: {email!r}")
        return User(
            matricola=matricola,
            first_name=first_name,
            last_name=last_name,
            email=email,
        )

    def _email_owner(self, email: str) -> Optional[User]:
        wanted = email.casefold()
        for user in self.user_repository.find_all():
            if user.email and user.email.casefold() == wanted:
                return user
        return None

    def add_user(self, matricola: str, first_name: str, last_name: str, email: str) -> User:
        """
        Register a new user.

        Raises:
            ValidationError: On malformed input, a taken matricola or a taken e-mail
        """
        op = "add_user"
        user = self._validate(op, matricola, first_name, last_name, email)
        if self.user_repository.exists_by_id(matricola):
            self.reject(op, f"A user with matricola {matricola} already exists", matricola=matricola)
        if self._email_owner(user.email) is not None:
            self.reject(op, f"Email {user.email} is already in use")

        saved = self.user_repository.save(user)
        logger.info(f"Added user {matricola} ({saved.full_name()})")
        self.emit(EventType.USER_ADDED, saved.to_dict())
        return saved

    def update_user(
        self,
        old_matricola: str,
        new_matricola: str,
        first_name: str,
        last_name: str,
        email: str,
    ) -> User:
        """
        Edit a user, possibly changing the matricola.

        Raises:
            NotFoundError: If ``old_matricola`` is not registered
            ValidationError: On malformed input, a taken e-mail or matricola,
                or a matricola change while the user has active loans
        """
        op = "update_user"
        self.check(op, require_matricola, old_matricola)
        user = self._validate(op, new_matricola, first_name, last_name, email)
        if not self.user_repository.exists_by_id(old_matricola):
            self.reject(op, f"User {old_matricola} not found", NotFoundError, matricola=old_matricola)

        owner = self._email_owner(user.email)
        if owner is not None and owner.matricola != old_matricola:
            self.reject(op, f"Email {user.email} is already in use")

        matricola_changed = new_matricola != old_matricola
        if matricola_changed:
            active = self.loan_service.count_active_loans_for_user(old_matricola)
            if active > 0:
                self.reject(op, f"Cannot change matricola of user {old_matricola}: it has {active} active loans")
            if self.user_repository.exists_by_id(new_matricola):
                self.reject(op, f"A user with matricola {new_matricola} already exists", matricola=new_matricola)

        # New record first: a rejected record leaves the old one in place
        saved = self.user_repository.save(user)
        if matricola_changed:
            self.user_repository.delete_by_id(old_matricola)

        logger.info(f"Updated user {old_matricola}" + (f" as {new_matricola}" if matricola_changed else ""))
        self.emit(EventType.USER_UPDATED, {"old_matricola": old_matricola, **saved.to_dict()})
        return saved

    def delete_user(self, matricola: str) -> None:
        """Remove a user with no active loans."""
        op = "delete_user"
        self.check(op, require_matricola, matricola)
        if not self.user_repository.exists_by_id(matricola):
            self.reject(op, f"User {matricola} not found", NotFoundError, matricola=matricola)
        active = self.loan_service.count_active_loans_for_user(matricola)
        if active > 0:
            self.reject(op, f"Cannot delete user {matricola}: it has {active} active loans", matricola=matricola)

        self.user_repository.delete_by_id(matricola)
        logger.info(f"Deleted user {matricola}")
        self.emit(EventType.USER_DELETED, {"matricola": matricola})

    def get_user(self, matricola: str) -> Optional[User]:
        return self.user_repository.find_by_matricola(matricola)

    def search_by_last_name(self, keyword: str) -> List[User]:
        return self.user_repository.find_by_last_name_containing(keyword)

    def get_all_users_ordered_by_last_name_and_first_name(self) -> List[User]:
        return self.user_repository.find_all_order_by_last_name_and_first_name()

    def search_users(self, keyword: Optional[str]) -> List[User]:
        """A matricola lookup for ten digits, otherwise a last-name search.

        A blank keyword returns every user.
        """
        if keyword is None or not keyword.strip():
            return self.get_all_users_ordered_by_last_name_and_first_name()
        keyword = keyword.strip()
        if is_valid_matricola(keyword):
            user = self.user_repository.find_by_matricola(keyword)
            return [user] if user is not None else []
        return self.user_repository.find_by_last_name_containing(keyword)
