"""
Main application for the library loan ledger.

This module wires the file-backed repositories and the services into one
object that a presentation layer can drive.
"""

from datetime import date
from pathlib import Path
from typing import Callable, Optional, Union

from biblioteca.config import Settings, settings as default_settings
from biblioteca.config.logging_config import get_logger
from biblioteca.data.file_manager import FileManager
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
from biblioteca.events.event_interface import EventEmitter, event_bus
from biblioteca.services.book_service import BookService
from biblioteca.services.loan_service import LoanService
from biblioteca.services.user_service import UserService

logger = get_logger(__name__)


class LibraryApplication:
    """
    Main application class for the library.

    Each entity type gets its own backing file under the data directory,
    loaded once here and rewritten by its repository on every change.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        data_dir: Optional[Union[str, Path]] = None,
        events: Optional[EventEmitter] = None,
        today: Callable[[], date] = date.today,
        file_manager: Optional[FileManager] = None,
    ):
        """
        Initialize the application.

        Args:
            settings: Configuration to use instead of the process-wide settings
            data_dir: Directory overriding the configured data directory
            events: Emitter shared by the services (defaults to the global bus)
            today: Callable returning the current date
            file_manager: Persistence collaborator shared by the repositories

        Raises:
            PersistenceError: If a backing file cannot be read or is malformed
        """
        self.settings = settings or default_settings
        storage = self.settings.storage
        if data_dir is not None:
            storage = storage.model_copy(update={"data_dir": Path(data_dir)})
        self.data_dir = storage.data_dir
        self.events = events if events is not None else event_bus
        self.file_manager = file_manager or FileManager()

        self.book_repository = FileBackedBookRepository(
            InMemoryBookRepository(), self.file_manager, storage.books_path
        )
        self.user_repository = FileBackedUserRepository(
            InMemoryUserRepository(), self.file_manager, storage.users_path
        )
        self.loan_repository = FileBackedLoanRepository(
            InMemoryLoanRepository(), self.file_manager, storage.loans_path
        )

        self.loan_service = LoanService(
            self.loan_repository,
            self.book_repository,
            self.user_repository,
            events=self.events,
            today=today,
        )
        self.book_service = BookService(
            self.book_repository, self.loan_service, events=self.events, today=today
        )
        self.user_service = UserService(
            self.user_repository,
            self.loan_service,
            email_domain=self.settings.library.email_domain,
            events=self.events,
        )

        logger.info(
            f"Library initialized from {self.data_dir}: {self.book_repository.count()} books, "
            f"{self.user_repository.count()} users, {self.loan_repository.count()} loans"
        )
