"""
Application settings and configuration.

This module provides a centralized configuration management system using Pydantic.
It loads settings from environment variables, .env files, or falls back to defaults.
"""

import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file if present
load_dotenv()

DEFAULT_DATA_DIR = Path.cwd() / "data"
DEFAULT_LOG_DIR = Path.cwd() / "logs"


class StorageSettings(BaseModel):
    """Backing file locations, one file per entity type."""

    data_dir: Path = Field(
        default=DEFAULT_DATA_DIR,
        description="Directory holding the catalog, user and loan files"
    )

    books_file: str = Field(
        default="books.txt",
        description="File name of the book catalog"
    )

    users_file: str = Field(
        default="users.txt",
        description="File name of the registered users"
    )

    loans_file: str = Field(
        default="loans.txt",
        description="File name of the loan ledger"
    )

    @property
    def books_path(self) -> Path:
        return self.data_dir / self.books_file

    @property
    def users_path(self) -> Path:
        return self.data_dir / self.users_file

    @property
    def loans_path(self) -> Path:
        return self.data_dir / self.loans_file


class LibrarySettings(BaseModel):
    """Business configuration of the library."""

    email_domain: str = Field(
        default="@studenti.unisa.it",
        description="Institutional suffix every user e-mail must end with"
    )

    loan_days: int = Field(
        default=14,
        description="Default loan length used when no due date is given"
    )

    @field_validator("email_domain")
    @classmethod
    def email_domain_must_start_with_at(cls, v: str) -> str:
        """Normalize the domain to a lower-case ``@domain`` suffix."""
        v = v.strip().lower()
        if not v:
            raise ValueError("Email domain must not be empty")
        return v if v.startswith("@") else f"@{v}"

    @field_validator("loan_days")
    @classmethod
    def loan_days_must_be_positive(cls, v: int) -> int:
        """Validate that the default loan length is positive."""
        if v < 1:
            raise ValueError("Loan length must be at least one day")
        return v


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )

    log_dir: Path = Field(
        default=DEFAULT_LOG_DIR,
        description="Directory for the rotating log file"
    )

    file_enabled: bool = Field(
        default=True,
        description="Whether to write logs to a file"
    )

    console_enabled: bool = Field(
        default=False,
        description="Whether to write logs to console"
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class Settings(BaseModel):
    """Main application settings."""

    # Application info
    app_name: str = Field(
        default="Gestione Biblioteca",
        description="Application name"
    )

    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # Sub-configurations
    storage: StorageSettings = Field(default_factory=lambda: StorageSettings(
        data_dir=Path(os.environ.get("LIBRARY_DATA_DIR", str(DEFAULT_DATA_DIR))),
        books_file=os.environ.get("LIBRARY_BOOKS_FILE", "books.txt"),
        users_file=os.environ.get("LIBRARY_USERS_FILE", "users.txt"),
        loans_file=os.environ.get("LIBRARY_LOANS_FILE", "loans.txt")
    ))

    library: LibrarySettings = Field(default_factory=lambda: LibrarySettings(
        email_domain=os.environ.get("LIBRARY_EMAIL_DOMAIN", "@studenti.unisa.it"),
        loan_days=_parse_optional_int(os.environ.get("LIBRARY_LOAN_DAYS")) or 14
    ))

    logging: LoggingSettings = Field(default_factory=lambda: LoggingSettings(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format=os.environ.get("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        log_dir=Path(os.environ.get("LOG_DIR", str(DEFAULT_LOG_DIR))),
        file_enabled=_parse_bool(os.environ.get("LOG_FILE_ENABLED", "True")),
        console_enabled=_parse_bool(os.environ.get("LOG_CONSOLE_ENABLED", "False"))
    ))

    # Runtime configs
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    def __init__(self, **data: Any):
        """Initialize settings, allowing a debug mode override from environment."""
        super().__init__(**data)
        self.debug_mode = _parse_bool(os.environ.get("DEBUG_MODE", str(self.debug_mode)))

    @property
    def effective_log_level(self) -> str:
        """Log level after applying debug mode."""
        return "DEBUG" if self.debug_mode else self.logging.level


def _parse_optional_int(value: Optional[str]) -> Optional[int]:
    """Parse string to optional int."""
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def _parse_bool(value: str) -> bool:
    """Parse string to boolean."""
    return value.strip().lower() in ("true", "1", "yes", "y", "on")
