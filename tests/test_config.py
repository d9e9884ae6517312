# tests/test_config.py
import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from biblioteca.config.logging_config import get_logger, setup_logging
from biblioteca.config.settings import LibrarySettings, LoggingSettings, Settings
from biblioteca.utils.error_handling import (
    AppError,
    ErrorSeverity,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


def test_settings_read_environment(monkeypatch, tmp_path):
    """Test environment variables fill the settings"""
    monkeypatch.setenv("LIBRARY_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LIBRARY_LOANS_FILE", "prestiti.txt")
    monkeypatch.setenv("LIBRARY_EMAIL_DOMAIN", "Unina.IT")
    monkeypatch.setenv("LIBRARY_LOAN_DAYS", "30")
    monkeypatch.setenv("LOG_LEVEL", "warning")
    monkeypatch.setenv("DEBUG_MODE", "false")

    settings = Settings()

    assert settings.storage.loans_path == tmp_path / "prestiti.txt"
    assert settings.storage.books_path == tmp_path / "books.txt"
    assert settings.library.email_domain == "@unina.it"
    assert settings.library.loan_days == 30
    assert settings.effective_log_level == "WARNING"


def test_debug_mode_forces_debug_level(monkeypatch):
    monkeypatch.setenv("DEBUG_MODE", "1")

    assert Settings().effective_log_level == "DEBUG"


def test_invalid_settings_rejected():
    """Test validators refuse bad values"""
    with pytest.raises(PydanticValidationError):
        LoggingSettings(level="LOUD")
    with pytest.raises(PydanticValidationError):
        LibrarySettings(loan_days=0)


def test_get_logger_nests_under_package():
    assert get_logger("biblioteca.services").name == "biblioteca.services"
    assert get_logger("tools").name == "biblioteca.tools"


def test_setup_logging_writes_rotating_file(tmp_path):
    """Test file logging and single configuration"""
    package_logger = logging.getLogger("biblioteca")
    saved = package_logger.handlers[:]
    package_logger.handlers = []
    try:
        logger = setup_logging("INFO", tmp_path, file_enabled=True, console_enabled=False)
        handler_count = len(logger.handlers)
        setup_logging("DEBUG", tmp_path)

        get_logger("biblioteca.test").info("hello ledger")
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == handler_count
        assert logger.level == logging.DEBUG
        assert "hello ledger" in (tmp_path / "biblioteca.log").read_text(encoding="utf-8")
    finally:
        for handler in package_logger.handlers:
            handler.close()
        package_logger.handlers = saved


def test_error_hierarchy_and_severity():
    """Test error types, default severities and serialization"""
    cause = OSError("disk full")
    error = PersistenceError("Cannot write", cause=cause, details={"path": "books.txt"})

    assert isinstance(error, AppError)
    assert error.severity == ErrorSeverity.CRITICAL
    assert str(error) == "Cannot write"
    assert error.to_dict() == {
        "type": "PersistenceError",
        "message": "Cannot write",
        "severity": "critical",
        "details": {"path": "books.txt"},
        "cause": "OSError: disk full",
    }
    assert NotFoundError("x").severity == ErrorSeverity.WARNING
    assert ValidationError("x", severity=ErrorSeverity.ERROR).severity == ErrorSeverity.ERROR
