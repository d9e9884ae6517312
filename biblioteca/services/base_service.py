"""
Base class for the library services.
"""
from typing import Any, Callable, Dict, Optional, Type

from biblioteca.config.logging_config import get_logger
from biblioteca.events.event_interface import Event, EventEmitter, EventType, event_bus
from biblioteca.utils.error_handling import AppError, ValidationError

logger = get_logger(__name__)


class BaseService:
    """Common plumbing shared by the book, user and loan services.

    Each service publishes its changes on an ``EventEmitter`` (the global
    ``event_bus`` unless one is injected) and reports rejected operations
    through ``reject`` so they are logged the same way everywhere.
    """

    def __init__(self, events: Optional[EventEmitter] = None):
        self.events = events if events is not None else event_bus

    def emit(self, event_type: EventType, data: Dict[str, Any]) -> None:
        self.events.emit(Event(type=event_type, data=data))

    def reject(
        self,
        operation: str,
        message: str,
        error_class: Type[AppError] = ValidationError,
        **details: Any
    ) -> None:
        """Log a refused operation and raise ``error_class``.

        Args:
            operation: Name of the operation being refused
            message: Human-readable reason shown to the librarian
            error_class: Error type to raise
            details: Structured context attached to the error

        Raises:
            AppError: Always, of type ``error_class``
        """
        logger.warning(f"{self.__class__.__name__}.{operation} rejected: {message}")
        raise error_class(message, details=details or None)

    def check(self, operation: str, validator: Callable[..., Any], *args: Any) -> Any:
        """Run a field validator, reporting its failure through ``reject``."""
        try:
            return validator(*args)
        except ValidationError as e:
            self.reject(operation, e.message)

    def handle_error(self, error: AppError, operation: str) -> Dict[str, Any]:
        """Log a failure that escaped an operation and describe it."""
        error_info = {
            "service": self.__class__.__name__,
            "operation": operation,
            **error.to_dict()
        }
        logger.error(f"Error in {self.__class__.__name__}.{operation}: {error}")
        self.emit(EventType.ERROR, error_info)
        return error_info
