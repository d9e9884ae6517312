"""
Services orchestrating the catalog, the user registry and the loan ledger.
"""

from biblioteca.services.loan_service import MAX_ACTIVE_LOANS, LoanService
from biblioteca.services.book_service import BookService
from biblioteca.services.user_service import UserService

__all__ = ["MAX_ACTIVE_LOANS", "LoanService", "BookService", "UserService"]
