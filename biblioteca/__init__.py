"""
Library loan ledger: books, users and the loans that bind them.
"""

__version__ = "1.0.0"
