"""
Shared helpers: error types and field validators.
"""
