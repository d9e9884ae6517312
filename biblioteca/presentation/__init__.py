"""
Presentation layer: the command-line interface.
"""
