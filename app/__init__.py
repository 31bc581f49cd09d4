"""
Project tracker application package.

This package contains configuration, database session wiring and the
Pydantic schemas used to validate input and serialise output.
"""

__version__ = "1.0.0"
