"""
Service layer for project records and PFMT ingestion.

This package contains framework-agnostic business logic that can be used
by the CLI or any other interface.
"""

__version__ = "1.0.0"
