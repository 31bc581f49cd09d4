"""
Domain exceptions raised by the service layer.

Store-layer errors (SQLAlchemyError) are not wrapped and reach callers as-is.
"""


class ProjectServiceError(Exception):
    """Base class for project service errors."""


class ValidationError(ProjectServiceError):
    """Input data is missing a required field or is out of range."""


class NotFoundError(ProjectServiceError):
    """A project id could not be resolved."""

    def __init__(self, project_id):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class IngestionError(ProjectServiceError):
    """A PFMT workbook could not be ingested."""


class ParseError(IngestionError):
    """The uploaded file is unreadable, not a workbook, or has no worksheets."""
