#!/usr/bin/env python3
"""
Project tracker CLI.

Manages project records and ingests PFMT workbooks against the configured
database.

Usage:
    python scripts/pfmt_cli.py create --name "Bridge Renewal" --description "Deck replacement"
    python scripts/pfmt_cli.py list --status Active --page 2
    python scripts/pfmt_cli.py update 7 --set phase=Construction --set taf=5000000
    python scripts/pfmt_cli.py ingest --project-id 7 --file PFMT_Q3.xlsx
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import json
import logging
from typing import Optional, Tuple

import click
from dotenv import load_dotenv
from pydantic import ValidationError as SchemaValidationError

from app.config import settings
from app.dependencies import get_db_session, get_engine
from app.schemas import (
    ErrorResponse, IngestionResponse, PaginationInfo,
    ProjectListResponse, ProjectResponse, ProjectUpdate
)
from backend.models.schema import Base
from services.errors import NotFoundError, ProjectServiceError
from services.pfmt_extraction_service import PfmtExtractionService
from services.project_service import ProjectService
from services.project_store import ProjectStore
from services.storage_service import StorageService

# Load environment variables
load_dotenv()

logger = logging.getLogger('pfmt_cli')


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format=settings.LOG_FORMAT,
        handlers=[
            logging.FileHandler(settings.LOG_FILE, delay=True),
            logging.StreamHandler(sys.stderr)
        ]
    )


def fail(exc: Exception, **detail):
    """Print an error payload to stderr and exit 1."""
    error = ErrorResponse(error=str(exc), error_type=type(exc).__name__, detail=detail or None)
    click.echo(error.model_dump_json(indent=2), err=True)
    sys.exit(1)


def parse_assignment(assignment: str) -> Tuple[str, object]:
    """Split 'field=value'; JSON values are decoded, anything else stays a string."""
    if '=' not in assignment:
        raise click.BadParameter(f"Expected field=value, got '{assignment}'")
    key, raw = assignment.split('=', 1)
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key.strip(), value


@click.group()
@click.option('--database-url', envvar='DATABASE_URL', default=None,
              help='Database URL (defaults to settings.DATABASE_URL)')
@click.pass_context
def cli(ctx, database_url: Optional[str]):
    """PFMT project tracker"""
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj['database_url'] = database_url

    Base.metadata.create_all(get_engine(database_url))


@cli.command('list')
@click.option('--page', default=1, type=int, show_default=True, help='Page number')
@click.option('--limit', default=settings.DEFAULT_PAGE_LIMIT, type=int, show_default=True,
              help='Items per page')
@click.option('--owner-id', default=None, help='Filter by owner')
@click.option('--status', default=None, help='Filter by status')
@click.option('--report-status', default=None, help='Filter by report status')
@click.pass_context
def list_cmd(ctx, page: int, limit: int, owner_id: Optional[str],
             status: Optional[str], report_status: Optional[str]):
    """List projects."""
    with get_db_session(ctx.obj['database_url']) as session:
        service = ProjectService(ProjectStore(session))
        try:
            result = service.list_projects(
                page=page, limit=limit, owner_id=owner_id,
                status=status, report_status=report_status
            )
        except ProjectServiceError as e:
            fail(e)

        response = ProjectListResponse(
            projects=[ProjectResponse.model_validate(p) for p in result['projects']],
            pagination=PaginationInfo(**result['pagination'])
        )
        click.echo(response.model_dump_json(indent=2))


@cli.command('show')
@click.argument('project_id', type=int)
@click.pass_context
def show_cmd(ctx, project_id: int):
    """Show one project."""
    with get_db_session(ctx.obj['database_url']) as session:
        project = ProjectService(ProjectStore(session)).get_project(project_id)
        if project is None:
            fail(NotFoundError(project_id), project_id=project_id)

        click.echo(ProjectResponse.model_validate(project).model_dump_json(indent=2))


@cli.command('create')
@click.option('--name', '-n', default=None, help='Project name')
@click.option('--description', '-d', default=None, help='Project description')
@click.option('--owner-id', default=None, help='Owner identifier')
@click.pass_context
def create_cmd(ctx, name: Optional[str], description: Optional[str], owner_id: Optional[str]):
    """Create a project."""
    data = {'name': name, 'description': description}
    if owner_id:
        data['owner_id'] = owner_id

    with get_db_session(ctx.obj['database_url']) as session:
        try:
            project = ProjectService(ProjectStore(session)).create_project(data)
        except ProjectServiceError as e:
            fail(e)

        click.echo(ProjectResponse.model_validate(project).model_dump_json(indent=2))


@cli.command('update')
@click.argument('project_id', type=int)
@click.option('--set', 'assignments', multiple=True, required=True,
              help='field=value, repeatable')
@click.pass_context
def update_cmd(ctx, project_id: int, assignments: Tuple[str, ...]):
    """Partially update a project."""
    raw = dict(parse_assignment(a) for a in assignments)
    try:
        updates = ProjectUpdate.model_validate(raw).model_dump(exclude_unset=True)
    except SchemaValidationError as e:
        fail(e, fields=sorted(raw))

    with get_db_session(ctx.obj['database_url']) as session:
        try:
            project = ProjectService(ProjectStore(session)).update_project(project_id, updates)
        except ProjectServiceError as e:
            fail(e, project_id=project_id)

        click.echo(ProjectResponse.model_validate(project).model_dump_json(indent=2))


@cli.command('delete')
@click.argument('project_id', type=int)
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def delete_cmd(ctx, project_id: int, yes: bool):
    """Delete a project."""
    if not yes:
        click.confirm(f"Delete project {project_id}?", abort=True)

    with get_db_session(ctx.obj['database_url']) as session:
        try:
            ProjectService(ProjectStore(session)).delete_project(project_id)
        except ProjectServiceError as e:
            fail(e, project_id=project_id)

    click.echo(f"✓ Project {project_id} deleted")


@cli.command('ingest')
@click.option('--project-id', '-p', required=True, type=int, help='Project to update')
@click.option('--file', '-f', 'file_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='PFMT workbook (.xlsx or .xlsm)')
@click.pass_context
def ingest_cmd(ctx, project_id: int, file_path: str):
    """Ingest a PFMT workbook into a project."""
    storage = StorageService(settings.TEMP_UPLOAD_DIR)
    file_name = Path(file_path).name

    if not storage.validate_file_extension(file_path, settings.ALLOWED_EXTENSIONS):
        raise click.BadParameter(
            f"Allowed extensions: {', '.join(settings.ALLOWED_EXTENSIONS)}",
            param_hint='--file'
        )
    if not storage.validate_file_size(file_path, settings.MAX_FILE_SIZE_MB):
        raise click.BadParameter(
            f"File exceeds {settings.MAX_FILE_SIZE_MB} MB", param_hint='--file'
        )

    # The pipeline deletes what it ingests, so hand it a staged copy
    staged_path = storage.stage_upload(file_path)

    def on_progress(stage: str, percent: float, message: str):
        bar_length = 40
        filled = int(bar_length * percent / 100)
        bar = '█' * filled + '░' * (bar_length - filled)
        click.echo(f"\r[{bar}] {percent:.1f}% - {stage}: {message}", nl=False, err=True)

    with get_db_session(ctx.obj['database_url']) as session:
        service = PfmtExtractionService(
            ProjectStore(session),
            storage=storage,
            sheet_name=settings.PFMT_SHEET_NAME,
            progress_callback=on_progress
        )
        try:
            result = service.ingest(project_id, staged_path, file_name)
        except ProjectServiceError as e:
            click.echo(err=True)
            logger.error(f"Ingestion of {file_name} failed: {e}")
            fail(e, project_id=project_id, file_name=file_name)

        click.echo(err=True)
        response = IngestionResponse(
            project=ProjectResponse.model_validate(result['project']),
            extracted_data=result['extracted_data']
        )
        click.echo(response.model_dump_json(indent=2))


@cli.command('cleanup-uploads')
@click.option('--older-than-hours', default=settings.TEMP_FILE_MAX_AGE_HOURS, type=int,
              show_default=True, help='Remove staged uploads older than this')
def cleanup_cmd(older_than_hours: int):
    """Remove stale staged uploads."""
    deleted = StorageService(settings.TEMP_UPLOAD_DIR).cleanup_temp_files(older_than_hours)
    click.echo(f"Removed {deleted} stale upload(s) from {settings.TEMP_UPLOAD_DIR}")


if __name__ == '__main__':
    cli(obj={})
