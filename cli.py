import json
from pathlib import Path
from typing import Optional

import typer
from fastapi import HTTPException
from typer import Option

from core.logging_config import setup_logging
from core.settings import settings
from schemas.fieldset import FieldsetRead
from schemas.location import LocationContext

app = typer.Typer(help="OpenFields command line tools")


def _fail(message: str) -> None:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(log_level: str = Option("WARNING", "--log-level")):
    setup_logging(log_level=log_level.upper())
    if settings.AUTO_CREATE_TABLES:
        from db.session import init_db

        init_db()


@app.command()
def export_fieldset(
    fieldset_id: int = Option(..., "--fieldset-id"),
    output: Optional[Path] = Option(None, "--output"),
):
    """Export a fieldset with its fields and location rules as JSON"""
    from db.session import db_context
    from repositories.fieldset_repository import FieldsetRepository
    from services.field_type_registry_service import create_default_field_type_registry
    from services.fieldset_export_service import FieldsetExportService

    with db_context() as db:
        try:
            fieldset = FieldsetRepository(db).get_or_404(fieldset_id)
        except HTTPException as e:
            _fail(e.detail)
        data = FieldsetExportService(db, create_default_field_type_registry()).export_fieldset(fieldset)

    payload = json.dumps(data, indent=2, default=str)
    if output:
        output.write_text(payload, encoding="utf-8")
        typer.echo(f"Exported fieldset {fieldset_id} to {output}")
    else:
        typer.echo(payload)


@app.command()
def import_fieldset(file: Path = Option(..., "--file", exists=True, dir_okay=False, readable=True)):
    """Import a fieldset export file under a fresh key"""
    from db.session import db_context
    from services.field_type_registry_service import create_default_field_type_registry
    from services.fieldset_export_service import FieldsetExportService

    try:
        import_data = json.loads(file.read_text(encoding="utf-8"))
    except ValueError as e:
        _fail(f"Invalid JSON in {file}: {e}")

    with db_context() as db:
        try:
            fieldset = FieldsetExportService(db, create_default_field_type_registry()).import_fieldset(import_data)
        except HTTPException as e:
            _fail(e.detail)
        typer.echo(json.dumps({"imported": True, "id": fieldset.id, "field_key": fieldset.field_key}))


@app.command()
def match_context(context: str = Option("{}", "--context", help="Screen context as JSON")):
    """List the active fieldsets shown for a screen context"""
    from db.session import db_context
    from repositories.fieldset_repository import FieldsetRepository
    from services.location_rule_service import create_default_location_evaluator, list_fieldsets_for_context

    try:
        location_context = LocationContext.model_validate(json.loads(context))
    except ValueError as e:
        _fail(f"Invalid context: {e}")

    with db_context() as db:
        matched = list_fieldsets_for_context(location_context, FieldsetRepository(db), create_default_location_evaluator())
        result = [FieldsetRead.model_validate(fieldset).model_dump(mode="json") for fieldset in matched]

    typer.echo(json.dumps(result, indent=2))


@app.command()
def list_field_types():
    """Print the registered field types by category"""
    from services.field_type_registry_service import create_default_field_type_registry

    registry = create_default_field_type_registry()
    for category, field_types in registry.get_grouped_by_category().items():
        if not field_types:
            continue
        typer.echo(f"{category}:")
        for field_type in field_types:
            children = " (sub fields)" if field_type.has_sub_fields else ""
            typer.echo(f"  {field_type.key:<14} {field_type.label}{children}")


@app.command()
def list_location_types():
    """Print the location types and their options"""
    from services.location_rule_service import create_default_location_evaluator

    for location_type in create_default_location_evaluator().get_location_types_for_api():
        options = ", ".join(option.value for option in location_type.options)
        typer.echo(f"{location_type.key:<14} {location_type.label}: {options}")


if __name__ == "__main__":
    app()
