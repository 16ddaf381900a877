"""CLI entrypoint for Term Occurrences."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import pydantic
import typer

from term_occurrences import dependencies as deps
from term_occurrences.core.errors import OccurrenceError, ValidationError
from term_occurrences.core.logging import configure_logging
from term_occurrences.core.metrics import render_metrics
from term_occurrences.models.dto import OccurrenceDescriptor, OccurrenceView, ResourceView
from term_occurrences.models.entities import Resource, ResourceKind

app = typer.Typer(name="tocc", help="Term Occurrences command-line interface")
resources_app = typer.Typer(name="resources", help="Manage annotated resources")
occurrences_app = typer.Typer(name="occurrences", help="Manage term occurrences")
app.add_typer(resources_app, name="resources")
app.add_typer(occurrences_app, name="occurrences")

_DESCRIPTORS = pydantic.TypeAdapter(list[OccurrenceDescriptor])


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override configured log level"),
) -> None:
    """Annotate resources and manage the term occurrences found in them."""
    settings = deps.get_app_settings()
    configure_logging(log_level or settings.log_level, use_json=settings.log_json)


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2))


@contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except OccurrenceError as exc:
        typer.echo(f"{type(exc).__name__}: {exc}", err=True)
        raise typer.Exit(code=1)


def _view(occurrence) -> dict[str, object]:
    return OccurrenceView.from_occurrence(occurrence).model_dump(by_alias=True)


@resources_app.command("add")
def add_resource(
    resource_id: str = typer.Argument(..., help="Resource identifier (URI)"),
    kind: ResourceKind = typer.Option(ResourceKind.DOCUMENT, "--kind", help="Resource kind"),
    label: Optional[str] = typer.Option(None, "--label", help="Friendly label"),
    mime: Optional[str] = typer.Option(None, "--mime", help="Media type of the content"),
    url: Optional[str] = typer.Option(None, "--url", help="Location of a website"),
    parent: Optional[str] = typer.Option(None, "--parent", help="Owning document of a website"),
    content: Optional[Path] = typer.Option(None, "--content", exists=True, dir_okay=False, help="Initial content"),
) -> None:
    """Register a document, website, or term."""
    with _reported_errors():
        resource = Resource(id=resource_id, kind=kind, label=label, mime=mime, url=url, parent_id=parent)
        if content is not None and not resource.stores_content:
            raise ValidationError(f"Resources of kind {kind.value} do not store content")
        deps.get_resource_provider().add(resource)
        if content is not None:
            deps.get_content_store().write(resource.id, content.read_bytes())
    _echo(ResourceView.from_resource(resource).model_dump(by_alias=True))


@resources_app.command("list")
def list_resources() -> None:
    """List registered resources."""
    with _reported_errors():
        resources = deps.get_resource_provider().list_all()
    _echo([ResourceView.from_resource(r).model_dump(by_alias=True) for r in resources])


@resources_app.command("remove")
def remove_resource(
    resource_id: str = typer.Argument(..., help="Resource identifier"),
    keep_occurrences: bool = typer.Option(
        False, "--keep-occurrences", help="Leave occurrences for the orphan cleanup"
    ),
) -> None:
    """Remove a resource, and unless told otherwise, its occurrences."""
    with _reported_errors():
        removed = 0
        if not keep_occurrences:
            removed = deps.get_occurrence_service().remove_all_for_source(resource_id)
        deps.get_resource_provider().remove(resource_id)
    _echo({"status": "ok", "occurrences_removed": removed})


@app.command()
def annotate(
    source_id: str = typer.Argument(..., help="Resource whose content is annotated"),
    content: Optional[Path] = typer.Option(
        None, "--content", exists=True, dir_okay=False, help="Annotated content; defaults to stored content"
    ),
) -> None:
    """Resolve marked-up content into suggested term occurrences."""
    with _reported_errors():
        source = deps.get_resource_provider().find_required(source_id)
        data = content.read_bytes() if content is not None else None
        report = deps.get_annotation_generator().generate_annotations(source, data)
    payload = report.to_dict()
    payload["occurrences"] = [_view(o) for o in report.created]
    _echo(payload)


@occurrences_app.command("list")
def list_occurrences(source_id: str = typer.Argument(..., help="Resource identifier")) -> None:
    """List occurrences in a resource."""
    with _reported_errors():
        occurrences = deps.get_occurrence_service().list_by_source(source_id)
    _echo([_view(o) for o in sorted(occurrences, key=lambda o: o.id)])


@occurrences_app.command("show")
def show_occurrence(occurrence_id: str = typer.Argument(..., help="Occurrence identifier")) -> None:
    with _reported_errors():
        occurrence = deps.get_occurrence_service().find(occurrence_id)
    _echo(_view(occurrence))


@occurrences_app.command("create")
def create_occurrences(
    source_id: str = typer.Argument(..., help="Resource the occurrences point at"),
    descriptors: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON array of descriptors"),
    context: Optional[str] = typer.Option(None, "--context", help="Context identifier for generated ids"),
) -> None:
    """Create occurrences from pre-resolved selector descriptors."""
    try:
        parsed = _DESCRIPTORS.validate_json(descriptors.read_bytes())
    except pydantic.ValidationError as exc:
        typer.echo(f"Invalid descriptors: {exc}", err=True)
        raise typer.Exit(code=1)
    with _reported_errors():
        created = deps.get_occurrence_service().create_batch(parsed, source_id, context)
    _echo([_view(o) for o in created])


@occurrences_app.command("approve")
def approve_occurrence(
    occurrence_id: str = typer.Argument(..., help="Occurrence identifier"),
    term: Optional[str] = typer.Option(None, "--term", help="Term to assign before approving"),
    term_namespace: Optional[str] = typer.Option(None, "--term-namespace", help="Namespace of the term"),
    term_fragment: Optional[str] = typer.Option(None, "--term-fragment", help="Local name of the term"),
) -> None:
    """Approve a suggested occurrence, optionally assigning its term first."""
    with _reported_errors():
        service = deps.get_occurrence_service()
        occurrence = service.find(occurrence_id)
        if term is None and term_fragment:
            term = service.id_generator.resolve(term_namespace or "", term_fragment)
        if term is not None:
            occurrence = service.assign_term(occurrence, term)
        occurrence = service.approve(occurrence)
    _echo(_view(occurrence))


@occurrences_app.command("remove")
def remove_occurrence(occurrence_id: str = typer.Argument(..., help="Occurrence identifier")) -> None:
    with _reported_errors():
        service = deps.get_occurrence_service()
        service.remove(service.get_reference(occurrence_id))
    _echo({"status": "ok"})


@occurrences_app.command("clear")
def clear_occurrences(
    source_id: str = typer.Argument(..., help="Resource identifier"),
    suggested_only: bool = typer.Option(False, "--suggested-only", help="Only remove unapproved suggestions"),
) -> None:
    """Remove all (or all suggested) occurrences in a resource."""
    with _reported_errors():
        service = deps.get_occurrence_service()
        if suggested_only:
            removed = service.remove_all_suggested_for_source(source_id)
        else:
            removed = service.remove_all_for_source(source_id)
    _echo({"status": "ok", "removed": removed})


@app.command()
def cleanup(
    watch: bool = typer.Option(False, "--watch", help="Keep running on the configured interval"),
) -> None:
    """Remove occurrences whose source resource no longer exists."""
    with _reported_errors():
        deps.get_database()
        if not watch:
            _echo(deps.get_cleanup_job().run().to_dict())
            return
        if not deps.get_app_settings().cleanup_enabled:
            raise ValidationError("Scheduled orphan cleanup is disabled in the configuration")
        scheduler = deps.build_cleanup_scheduler()
    typer.echo(f"Running orphan cleanup every {scheduler.interval_seconds:g}s; Ctrl+C to stop", err=True)
    scheduler.start()
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()


@app.command()
def metrics() -> None:
    """Print Prometheus metrics of this process."""
    typer.echo(render_metrics().decode("utf-8"))


if __name__ == "__main__":
    app()
