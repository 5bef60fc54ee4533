"""er-canvas CLI - turn ER templates into diagram documents."""

import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path

import click
import structlog

from er_canvas.assembly import assemble
from er_canvas.selection import apply_selection
from er_canvas.serialize import diagram_to_dict
from er_canvas.store import JsonFileProjectStore, ProjectNotFoundError, ProjectStoreError
from er_canvas.template import (
    TemplateError,
    load_template,
    positions_from_dict,
    template_fingerprint,
)
from er_canvas.types import DiagramOptions

DEFAULT_STORE = Path.home() / ".er-canvas" / "projects.json"


def configure_logging(level: str) -> None:
    """Structured logs go to stderr so stdout stays machine-readable."""
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def _read_json(path: str):
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{path}: invalid JSON ({e.msg})")
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(f"{path}: cannot read file ({e})")


def _read_template(path: str):
    try:
        return load_template(Path(path).read_text(encoding="utf-8"))
    except TemplateError as e:
        raise click.ClickException(f"{path}: {e}")
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(f"{path}: cannot read file ({e})")


def _read_positions(path: str | None):
    if not path:
        return {}
    data = _read_json(path)
    if not isinstance(data, dict):
        raise click.ClickException(f"{path}: positions must be a JSON object")
    return positions_from_dict(data)


def _emit(payload, indent: int | None) -> None:
    click.echo(json.dumps(payload, indent=indent, ensure_ascii=False))


_DIAGRAM_OPTIONS = [
    click.option("--selected", "-s", default=None, help="Entity to highlight"),
    click.option("--grid-columns", type=int, default=None, help="Columns of the fallback grid"),
    click.option("--cell-size", type=float, default=None, help="Fallback grid cell size"),
    click.option("--node-width", type=float, default=None, help="Width assumed for unmeasured nodes"),
    click.option("--node-height", type=float, default=None, help="Height assumed for unmeasured nodes"),
    click.option(
        "--slot-policy",
        type=click.Choice(["last-write-wins", "first-write-wins"]),
        default=None,
        help="How edges sharing a field handle slot are combined",
    ),
    click.option("--indent", type=int, default=2, help="JSON indentation"),
]


def diagram_options(f):
    """Attach the rendering options shared by `generate` and `project show`."""
    for option in reversed(_DIAGRAM_OPTIONS):
        f = option(f)
    return f


def _render(
    template,
    positions,
    selected: str = None,
    grid_columns: int = None,
    cell_size: float = None,
    node_width: float = None,
    node_height: float = None,
    slot_policy: str = None,
    indent: int = 2,
) -> None:
    options = DiagramOptions(
        grid_columns=grid_columns,
        grid_cell_size=cell_size,
        default_node_width=node_width,
        default_node_height=node_height,
        handle_slot_policy=slot_policy,
    )
    diagram = assemble(template, positions, options=options)
    if selected is not None:
        diagram = apply_selection(diagram, selected)
    _emit(diagram_to_dict(diagram), indent)


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level for stderr output",
)
def cli(log_level: str):
    """er-canvas - ER template to diagram"""
    configure_logging(log_level.upper())


@cli.command()
@click.argument("template", type=click.Path(exists=True, dir_okay=False))
@click.option("--positions", "-p", type=click.Path(exists=True, dir_okay=False), help="Persisted positions JSON")
@diagram_options
def generate(template: str, positions: str = None, **render_options):
    """Generate the diagram document for a template file."""
    _render(_read_template(template), _read_positions(positions), **render_options)


@cli.command()
@click.argument("template", type=click.Path(exists=True, dir_okay=False))
def fingerprint(template: str):
    """Print the content hash of a template file."""
    click.echo(template_fingerprint(_read_template(template)))


# ============================================================================
# Projects
# ============================================================================


@cli.group()
@click.option(
    "--store",
    type=click.Path(dir_okay=False),
    default=str(DEFAULT_STORE),
    show_default=True,
    help="Project store file",
)
@click.pass_context
def project(ctx: click.Context, store: str):
    """Manage stored projects."""
    try:
        ctx.obj = JsonFileProjectStore(Path(store))
    except ProjectStoreError as e:
        raise click.ClickException(str(e))


@contextmanager
def _store_errors(project_id: str | None = None):
    try:
        yield
    except ProjectNotFoundError:
        raise click.ClickException(f"Project not found: {project_id}")
    except ProjectStoreError as e:
        raise click.ClickException(str(e))


@project.command("create")
@click.argument("name")
@click.argument("template", type=click.Path(exists=True, dir_okay=False))
@click.option("--description", "-d", default=None)
@click.pass_obj
def project_create(store: JsonFileProjectStore, name: str, template: str, description: str = None):
    """Create a project from a template file."""
    parsed = _read_template(template)
    with _store_errors():
        record = store.create(name, parsed, description=description)
    click.echo(record.id)


@project.command("list")
@click.pass_obj
def project_list(store: JsonFileProjectStore):
    """List projects, most recently updated first."""
    for record in store.list():
        click.echo(f"{record.id}\t{record.name}\t{record.updated_at.isoformat()}")


@project.command("show")
@click.argument("project_id")
@diagram_options
@click.pass_obj
def project_show(store: JsonFileProjectStore, project_id: str, **render_options):
    """Print a project's diagram document."""
    with _store_errors(project_id):
        record = store.get(project_id)
    _render(record.template, record.positions, **render_options)


@project.command("positions")
@click.argument("project_id")
@click.argument("positions", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def project_positions(store: JsonFileProjectStore, project_id: str, positions: str):
    """Save node positions for a project."""
    parsed = _read_positions(positions)
    with _store_errors(project_id):
        store.save_positions(project_id, parsed)


@project.command("delete")
@click.argument("project_id")
@click.pass_obj
def project_delete(store: JsonFileProjectStore, project_id: str):
    """Delete a project."""
    with _store_errors(project_id):
        store.delete(project_id)


def main():
    cli()


if __name__ == "__main__":
    main()
