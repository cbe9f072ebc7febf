from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import Settings, load_settings
from .editor import EditorRun, launch_editor
from .errors import ErrorKind, TemplaarError
from .listing import list_templates, scope_from_flags
from .logging_setup import LOGGER_NAME, setup_logging
from .materialize import materialize, store_template
from .naming import Scope, TemplateKind, validate_name
from .resolve import resolve

app = typer.Typer(help="A simple tool for creating files from templates.")
console = Console()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_INPUT = 2
EXIT_NOT_FOUND = 3
EXIT_EXPLICIT_MISS = 4
EXIT_AMBIGUOUS = 5
EXIT_EXISTS = 6
EXIT_BAD_TEMPLATE = 7
EXIT_ROLLBACK_FAILED = 70

EXIT_CODES = {
    ErrorKind.not_found: EXIT_NOT_FOUND,
    ErrorKind.explicit_miss: EXIT_EXPLICIT_MISS,
    ErrorKind.ambiguous: EXIT_AMBIGUOUS,
    ErrorKind.target_exists: EXIT_EXISTS,
    ErrorKind.template_exists: EXIT_EXISTS,
    ErrorKind.template_unreadable: EXIT_BAD_TEMPLATE,
    ErrorKind.invalid_template: EXIT_BAD_TEMPLATE,
    ErrorKind.invalid_input: EXIT_INVALID_INPUT,
    ErrorKind.io_failure: EXIT_ERROR,
    ErrorKind.rollback_failed: EXIT_ROLLBACK_FAILED,
}

NO_CHANGE_PROMPT = "The file contains no change from the template. Save it anyway?"


class OutputFormat(str, Enum):
    table = "table"
    json = "json"
    md = "md"


def _json_print(payload: dict) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=True, sort_keys=True))


def _print_key_value_table(title: str, rows: list[tuple[str, str]]) -> None:
    table = Table(title=title)
    table.add_column("Field")
    table.add_column("Value")
    for key, value in rows:
        table.add_row(key, value)
    console.print(table)


def _emit_success(
    command: str,
    output_format: OutputFormat,
    data: dict,
    md_renderer: Callable[[dict], str] | None = None,
    table_renderer: Callable[[dict], None] | None = None,
) -> None:
    if output_format == OutputFormat.json:
        _json_print(
            {
                "ok": True,
                "command": command,
                "exit_code": EXIT_OK,
                "data": data,
            }
        )
        return

    if output_format == OutputFormat.md and md_renderer is not None:
        console.print(md_renderer(data))
        return

    if output_format == OutputFormat.table and table_renderer is not None:
        table_renderer(data)
        return

    if output_format == OutputFormat.md:
        lines = [f"# {command}", ""]
        lines.extend(f"- **{key}**: {value}" for key, value in data.items())
        console.print("\n".join(lines))
    else:
        _print_key_value_table(
            title=command,
            rows=[(str(key), str(value)) for key, value in data.items()],
        )


def _emit_error(
    command: str,
    output_format: OutputFormat,
    exit_code: int,
    code: str,
    message: str,
    details: dict | None = None,
) -> None:
    if output_format == OutputFormat.json:
        error = {"code": code, "message": message}
        error.update(details or {})
        _json_print(
            {
                "ok": False,
                "command": command,
                "exit_code": exit_code,
                "error": error,
            }
        )
    elif output_format == OutputFormat.md:
        console.print(f"# {command}\n\n- **status**: error\n- **code**: {code}\n- **message**: {message}")
    else:
        console.print(f"[red]Error ({code}):[/red] {message}")

    raise typer.Exit(code=exit_code)


def _fail(command: str, output_format: OutputFormat, error: TemplaarError) -> None:
    details: dict = {}
    if error.names:
        details["names"] = list(error.names)
    if error.path is not None:
        details["path"] = str(error.path)
    if error.fatal and output_format == OutputFormat.table:
        console.print(f"[bold red]FATAL:[/bold red] inconsistent state left at {error.path}")
    _emit_error(
        command=command,
        output_format=output_format,
        exit_code=EXIT_CODES[error.kind],
        code=error.kind.value,
        message=str(error),
        details=details,
    )


def _load_settings(ctx: typer.Context, command: str, output_format: OutputFormat) -> Settings:
    try:
        settings = load_settings()
    except TemplaarError as error:
        _fail(command, output_format, error)
        raise
    if not (ctx.obj or {}).get("verbose"):
        logging.getLogger(LOGGER_NAME).setLevel(settings.log_level)
    return settings


def _editor_exit_code(run: EditorRun | None) -> int | None:
    return run.exit_code if run is not None else None


def _keep_unchanged(template_path: Path, target: Path) -> bool:
    """Ask whether to keep a file that is still identical to its template."""
    try:
        if not target.is_file():
            return False
        if target.read_bytes() != template_path.read_bytes():
            return True
        if typer.confirm(NO_CHANGE_PROMPT, default=True):
            return True
        target.unlink()
    except OSError as error:
        raise TemplaarError(ErrorKind.io_failure, f"Cannot compare {target} with its template: {error}", path=target) from error
    return False


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    ctx.obj = {"verbose": verbose}
    setup_logging(logging.DEBUG if verbose else logging.WARNING)


@app.command("new")
def new_template(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Name of the template. Prompted for when omitted."),
    global_: bool = typer.Option(False, "--global", "-g", help="Make the template global."),
    files: Optional[List[Path]] = typer.Option(
        None,
        "--files",
        "-f",
        help="Create the template from file(s). Several files make a directory template.",
    ),
    no_edit: bool = typer.Option(False, "--no-edit", help="Do not open the editor."),
    output_format: OutputFormat = typer.Option(OutputFormat.table, "--format", help="Output format."),
):
    """Create a template."""
    settings = _load_settings(ctx, "new", output_format)
    if name is None:
        name = typer.prompt("Enter template name", default=settings.default_name)

    try:
        template_name = validate_name(name)
        directory = settings.global_dir if global_ else Path.cwd()
        if global_:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as error:
                raise TemplaarError(
                    ErrorKind.io_failure,
                    f"Cannot create global template directory {directory}: {error}",
                    path=directory,
                ) from error
        created = store_template(template_name, directory, files or [])
    except TemplaarError as error:
        _fail("new", output_format, error)
        raise

    run = None if no_edit else launch_editor(created.files, settings.editor)

    data = {
        "name": template_name,
        "scope": (Scope.global_ if global_ else Scope.local).value,
        "kind": created.kind.value,
        "path": str(created.root),
        "files": [str(path) for path in created.files],
        "editor_exit_code": _editor_exit_code(run),
    }
    _emit_success(command="new", output_format=output_format, data=data)


@app.command("take")
def take_template(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(
        None,
        help="Name of the created file. Path in the case of a directory template.",
    ),
    template: Optional[str] = typer.Option(None, "--template", "-t", help="Use a specific template."),
    parents: bool = typer.Option(False, "--parents", "-p", help="Create missing parent directories."),
    no_edit: bool = typer.Option(False, "--no-edit", help="Do not open the editor."),
    output_format: OutputFormat = typer.Option(OutputFormat.table, "--format", help="Output format."),
):
    """Create a file or directory from a template."""
    settings = _load_settings(ctx, "take", output_format)
    cwd = Path.cwd()
    try:
        requested = validate_name(template) if template is not None else None
        chosen = resolve(cwd, requested, global_dir=settings.global_dir).unwrap()
        result = materialize(chosen, cwd / (name or chosen.name), make_parents=parents)
    except TemplaarError as error:
        _fail("take", output_format, error)
        raise

    kept = True
    run = None
    if not no_edit:
        run = launch_editor(result.files, settings.editor)
        if run is not None and run.ran and result.kind == TemplateKind.file:
            try:
                kept = _keep_unchanged(chosen.path, result.root)
            except TemplaarError as error:
                _fail("take", output_format, error)
                raise

    data = {
        "template": chosen.name,
        "scope": chosen.scope.value,
        "kind": chosen.kind.value,
        "template_path": str(chosen.path),
        "path": str(result.root),
        "files": [str(path) for path in result.files] if kept else [],
        "kept": kept,
        "editor_exit_code": _editor_exit_code(run),
    }
    _emit_success(command="take", output_format=output_format, data=data)


@app.command("list")
def list_command(
    ctx: typer.Context,
    local: bool = typer.Option(False, "--local", "-l", help="Only list local templates."),
    global_: bool = typer.Option(False, "--global", "-g", help="Only list global templates."),
    output_format: OutputFormat = typer.Option(OutputFormat.table, "--format", help="Output format."),
):
    """List available templates."""
    settings = _load_settings(ctx, "list", output_format)
    scope = scope_from_flags(local, global_)
    try:
        entries = list_templates(Path.cwd(), scope, global_dir=settings.global_dir)
    except TemplaarError as error:
        _fail("list", output_format, error)
        raise

    data = {
        "cwd": str(Path.cwd()),
        "scope": scope.value,
        "templates": [
            {
                "name": entry.name,
                "scope": entry.scope.value,
                "kind": entry.kind.value,
                "path": str(entry.path),
            }
            for entry in entries
        ],
    }

    def render_md(payload: dict) -> str:
        lines = ["# Templates", ""]
        for item in payload["templates"]:
            lines.append(f"- `{item['name']}` [{item['scope']}, {item['kind']}] `{item['path']}`")
        if not payload["templates"]:
            lines.append("- none")
        return "\n".join(lines)

    def render_table(payload: dict) -> None:
        if not payload["templates"]:
            console.print("No templates found.")
            return
        table = Table(title="Templates")
        table.add_column("Name")
        table.add_column("Scope")
        table.add_column("Kind")
        table.add_column("Path")
        for item in payload["templates"]:
            table.add_row(item["name"], item["scope"], item["kind"], item["path"])
        console.print(table)

    _emit_success(command="list", output_format=output_format, data=data, md_renderer=render_md, table_renderer=render_table)


@app.command("version")
def version(
    output_format: OutputFormat = typer.Option(OutputFormat.table, "--format", help="Output format."),
) -> None:
    """Print version."""
    _emit_success(command="version", output_format=output_format, data={"version": __version__})


if __name__ == "__main__":
    app()
