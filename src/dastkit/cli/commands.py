"""CLI command implementations"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from sqlmodel import Session, SQLModel

from dastkit.config import Settings, load_config
from dastkit.core.errors import DecodeError
from dastkit.core.models import Node, Root, Span
from dastkit.core.parse import parse_file
from dastkit.core.render import to_markdown, to_plain_text
from dastkit.core.serialization import decode, encode
from dastkit.core.traversal import Change, diff
from dastkit.core.validation import Schema, load_schema, validate
from dastkit.crud.database import init_db, make_engine
from dastkit.crud.resolvers import SQLResolver
from dastkit.crud.versioning import list_versions, save_version


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))


def _read_doc(path: Path) -> Root:
    """Decode a wire-format JSON file, failing cleanly on unreadable or foreign input."""
    try:
        return decode(path.read_text(encoding="utf-8"))
    except OSError as e:
        _fail(f"Cannot read {path}", e)
    except DecodeError as e:
        _fail(f"Cannot decode {path}", e)


def _load_schema(settings: Settings) -> Schema:
    """Schema file plus config-level limits the file leaves unset."""
    try:
        schema = load_schema(settings.schema_file)
    except FileNotFoundError:
        _fail(f"Schema file not found: {settings.schema_file}")
    except ValueError as e:
        _fail(str(e))
    update = {}
    if schema.max_size is None and settings.max_size:
        update["max_size"] = settings.max_size
    if schema.max_nesting is None and settings.max_nesting:
        update["max_nesting"] = settings.max_nesting
    return schema.model_copy(update=update) if update else schema


def _format_path(path: tuple) -> str:
    return "/".join(str(p) for p in path) or "<root>"


def _describe(node: Optional[Node]) -> str:
    if node is None:
        return "-"
    if isinstance(node, Span):
        return f"span {node.value!r}"
    return node.type


def _echo_change(change: Change) -> None:
    typer.echo(
        f"  {change.kind.value} {_format_path(change.path)}: "
        f"{_describe(change.before)} -> {_describe(change.after)}"
    )


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate all tables")] = False,
    ):
    """Initialize the entity store schema. Use --reset to clear existing data."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    if reset:
        SQLModel.metadata.drop_all(engine)
        typer.echo("Existing data cleared.")
    init_db(engine)
    typer.echo(f"Database initialized at: {settings.db_url}")


def register_cmd(
    entity_id: Annotated[str, typer.Argument(help="Record or block id")],
    item_type: Annotated[str, typer.Argument(help="Model / block type id")],
    ):
    """Record the type of an existing entity so links and blocks can be validated."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    init_db(engine)
    with Session(engine) as session:
        SQLResolver(session).register(entity_id, item_type)
        session.commit()
    typer.echo(f"Registered {entity_id} as {item_type}")


def validate_cmd(
    doc: Annotated[Path, typer.Argument(help="Wire-format JSON document")],
    schema: Annotated[Optional[str], typer.Option("--schema", help="YAML validation schema")] = None,
    ):
    """Validate a document against a schema; exits 1 when errors are found."""
    settings = _settings(overrides={"schema_file": schema})
    tree = _read_doc(doc)
    rules = _load_schema(settings)

    engine = make_engine(settings.db_url)
    init_db(engine)
    with Session(engine) as session:
        errors = validate(tree, rules, SQLResolver(session))

    if not errors:
        typer.echo(f"Valid: {doc}")
        return
    for error in errors:
        typer.echo(f"  {_format_path(error.path)}: {error.kind.value}: {error.detail}")
    typer.echo(f"{len(errors)} error(s) in {doc}", err=True)
    raise typer.Exit(1)


def diff_cmd(
    before: Annotated[Path, typer.Argument(help="Original wire-format JSON document")],
    after: Annotated[Path, typer.Argument(help="Changed wire-format JSON document")],
    ):
    """Show the positional structural diff between two documents."""
    changes = diff(_read_doc(before), _read_doc(after))
    if not changes:
        typer.echo("No changes.")
        return
    for change in changes:
        _echo_change(change)
    typer.echo(f"{len(changes)} change(s)")


def convert_cmd(
    path: Annotated[Path, typer.Argument(help="Markdown file to convert")],
    out: Annotated[Optional[Path], typer.Option("--out", "-o", help="Write JSON here instead of stdout")] = None,
    parser: Annotated[Optional[str], typer.Option("--parser-config", help="MarkdownIt preset name")] = None,
    ):
    """Convert Markdown into a wire-format JSON document."""
    settings = _settings(overrides={"parser_config": parser})
    try:
        tree = parse_file(path, settings.parser_config)
    except OSError as e:
        _fail(f"Cannot read {path}", e)
    text = encode(tree).to_json(indent=2)
    if out is None:
        typer.echo(text)
        return
    out.write_text(text + "\n", encoding="utf-8")
    typer.echo(f"  {path} -> {out}")


def render_cmd(
    doc: Annotated[Path, typer.Argument(help="Wire-format JSON document")],
    fmt: Annotated[str, typer.Option("--format", help="text or md")] = "text",
    ):
    """Render a document as plain text or Markdown."""
    if fmt not in ("text", "md"):
        _fail(f"Unknown format: {fmt} (expected text or md)")
    tree = _read_doc(doc)
    typer.echo(to_plain_text(tree) if fmt == "text" else to_markdown(tree), nl=fmt == "text")


def commit_cmd(
    doc: Annotated[Path, typer.Argument(help="Wire-format JSON document")],
    record: Annotated[str, typer.Option("--record", help="Id of the record owning the field")],
    field: Annotated[str, typer.Option("--field", help="Api key of the structured-text field")],
    versions: Annotated[Optional[int], typer.Option("--max-versions", help="Max stored versions")] = None,
    ):
    """Store a document as the next version of a record field."""
    settings = _settings(overrides={"max_versions": versions})
    tree = _read_doc(doc)
    engine = make_engine(settings.db_url)
    init_db(engine)
    with Session(engine) as session:
        version, created = save_version(session, record, field, tree, settings.max_versions)
        session.commit()
        num = version.version_num
    if created:
        typer.echo(f"Saved {record}.{field} v{num}")
    else:
        typer.echo(f"Unchanged: {record}.{field} is already v{num}")


def versions_cmd(
    record: Annotated[str, typer.Argument(help="Record id")],
    field: Annotated[str, typer.Argument(help="Structured-text field api key")],
    ):
    """List stored versions of a record field."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    init_db(engine)
    with Session(engine) as session:
        rows = [(v.version_num, v.created_at, v.hash) for v in list_versions(session, record, field)]
    if not rows:
        typer.echo(f"No versions stored for {record}.{field}.")
        raise typer.Exit(1)
    for num, created_at, digest in rows:
        typer.echo(f"v{num}  {created_at.isoformat(timespec='seconds')}  {digest[:12]}")
