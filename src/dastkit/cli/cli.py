"""CLI entrypoint: Typer app definition and command registration"""

from typing import Annotated

import typer

from dastkit.cli.commands import (
    _settings, commit_cmd, convert_cmd, diff_cmd, init_cmd,
    register_cmd, render_cmd, validate_cmd, versions_cmd,
)
from dastkit.logging_config import configure_logging


app = typer.Typer(name="dastkit", no_args_is_help=True, help="Structured-text document toolkit")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Print debug messages")] = False,
    ):
    """Build, validate, diff and version structured-text documents."""
    configure_logging(verbose=verbose, level=_settings().log_level)


app.command(name="init")(init_cmd)
app.command(name="register")(register_cmd)
app.command(name="validate")(validate_cmd)
app.command(name="diff")(diff_cmd)
app.command(name="convert")(convert_cmd)
app.command(name="render")(render_cmd)
app.command(name="commit")(commit_cmd)
app.command(name="versions")(versions_cmd)
