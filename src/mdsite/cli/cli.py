"""CLI entrypoint: Typer app definition and command registration"""

import typer

from mdsite.cli.commands import build_cmd, list_cmd, publish_cmd, run_cmd


app = typer.Typer(name="mdsite", no_args_is_help=True, help="Markdown blog build and publish pipeline")

app.command(name="build")(build_cmd)
app.command(name="publish")(publish_cmd)
app.command(name="run")(run_cmd)
app.command(name="list")(list_cmd)
