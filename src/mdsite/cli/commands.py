"""CLI command implementations"""

from pathlib import Path
from typing import Annotated, Optional

import typer

from mdsite.config import Settings, load_config
from mdsite.core.build import build, load_items, site_index
from mdsite.core.models import Artifact, DeployResult
from mdsite.core.pipeline import run_pipeline
from mdsite.core.publish import make_host, publish
from mdsite.errors import SiteError
from mdsite.log import setup_logging


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None, verbose: bool = False) -> Settings:
    """Load config with standard CLI error handling and configure logging."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    setup_logging("DEBUG" if verbose else settings.log_level)
    return settings


def _echo_build(artifact: Artifact) -> None:
    for err in artifact.errors:
        typer.echo(f"  warning: {err}")
    typer.echo(
        f"Build complete - "
        f"{artifact.processed} processed, "
        f"{artifact.skipped} skipped -> {artifact.output_dir}/"
    )


def _echo_deploy(result: DeployResult) -> None:
    typer.echo(
        f"Published release {result.release_id} "
        f"({result.file_count} files, sha256 {result.digest[:12]}) -> {result.location}"
    )


def _host(settings: Settings):
    try:
        return make_host(settings)
    except ValueError as e:
        _fail(str(e))


def build_cmd(
    source: Annotated[Optional[str], typer.Argument(help="Content source directory")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    base_url: Annotated[Optional[str], typer.Option("--base-url", help="URL prefix for generated links")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
    ):
    """Render the source tree into a static site directory."""
    settings = _settings({"source_dir": source, "output_dir": out, "base_url": base_url}, verbose)
    try:
        artifact = build(settings.source_dir, settings.output_dir, settings)
    except SiteError as e:
        _fail("Build failed", e)
    _echo_build(artifact)


def publish_cmd(
    artifact_dir: Annotated[Optional[str], typer.Argument(help="Built site directory (default: output_dir)")] = None,
    host: Annotated[Optional[str], typer.Option("--host", help="directory or http")] = None,
    target: Annotated[Optional[str], typer.Option("--deploy-target", help="Target root for the directory host")] = None,
    url: Annotated[Optional[str], typer.Option("--deploy-url", help="Upload endpoint for the http host")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
    ):
    """Publish an already built site directory (re-publish an older build to roll back)."""
    settings = _settings({"host": host, "deploy_target": target, "deploy_url": url}, verbose)
    target_host = _host(settings)
    try:
        result = publish(Path(artifact_dir or settings.output_dir), target_host)
    except SiteError as e:
        _fail("Publish failed", e)
    _echo_deploy(result)


def run_cmd(
    source: Annotated[Optional[str], typer.Argument(help="Content source directory")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    host: Annotated[Optional[str], typer.Option("--host", help="directory or http")] = None,
    target: Annotated[Optional[str], typer.Option("--deploy-target", help="Target root for the directory host")] = None,
    url: Annotated[Optional[str], typer.Option("--deploy-url", help="Upload endpoint for the http host")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
    ):
    """Build then publish; exits non-zero if either stage fails."""
    settings = _settings({
        "source_dir": source, "output_dir": out,
        "host": host, "deploy_target": target, "deploy_url": url,
    }, verbose)
    target_host = _host(settings)
    try:
        result = run_pipeline(settings.source_dir, settings, target_host)
    except SiteError as e:
        _fail("Run rejected", e)
    if result.artifact:
        _echo_build(result.artifact)
    if not result.ok:
        _fail(f"Run ended in state '{result.state.value}'", result.error)
    _echo_deploy(result.deploy)


def list_cmd(
    source: Annotated[Optional[str], typer.Argument(help="Content source directory")] = None,
    ):
    """Print the post listing in index order without building."""
    settings = _settings({"source_dir": source})
    try:
        items, errors = load_items(settings.source_dir, settings)
    except SiteError as e:
        _fail("Scan failed", e)
    for err in errors:
        typer.echo(f"  warning: {err}", err=True)
    listed = site_index(items, settings.index_path)
    if not listed:
        typer.echo("No listable posts (need a title and a valid date).")
        raise typer.Exit(1)
    for item in listed:
        typer.echo(f"{item.date.isoformat()}  {item.title}  -> {item.output_path}")
