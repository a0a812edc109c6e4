"""Click CLI group: build, prepare-cache and routes commands."""

from __future__ import annotations

import asyncio
import json
import tempfile
from pathlib import Path

import click

from nuxt_lambda.builder import BuildResult, build, prepare_cache
from nuxt_lambda.config import get_settings
from nuxt_lambda.errors import BuilderError
from nuxt_lambda.fs import FileSet, download, glob_files
from nuxt_lambda.lambdas import Lambda
from nuxt_lambda.logging import configure_logging
from nuxt_lambda.routes import parse_route_table

SKIPPED_SOURCE_DIRS = (".git", "node_modules", ".nuxt")


def read_source_tree(source_dir: Path) -> FileSet:
    """Load a project directory as a file set, leaving out VCS and build output."""
    return {
        name: ref
        for name, ref in glob_files("**", source_dir).items()
        if not any(part in SKIPPED_SOURCE_DIRS for part in name.split("/")[:-1])
    }


def write_build_output(result: BuildResult, out_dir: Path) -> tuple[int, int]:
    """Write lambdas as `<key>.zip` + `<key>.json` and static files as-is."""
    lambdas = 0
    static: FileSet = {}
    for key, value in sorted(result.items()):
        if isinstance(value, Lambda):
            target = out_dir / f"{key}.zip"
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(value.to_zip())
            descriptor = {
                "handler": value.handler,
                "runtime": value.runtime,
                "environment": value.environment,
                "files": len(value.files),
            }
            (out_dir / f"{key}.json").write_text(json.dumps(descriptor, indent=2, sort_keys=True))
            lambdas += 1
        else:
            static[key] = value
    download(static, out_dir)
    return lambdas, len(static)


@click.group()
def cli() -> None:
    """Nuxt lambda builder CLI."""
    configure_logging(get_settings())


@cli.command("build")
@click.argument(
    "source_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option(
    "--entrypoint",
    default="package.json",
    show_default=True,
    help="package.json or nuxt.config.js, relative to SOURCE_DIR.",
)
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Build directory (default: a fresh temporary directory).",
)
@click.option(
    "--out-dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Where lambda archives and static files are written.",
)
def build_cmd(source_dir: Path, entrypoint: str, work_dir: Path | None, out_dir: Path) -> None:
    """Build SOURCE_DIR into one lambda per page plus static assets."""
    files = read_source_tree(source_dir)
    work_path = work_dir or Path(tempfile.mkdtemp(prefix="nuxt-lambda-"))
    click.echo(f"work dir: {work_path}")
    try:
        result = asyncio.run(build(files, work_path, entrypoint))
    except BuilderError as exc:
        raise click.ClickException(str(exc)) from exc
    lambdas, static = write_build_output(result, out_dir)
    click.echo(f"wrote {lambdas} lambdas and {static} static files to {out_dir}")


@cli.command("prepare-cache")
@click.argument(
    "source_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option(
    "--work-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    required=True,
    help="Working directory left behind by a previous build.",
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
)
def prepare_cache_cmd(source_dir: Path, work_dir: Path, cache_dir: Path) -> None:
    """Export dependencies and build records from WORK_DIR into CACHE_DIR."""
    files = read_source_tree(source_dir)
    try:
        snapshot = asyncio.run(prepare_cache(files, cache_dir, work_dir))
    except BuilderError as exc:
        raise click.ClickException(str(exc)) from exc
    for name in sorted(snapshot):
        click.echo(name)


@cli.command()
@click.argument("router_js", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Print routes as JSON.")
def routes(router_js: Path, json_output: bool) -> None:
    """Print the routes found in a generated router.js."""
    try:
        found = parse_route_table(router_js.read_text(encoding="utf-8"))
    except BuilderError as exc:
        raise click.ClickException(str(exc)) from exc
    if json_output:
        click.echo(json.dumps([{"path": r.path, "name": r.name} for r in found], indent=2))
        return
    for route in found:
        click.echo(f"{route.name}\t{route.path}")


def main() -> None:
    cli()
