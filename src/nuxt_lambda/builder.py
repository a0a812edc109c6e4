"""Build entry points: turn a Nuxt source tree into route lambdas and static files."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TypeAlias

from nuxt_lambda.assets import map_static_files
from nuxt_lambda.bundles import assemble_lambdas, collect_shared_files
from nuxt_lambda.cache import export_cache
from nuxt_lambda.config import Settings, get_settings, validate_settings
from nuxt_lambda.fs import FileRef, FileSet
from nuxt_lambda.lambdas import Lambda
from nuxt_lambda.logging import build_context
from nuxt_lambda.manifest import read_manifest, rewrite_manifest, write_manifest
from nuxt_lambda.routes import discover_routes
from nuxt_lambda.staging import entry_directory, stage_files, validate_entrypoint
from nuxt_lambda.toolchain import NodeToolchain, Toolchain, run_toolchain

logger = logging.getLogger(__name__)

BuildResult: TypeAlias = dict[str, Lambda | FileRef]


async def build(
    files: Mapping[str, FileRef],
    work_path: Path,
    entrypoint: str,
    *,
    toolchain: Toolchain | None = None,
    settings: Settings | None = None,
) -> BuildResult:
    """Run the full pipeline for one entrypoint.

    Stages run strictly in order against *work_path*; only lambda assembly
    fans out. Any failure aborts the build with no partial output.
    """
    settings = settings or get_settings()
    validate_settings(settings)
    validate_entrypoint(entrypoint)
    toolchain = toolchain or NodeToolchain()
    work_path = Path(work_path)
    work_path.mkdir(parents=True, exist_ok=True)
    entry_dir = entry_directory(entrypoint)

    with build_context(entrypoint=entrypoint, work_path=str(work_path)):
        staged = stage_files(files, entrypoint, work_path)
        manifest = rewrite_manifest(read_manifest(staged), settings)
        write_manifest(work_path, manifest)

        await run_toolchain(toolchain, work_path, settings)

        shared = collect_shared_files(work_path, staged, settings)
        routes = discover_routes(work_path)
        lambdas = await assemble_lambdas(routes, shared, entry_dir, settings)
        static_files = map_static_files(work_path, entry_dir)
        logger.info("built %d lambdas and %d static files", len(lambdas), len(static_files))
        return {**lambdas, **static_files}


async def prepare_cache(
    files: Mapping[str, FileRef],
    cache_path: Path,
    work_path: Path,
    *,
    toolchain: Toolchain | None = None,
) -> FileSet:
    """Snapshot dependencies and build records from *work_path* for reuse."""
    toolchain = toolchain or NodeToolchain()
    with build_context(cache_path=str(cache_path), work_path=str(work_path)):
        return await export_cache(files, Path(cache_path), Path(work_path), toolchain)
