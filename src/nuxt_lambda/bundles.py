"""Assemble one lambda per discovered route around a shared file closure."""

from __future__ import annotations

import asyncio
import logging
import posixpath
from collections.abc import Mapping
from importlib import resources
from pathlib import Path

from nuxt_lambda.config import Settings
from nuxt_lambda.errors import ArtifactShapeError, ConfigurationError
from nuxt_lambda.fs import FileBlob, FileFsRef, FileRef, FileSet, exclude_files, glob_files
from nuxt_lambda.lambdas import Lambda, create_lambda
from nuxt_lambda.routes import Route

logger = logging.getLogger(__name__)

PATHNAME_PLACEHOLDER = "PATHNAME_PLACEHOLDER"
LAUNCHER_FILE = "now__launcher.js"
BRIDGE_FILE = "now__bridge.js"
NUXT_CONFIG_FILE = "nuxt.config.js"
NODE_MODULES_CACHE = "node_modules/.cache"
# The path lands inside a single-quoted JS string in the launcher.
_UNSAFE_PATH_CHARS = frozenset("'\\\n\r\u2028\u2029")


def load_launcher_template() -> str:
    return (
        (resources.files("nuxt_lambda") / "templates" / "launcher.js")
        .read_text(encoding="utf-8")
    )


def render_launcher(template: str, route_path: str) -> str:
    occurrences = template.count(PATHNAME_PLACEHOLDER)
    if occurrences != 1:
        raise ConfigurationError(
            f"launcher template must contain {PATHNAME_PLACEHOLDER} exactly once, "
            f"found {occurrences}"
        )
    unsafe = sorted(_UNSAFE_PATH_CHARS.intersection(route_path))
    if unsafe:
        raise ArtifactShapeError(
            f"route path {route_path!r} contains characters that cannot be embedded "
            f"in the launcher: {''.join(unsafe)!r}"
        )
    return template.replace(PATHNAME_PLACEHOLDER, route_path)


def lambda_key(entry_dir: str, name: str) -> str:
    return posixpath.normpath(posixpath.join(entry_dir, name))


def bridge_ref(work_path: Path, settings: Settings) -> FileFsRef:
    path = work_path / "node_modules" / settings.bridge_package / settings.bridge_entry
    if not path.is_file():
        raise ArtifactShapeError(
            f"{settings.bridge_package} is not installed in node_modules "
            f"(expected {settings.bridge_entry})"
        )
    return FileFsRef.from_path(path)


def collect_shared_files(
    work_path: Path,
    staged: Mapping[str, FileRef],
    settings: Settings,
) -> FileSet:
    """Gather the files every route lambda ships with."""
    logger.info("preparing lambda files...")
    node_modules = exclude_files(
        glob_files("node_modules/**", work_path),
        lambda name: name == NODE_MODULES_CACHE or name.startswith(NODE_MODULES_CACHE + "/"),
    )
    shared: FileSet = {
        **node_modules,
        **glob_files(".nuxt/dist/*", work_path),
        **glob_files(".nuxt/dist/server/*", work_path),
        BRIDGE_FILE: bridge_ref(work_path, settings),
    }
    if NUXT_CONFIG_FILE in staged:
        shared[NUXT_CONFIG_FILE] = staged[NUXT_CONFIG_FILE]
    return shared


async def assemble_lambdas(
    routes: list[Route],
    shared: Mapping[str, FileRef],
    entry_dir: str,
    settings: Settings,
    template: str | None = None,
) -> dict[str, Lambda]:
    launcher_template = load_launcher_template() if template is None else template

    keys = [lambda_key(entry_dir, route.name) for route in routes]
    duplicates = sorted({key for key in keys if keys.count(key) > 1})
    if duplicates:
        raise ArtifactShapeError(f"routes map to the same lambda: {', '.join(duplicates)}")

    async def assemble(route: Route) -> Lambda:
        launcher = render_launcher(launcher_template, route.path)
        return await create_lambda(
            files={**shared, LAUNCHER_FILE: FileBlob.from_text(launcher)},
            handler=settings.lambda_handler,
            runtime=settings.lambda_runtime,
        )

    built = await asyncio.gather(*(assemble(route) for route in routes))
    return dict(zip(keys, built))
