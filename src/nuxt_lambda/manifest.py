"""Rewrite the staged package.json so the Nuxt build and bridge are always present."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from nuxt_lambda.config import Settings
from nuxt_lambda.fs import FileRef

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"
NPMRC_FILE = ".npmrc"
FRAMEWORK_PACKAGE = "nuxt"


def read_manifest(staged: Mapping[str, FileRef]) -> dict[str, Any]:
    ref = staged.get(MANIFEST_FILE)
    if ref is None:
        return {}
    logger.info("found package.json, overwriting")
    decoded = json.loads(ref.read_bytes().decode("utf-8"))
    return decoded if isinstance(decoded, dict) else {}


def _section(manifest: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = manifest.get(key)
    return dict(value) if isinstance(value, dict) else {}


def rewrite_manifest(manifest: Mapping[str, Any], settings: Settings) -> dict[str, Any]:
    """Return a new manifest with the bridge, nuxt and the build script declared."""
    dependencies = _section(manifest, "dependencies")
    dependencies[settings.bridge_package] = settings.bridge_version
    # nuxt as both a direct and a dev dependency resolves nondeterministically
    dependencies.pop(FRAMEWORK_PACKAGE, None)

    dev_dependencies = _section(manifest, "devDependencies")
    dev_dependencies[FRAMEWORK_PACKAGE] = settings.nuxt_version

    scripts = _section(manifest, "scripts")
    scripts[settings.build_script] = settings.nuxt_build_command

    return {
        **manifest,
        "dependencies": dependencies,
        "devDependencies": dev_dependencies,
        "scripts": scripts,
    }


def write_manifest(work_path: Path, manifest: Mapping[str, Any]) -> Path:
    path = work_path / MANIFEST_FILE
    path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    return path


@contextmanager
def registry_credentials(work_path: Path, token: str, registry: str) -> Iterator[Path | None]:
    """Add *token* to the work dir's .npmrc only while the block runs.

    A user-staged .npmrc keeps its settings: the token line is appended and
    the original content is put back afterwards.
    """
    if not token:
        yield None
        return
    npmrc = work_path / NPMRC_FILE
    auth_line = f"//{registry}/:_authToken={token}"
    original = npmrc.read_text(encoding="utf-8") if npmrc.is_file() else None
    if original is None:
        logger.info("found NPM_AUTH_TOKEN in environment, creating .npmrc")
        npmrc.write_text(auth_line, encoding="utf-8")
    else:
        logger.info("found NPM_AUTH_TOKEN in environment, appending to existing .npmrc")
        separator = "" if not original or original.endswith("\n") else "\n"
        npmrc.write_text(f"{original}{separator}{auth_line}\n", encoding="utf-8")
    try:
        yield npmrc
    finally:
        if original is None:
            npmrc.unlink(missing_ok=True)
        else:
            npmrc.write_text(original, encoding="utf-8")
