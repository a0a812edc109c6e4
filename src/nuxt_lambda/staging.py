"""Select and materialize the part of the source tree the build needs."""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Callable, Mapping
from pathlib import Path

from nuxt_lambda.errors import ConfigurationError
from nuxt_lambda.fs import FileRef, FileSet, download, exclude_files, rename

logger = logging.getLogger(__name__)

ENTRYPOINT_NAMES = ("package.json", "nuxt.config.js")
STATIC_DIR = "static"
LOCKFILES = ("package-lock.json", "yarn.lock")


def validate_entrypoint(entrypoint: str) -> None:
    if not entrypoint.endswith(ENTRYPOINT_NAMES):
        raise ConfigurationError(
            'Specified "src" for the Nuxt builder has to be "package.json" or "nuxt.config.js"'
        )


def entry_directory(entrypoint: str) -> str:
    return posixpath.dirname(entrypoint) or "."


def _within(path: str, directory: str) -> bool:
    return path == directory or path.startswith(directory.rstrip("/") + "/")


def should_exclude(entry_dir: str) -> Callable[[str], bool]:
    static_dir = posixpath.join(entry_dir, STATIC_DIR) if entry_dir != "." else STATIC_DIR
    scoped_lockfiles = {
        posixpath.join(entry_dir, name) if entry_dir != "." else name for name in LOCKFILES
    }

    def matcher(path: str) -> bool:
        if entry_dir != "." and not _within(path, entry_dir):
            return True
        if _within(path, static_dir):
            return True
        return path in LOCKFILES or path in scoped_lockfiles

    return matcher


def strip_entry_directory(entry_dir: str) -> Callable[[str], str]:
    prefix = entry_dir.rstrip("/") + "/"

    def transform(path: str) -> str:
        if entry_dir != "." and path.startswith(prefix):
            return path[len(prefix):]
        return path

    return transform


def stage_files(files: Mapping[str, FileRef], entrypoint: str, work_path: Path) -> FileSet:
    """Filter, rebase and write the user's files into *work_path*."""
    validate_entrypoint(entrypoint)
    entry_dir = entry_directory(entrypoint)

    logger.info("downloading user files...")
    kept = exclude_files(files, should_exclude(entry_dir))
    rebased = rename(kept, strip_entry_directory(entry_dir))
    staged = download(rebased, work_path)
    logger.debug("staged %d of %d files from %s", len(staged), len(files), entry_dir)
    return staged
