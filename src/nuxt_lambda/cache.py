"""Export installed dependencies and build records for the next build."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from nuxt_lambda.fs import FileRef, FileSet, download, glob_files
from nuxt_lambda.toolchain import Toolchain

logger = logging.getLogger(__name__)

CACHE_PATTERNS = (
    ".nuxt/records.json",
    ".nuxt/server/records.json",
    "node_modules/**",
    "yarn.lock",
    "package-lock.json",
)


async def export_cache(
    files: Mapping[str, FileRef],
    cache_path: Path,
    work_path: Path,
    toolchain: Toolchain,
) -> FileSet:
    logger.info("downloading user files...")
    download(files, cache_path)
    download(glob_files(".nuxt/**", work_path), cache_path)
    download(glob_files("node_modules/**", work_path), cache_path)

    logger.debug(".nuxt folder contents: %s", sorted(glob_files(".nuxt/**", cache_path)))
    logger.debug(
        "node_modules/.cache folder contents: %s",
        sorted(glob_files("node_modules/.cache/**", cache_path)),
    )

    logger.info("running npm install...")
    await toolchain.install(cache_path)

    snapshot: FileSet = {}
    for pattern in CACHE_PATTERNS:
        snapshot.update(glob_files(pattern, cache_path))
    return snapshot
