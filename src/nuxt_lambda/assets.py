"""Expose the client bundle under the public _nuxt namespace."""

from __future__ import annotations

import posixpath
from pathlib import Path

from nuxt_lambda.fs import FileSet, glob_files

CLIENT_DIST_DIR = ".nuxt/dist/client"
PUBLIC_PREFIX = "_nuxt/dist/client"


def map_static_files(work_path: Path, entry_dir: str) -> FileSet:
    client_files = glob_files("**", work_path / CLIENT_DIST_DIR)
    return {
        posixpath.normpath(posixpath.join(entry_dir, PUBLIC_PREFIX, name)): ref
        for name, ref in client_files.items()
    }
