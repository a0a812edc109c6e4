"""Materialize, enumerate and rekey file sets."""

from __future__ import annotations

import os
import shutil
import stat
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

from nuxt_lambda.fs.refs import FileFsRef, FileRef, FileSet

RECURSIVE = "**"


def _candidates(pattern: str, base: Path) -> Iterable[Path]:
    # A trailing `**` means every file below the prefix, dotfiles included.
    if pattern == RECURSIVE or pattern.endswith("/" + RECURSIVE):
        return (base / pattern.removesuffix(RECURSIVE)).rglob("*")
    return base.glob(pattern)


def glob_files(pattern: str, base: Path | str) -> FileSet:
    """Return every regular file under *base* whose relative path matches *pattern*."""
    base_path = Path(base)
    if not base_path.is_dir():
        return {}
    return {
        path.relative_to(base_path).as_posix(): FileFsRef.from_path(path)
        for path in sorted(_candidates(pattern, base_path))
        if path.is_file()
    }


def _write_ref(ref: FileRef, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(ref, FileFsRef):
        if ref.fs_path.resolve() == dest.resolve():
            return
        shutil.copyfile(ref.fs_path, dest)
    else:
        dest.write_bytes(ref.data)
    os.chmod(dest, stat.S_IMODE(ref.mode))


def download(files: Mapping[str, FileRef], dest_dir: Path | str) -> FileSet:
    """Write *files* under *dest_dir* and return references rebased onto it."""
    dest_path = Path(dest_dir)
    downloaded: FileSet = {}
    for name in sorted(files):
        ref = files[name]
        target = dest_path / name
        _write_ref(ref, target)
        downloaded[name] = FileFsRef(fs_path=target, mode=ref.mode)
    return downloaded


def rename(files: Mapping[str, FileRef], path_fn: Callable[[str], str]) -> FileSet:
    return {path_fn(name): ref for name, ref in files.items()}


def exclude_files(files: Mapping[str, FileRef], match_fn: Callable[[str], bool]) -> FileSet:
    return {name: ref for name, ref in files.items() if not match_fn(name)}
