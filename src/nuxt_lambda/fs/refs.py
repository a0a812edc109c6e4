"""File references: in-memory blobs and on-disk files."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import TypeAlias

DEFAULT_MODE = 0o100644


@dataclass(frozen=True, slots=True)
class FileBlob:
    data: bytes
    mode: int = DEFAULT_MODE

    @classmethod
    def from_text(cls, text: str, mode: int = DEFAULT_MODE) -> FileBlob:
        return cls(data=text.encode("utf-8"), mode=mode)

    def read_bytes(self) -> bytes:
        return self.data


@dataclass(frozen=True, slots=True)
class FileFsRef:
    fs_path: Path
    mode: int = DEFAULT_MODE

    @classmethod
    def from_path(cls, fs_path: Path | str) -> FileFsRef:
        path = Path(fs_path)
        st = os.stat(path)
        return cls(fs_path=path, mode=stat.S_IFREG | stat.S_IMODE(st.st_mode))

    def read_bytes(self) -> bytes:
        return self.fs_path.read_bytes()


FileRef: TypeAlias = FileBlob | FileFsRef

# Repository-relative POSIX path -> file reference. Stages return new
# mappings and never mutate the one they were given.
FileSet: TypeAlias = dict[str, FileRef]
