"""File-set primitives shared by every build stage."""

from nuxt_lambda.fs.ops import download, exclude_files, glob_files, rename
from nuxt_lambda.fs.refs import FileBlob, FileFsRef, FileRef, FileSet

__all__ = [
    "FileBlob",
    "FileFsRef",
    "FileRef",
    "FileSet",
    "download",
    "exclude_files",
    "glob_files",
    "rename",
]
