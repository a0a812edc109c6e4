"""Package a Nuxt application as one lambda per page plus static assets."""

from nuxt_lambda.builder import BuildResult, build, prepare_cache
from nuxt_lambda.fs import FileBlob, FileFsRef, FileRef, FileSet
from nuxt_lambda.lambdas import Lambda
from nuxt_lambda.routes import Route

__all__ = [
    "BuildResult",
    "FileBlob",
    "FileFsRef",
    "FileRef",
    "FileSet",
    "Lambda",
    "Route",
    "build",
    "prepare_cache",
]
