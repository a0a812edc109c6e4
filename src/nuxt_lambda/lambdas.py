"""Deployable function units."""

from __future__ import annotations

import io
import zipfile
from collections.abc import Mapping
from dataclasses import dataclass, field

from nuxt_lambda.fs import FileRef, FileSet

_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass(slots=True)
class Lambda:
    files: FileSet
    handler: str
    runtime: str
    environment: dict[str, str] = field(default_factory=dict)

    def to_zip(self) -> bytes:
        """Archive the file set; identical inputs give identical bytes."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name in sorted(self.files):
                ref = self.files[name]
                info = zipfile.ZipInfo(name, date_time=_ZIP_EPOCH)
                info.create_system = 3
                info.external_attr = (ref.mode & 0xFFFF) << 16
                info.compress_type = zipfile.ZIP_DEFLATED
                archive.writestr(info, ref.read_bytes())
        return buffer.getvalue()


async def create_lambda(
    files: Mapping[str, FileRef],
    handler: str,
    runtime: str,
    environment: Mapping[str, str] | None = None,
) -> Lambda:
    # Each unit owns its mapping; the refs themselves are immutable and shared.
    return Lambda(
        files=dict(files),
        handler=handler,
        runtime=runtime,
        environment=dict(environment or {}),
    )
