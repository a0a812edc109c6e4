"""Install and build processes run against the staged working directory."""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from pathlib import Path
from typing import Protocol

from nuxt_lambda.config import Settings
from nuxt_lambda.errors import ExternalProcessError
from nuxt_lambda.manifest import MANIFEST_FILE, registry_credentials

logger = logging.getLogger(__name__)

PREFER_OFFLINE = "--prefer-offline"
PRODUCTION = "--production"
_OUTPUT_TAIL_LINES = 200
_OUTPUT_LINE_CHARS = 2000
_READ_CHUNK = 65536


class Toolchain(Protocol):
    async def install(self, path: Path, args: list[str] | None = None) -> None: ...

    async def run_script(self, path: Path, script_name: str) -> bool: ...


async def spawn(command: list[str], cwd: Path) -> None:
    """Run *command* to completion, streaming output into the log.

    Raises ExternalProcessError when the process cannot be started or exits
    non-zero. There is no timeout: a hung child hangs the build. Output is
    read in fixed-size chunks, so arbitrarily long lines are fine.
    """
    logger.info("running %s", " ".join(command))
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except FileNotFoundError as exc:
        raise ExternalProcessError(
            f"{command[0]} not found on PATH", command=command, exit_code=None
        ) from exc

    assert proc.stdout is not None
    tail: deque[str] = deque(maxlen=_OUTPUT_TAIL_LINES)

    def record(raw: bytes) -> None:
        text = raw.decode(errors="replace").rstrip()
        tail.append(text[:_OUTPUT_LINE_CHARS])
        logger.debug(text)

    pending = b""
    try:
        while chunk := await proc.stdout.read(_READ_CHUNK):
            *lines, pending = (pending + chunk).split(b"\n")
            for line in lines:
                record(line)
        if pending:
            record(pending)
        await proc.wait()
    finally:
        # Reached with a live child only when reading failed or was cancelled.
        if proc.returncode is None:
            proc.kill()
            await proc.wait()

    if proc.returncode != 0:
        output = "\n".join(tail)
        raise ExternalProcessError(
            f"{' '.join(command)} exited with code {proc.returncode}\n{output}".rstrip(),
            command=command,
            exit_code=proc.returncode,
            output=output,
        )


class NodeToolchain:
    """npm or yarn, chosen the same way for every step: a package-lock.json means npm."""

    async def install(self, path: Path, args: list[str] | None = None) -> None:
        command_args = list(args or [])
        logger.info("installing to %s", path)
        if (path / "package-lock.json").exists():
            command_args = [arg for arg in command_args if arg != PREFER_OFFLINE]
            await spawn(["npm", "install", *command_args], cwd=path)
            await spawn(["npm", "cache", "clean", "--force"], cwd=path)
        else:
            await spawn(["yarn", "--cwd", str(path), *command_args], cwd=path)
            await spawn(["yarn", "cache", "clean"], cwd=path)

    async def run_script(self, path: Path, script_name: str) -> bool:
        manifest_path = path / MANIFEST_FILE
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        scripts = manifest.get("scripts") if isinstance(manifest, dict) else None
        if not isinstance(scripts, dict) or not scripts.get(script_name):
            logger.warning("package.json has no %r script, skipping", script_name)
            return False
        if (path / "package-lock.json").exists():
            await spawn(["npm", "run", script_name], cwd=path)
        else:
            await spawn(["yarn", "run", script_name], cwd=path)
        return True


async def run_toolchain(toolchain: Toolchain, work_path: Path, settings: Settings) -> None:
    """Install, build, then reinstall with production dependencies only.

    The registry credential (if any) exists only while these steps run.
    """
    with registry_credentials(work_path, settings.npm_auth_token, settings.npm_registry):
        logger.info("running npm install...")
        await toolchain.install(work_path, [PREFER_OFFLINE])
        logger.info("running user script...")
        await toolchain.run_script(work_path, settings.build_script)
        logger.info("running npm install --production...")
        await toolchain.install(work_path, [PREFER_OFFLINE, PRODUCTION])
