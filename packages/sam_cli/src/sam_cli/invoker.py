from __future__ import annotations

import asyncio
import logging
import os
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_SAM_BINARIES: tuple[str, ...] = ("sam", "sam.cmd", "sam.exe")


@dataclass(frozen=True)
class ProcessInvocation:
    executable: str
    working_directory: str | None
    arguments: tuple[str, ...] = ()
    environment: Mapping[str, str] | None = None

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.arguments]


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int | None
    error: BaseException | None = None
    stdout: str = ""
    stderr: str = ""
    argv: tuple[str, ...] = field(default=(), compare=False)


class SamCliProcessInvoker(Protocol):
    async def invoke(
        self,
        *,
        arguments: Sequence[str],
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ProcessResult: ...


def _resolve_executable(binary: str) -> str:
    p = Path(binary)
    if p.is_absolute():
        return str(p)

    # Anything with a path separator or drive spec is an explicit path, not a PATH lookup.
    if any(sep in binary for sep in ("/", "\\")) or (os.name == "nt" and ":" in binary):
        return binary

    resolved = shutil.which(binary)
    return resolved if resolved is not None else binary


def find_sam_cli(configured_location: str | None = None) -> str | None:
    if configured_location:
        candidate = _resolve_executable(configured_location)
        if Path(candidate).is_file():
            return candidate
        return None

    for binary in DEFAULT_SAM_BINARIES:
        resolved = shutil.which(binary)
        if resolved is not None:
            return resolved
    return None


async def run_process(invocation: ProcessInvocation) -> ProcessResult:
    """
    Run one process to completion and capture its output.

    A non-zero exit is reported through `exit_code`; a process that could not be
    started is reported through `error` with `exit_code=None`.
    """

    env: dict[str, str] | None = None
    if invocation.environment is not None:
        env = os.environ.copy()
        env.update(invocation.environment)

    argv = tuple(invocation.argv)
    logger.debug("Running %s (cwd=%s)", list(argv), invocation.working_directory)
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=invocation.working_directory,
            env=env,
        )
    except OSError as e:
        logger.debug("Failed to launch %r: %s", invocation.executable, e)
        return ProcessResult(exit_code=None, error=e, argv=argv)

    stdout_b, stderr_b = await proc.communicate()
    return ProcessResult(
        exit_code=proc.returncode,
        stdout=(stdout_b or b"").decode("utf-8", errors="replace"),
        stderr=(stderr_b or b"").decode("utf-8", errors="replace"),
        argv=argv,
    )


class DefaultSamCliProcessInvoker:
    def __init__(self, *, sam_cli_location: str | None = None) -> None:
        self._sam_cli_location = sam_cli_location

    def executable(self) -> str:
        return find_sam_cli(self._sam_cli_location) or self._sam_cli_location or "sam"

    async def invoke(
        self,
        *,
        arguments: Sequence[str],
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ProcessResult:
        invocation = ProcessInvocation(
            executable=self.executable(),
            working_directory=str(cwd) if cwd is not None else None,
            arguments=tuple(arguments),
            environment=dict(env) if env is not None else None,
        )
        return await run_process(invocation)
