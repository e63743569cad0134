"""Test doubles for sam_cli.

These stand in for the SAM CLI binary so argument building and exit code handling can be
exercised without spawning processes.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from sam_cli.invoker import ProcessResult
from sam_cli.validator import VALID, SamCliValidatorResult

__all__ = [
    "BadExitCodeSamCliProcessInvoker",
    "FakeSamCliValidator",
    "InvokeCall",
    "RecordingSamCliProcessInvoker",
]


@dataclass(frozen=True)
class InvokeCall:
    arguments: list[str]
    cwd: str | None
    env: dict[str, str] | None


class FakeSamCliValidator:
    def __init__(self, result: SamCliValidatorResult | None = None) -> None:
        self.result = result or SamCliValidatorResult(
            sam_cli_found=True, location="/usr/local/bin/sam", version="1.20.0", validation=VALID
        )
        self.calls = 0

    async def detect_valid_sam_cli(self) -> SamCliValidatorResult:
        self.calls += 1
        return self.result


@dataclass
class RecordingSamCliProcessInvoker:
    """Records each call and answers with `result`, optionally running `on_invoke` first."""

    on_invoke: Callable[[InvokeCall], None] | None = None
    result: ProcessResult = field(default_factory=lambda: ProcessResult(exit_code=0))
    calls: list[InvokeCall] = field(default_factory=list)

    async def invoke(
        self,
        *,
        arguments: Sequence[str],
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ProcessResult:
        call = InvokeCall(
            arguments=list(arguments),
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
        )
        self.calls.append(call)
        if self.on_invoke is not None:
            self.on_invoke(call)
        return self.result


class BadExitCodeSamCliProcessInvoker(RecordingSamCliProcessInvoker):
    def __init__(
        self,
        *,
        exit_code: int = -1,
        error: BaseException | None = None,
        stdout: str = "stdout text",
        stderr: str = "stderr text",
    ) -> None:
        self.error = error if error is not None else RuntimeError("Bad!")
        super().__init__(
            result=ProcessResult(
                exit_code=exit_code, error=self.error, stdout=stdout, stderr=stderr
            )
        )