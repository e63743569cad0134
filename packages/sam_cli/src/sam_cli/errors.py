from __future__ import annotations

from typing import Any


class SamCliError(Exception):
    """Base class for errors raised while driving the SAM CLI."""


class CliNotFoundOrInvalidError(SamCliError):
    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class SamCliNotFoundError(CliNotFoundOrInvalidError):
    pass


class InvalidSamCliVersionError(CliNotFoundOrInvalidError):
    pass


class UnexpectedExitCodeError(SamCliError):
    def __init__(
        self,
        message: str,
        *,
        expected: int,
        actual: int | None,
        stdout: str,
        stderr: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual
        self.stdout = stdout
        self.stderr = stderr
        self.cause = cause


class ProcessLaunchError(UnexpectedExitCodeError):
    """The executable never ran (missing binary, permission denied, ...)."""
