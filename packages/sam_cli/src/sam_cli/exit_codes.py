from __future__ import annotations

import logging

from sam_cli.errors import ProcessLaunchError, UnexpectedExitCodeError
from sam_cli.invoker import ProcessResult

logger = logging.getLogger(__name__)

MAX_OUTPUT_EXCERPT_CHARS = 4_000
_MAX_STDERR_MESSAGE_LINES = 5


def _truncate_text(text: str, *, max_chars: int, marker: str = "...[truncated]") -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + marker


def _error_message(result: ProcessResult) -> str:
    if result.error is not None and str(result.error):
        return str(result.error)
    lines = [line for line in result.stderr.splitlines() if line.strip()]
    if lines:
        return "\n".join(lines[-_MAX_STDERR_MESSAGE_LINES:])
    return f"exit code {result.exit_code}"


def log_and_raise_if_unexpected_exit_code(result: ProcessResult, expected: int) -> None:
    if result.error is None and result.exit_code == expected:
        return

    message = _error_message(result)
    stdout_excerpt = _truncate_text(result.stdout, max_chars=MAX_OUTPUT_EXCERPT_CHARS)
    stderr_excerpt = _truncate_text(result.stderr, max_chars=MAX_OUTPUT_EXCERPT_CHARS)
    diagnostic = {
        "expected_exit_code": expected,
        "actual_exit_code": result.exit_code,
        "error": str(result.error) if result.error is not None else None,
        "stdout": stdout_excerpt,
        "stderr": stderr_excerpt,
    }
    logger.error(
        "Unexpected exit code (%s), expecting (%s)\nError: %s\nstderr: %s\nstdout: %s",
        result.exit_code,
        expected,
        diagnostic["error"],
        stderr_excerpt,
        stdout_excerpt,
        extra={"process_diagnostic": diagnostic},
    )

    error_cls = ProcessLaunchError if result.exit_code is None else UnexpectedExitCodeError
    raise error_cls(
        f"Error with child process: {message}",
        expected=expected,
        actual=result.exit_code,
        stdout=result.stdout,
        stderr=result.stderr,
        cause=result.error,
    ) from result.error
