from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

from packaging.version import InvalidVersion, Version

from sam_cli.errors import InvalidSamCliVersionError, SamCliNotFoundError
from sam_cli.invoker import ProcessInvocation, find_sam_cli, run_process

logger = logging.getLogger(__name__)

MINIMUM_SAM_CLI_VERSION_INCLUSIVE = "1.13.0"
MAXIMUM_SAM_CLI_VERSION_EXCLUSIVE = "2.0.0"

VALID = "valid"
VERSION_TOO_LOW = "version_too_low"
VERSION_TOO_HIGH = "version_too_high"
VERSION_NOT_PARSEABLE = "version_not_parseable"

_VERSION_RE = re.compile(r"version\s+(\d+\.\d+\.\d+\S*)", re.IGNORECASE)


@dataclass(frozen=True)
class SamCliValidatorResult:
    sam_cli_found: bool
    location: str | None = None
    version: str | None = None
    validation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sam_cli_found": self.sam_cli_found,
            "location": self.location,
            "version": self.version,
            "validation": self.validation,
        }


class SamCliValidator(Protocol):
    async def detect_valid_sam_cli(self) -> SamCliValidatorResult: ...


def parse_sam_cli_version(output: str) -> str | None:
    match = _VERSION_RE.search(output)
    if match is None:
        return None
    return match.group(1)


def validate_sam_cli_version(
    version: str | None,
    *,
    minimum: str = MINIMUM_SAM_CLI_VERSION_INCLUSIVE,
    maximum: str = MAXIMUM_SAM_CLI_VERSION_EXCLUSIVE,
) -> str:
    if not version:
        return VERSION_NOT_PARSEABLE
    try:
        parsed = Version(version)
    except InvalidVersion:
        return VERSION_NOT_PARSEABLE
    if parsed < Version(minimum):
        return VERSION_TOO_LOW
    if parsed >= Version(maximum):
        return VERSION_TOO_HIGH
    return VALID


class DefaultSamCliValidator:
    def __init__(self, *, sam_cli_location: str | None = None) -> None:
        self._sam_cli_location = sam_cli_location

    async def detect_valid_sam_cli(self) -> SamCliValidatorResult:
        location = find_sam_cli(self._sam_cli_location)
        if location is None:
            return SamCliValidatorResult(sam_cli_found=False)

        result = await run_process(
            ProcessInvocation(executable=location, working_directory=None, arguments=("--version",))
        )
        if result.error is not None or result.exit_code != 0:
            logger.warning(
                "Could not read SAM CLI version from %s (exit=%s): %s",
                location,
                result.exit_code,
                result.error or result.stderr.strip(),
            )
            return SamCliValidatorResult(
                sam_cli_found=True, location=location, validation=VERSION_NOT_PARSEABLE
            )

        version = parse_sam_cli_version(result.stdout) or parse_sam_cli_version(result.stderr)
        return SamCliValidatorResult(
            sam_cli_found=True,
            location=location,
            version=version,
            validation=validate_sam_cli_version(version),
        )


def throw_if_invalid(result: SamCliValidatorResult) -> None:
    if not result.sam_cli_found:
        raise SamCliNotFoundError(
            "Cannot find SAM CLI. It is required in order to work with serverless applications. "
            "Install it and make sure `sam` is on PATH, or set `sam_cli_location` in the settings.",
            code="sam_cli_not_found",
            details=result.to_dict(),
        )

    if result.validation == VALID:
        return

    if result.validation == VERSION_TOO_LOW:
        hint = f"Upgrade SAM CLI to version {MINIMUM_SAM_CLI_VERSION_INCLUSIVE} or newer."
    elif result.validation == VERSION_TOO_HIGH:
        hint = (
            f"SAM CLI versions {MAXIMUM_SAM_CLI_VERSION_EXCLUSIVE} and newer are not supported "
            "yet; install an older release."
        )
    else:
        hint = "Reinstall SAM CLI; `sam --version` did not report a recognizable version."

    raise InvalidSamCliVersionError(
        f"SAM CLI {result.version or '(unknown version)'} at {result.location} is not usable. "
        f"{hint}",
        code=result.validation,
        details=result.to_dict(),
    )
