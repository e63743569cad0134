from __future__ import annotations

from dataclasses import dataclass

from sam_cli.invoker import DefaultSamCliProcessInvoker, SamCliProcessInvoker
from sam_cli.validator import DefaultSamCliValidator, SamCliValidator


@dataclass(frozen=True)
class SamCliContext:
    validator: SamCliValidator
    invoker: SamCliProcessInvoker


def get_sam_cli_context(*, sam_cli_location: str | None = None) -> SamCliContext:
    return SamCliContext(
        validator=DefaultSamCliValidator(sam_cli_location=sam_cli_location),
        invoker=DefaultSamCliProcessInvoker(sam_cli_location=sam_cli_location),
    )


async def get_sam_cli_version(context: SamCliContext) -> str | None:
    result = await context.validator.detect_valid_sam_cli()
    return result.version
