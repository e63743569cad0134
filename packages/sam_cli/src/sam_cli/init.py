from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from sam_cli.context import SamCliContext
from sam_cli.exit_codes import log_and_raise_if_unexpected_exit_code
from sam_cli.templates import get_sam_cli_template_parameter
from sam_cli.validator import throw_if_invalid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZipPackage:
    runtime: str
    template: str | None = None


@dataclass(frozen=True)
class ImagePackage:
    base_image: str


PackageSpec = ZipPackage | ImagePackage


@dataclass(frozen=True)
class InitRequest:
    name: str
    location: Path | str
    dependency_manager: str
    package: PackageSpec
    extra_context: Mapping[str, str] | None = None

    @property
    def package_type(self) -> str:
        return "Image" if isinstance(self.package, ImagePackage) else "Zip"


def build_init_args(request: InitRequest) -> list[str]:
    args = [
        "init",
        "--name",
        request.name,
        "--no-interactive",
        "--dependency-manager",
        request.dependency_manager,
    ]

    package = request.package
    if isinstance(package, ImagePackage):
        args.extend(["--base-image", package.base_image])
    elif isinstance(package, ZipPackage):
        args.extend(["--runtime", package.runtime])
        if package.template is not None:
            args.extend(["--app-template", get_sam_cli_template_parameter(package.template)])
    else:
        raise TypeError(f"Unsupported package spec: {type(package).__name__}")

    if request.extra_context is not None:
        args.extend(["--extra-context", json.dumps(dict(request.extra_context))])

    return args


async def run_sam_cli_init(request: InitRequest, context: SamCliContext) -> None:
    """
    Run `sam init` for `request`.

    Validation, invocation and the exit code check each depend on the previous step; the
    first failure raises and nothing is retried.
    """

    validation = await context.validator.detect_valid_sam_cli()
    throw_if_invalid(validation)

    args = build_init_args(request)
    logger.info("Creating SAM application %r in %s", request.name, request.location)
    result = await context.invoker.invoke(arguments=args, cwd=request.location)
    log_and_raise_if_unexpected_exit_code(result, 0)
