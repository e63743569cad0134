from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from sam_cli.exit_codes import log_and_raise_if_unexpected_exit_code
from sam_cli.invoker import SamCliProcessInvoker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageRequest:
    source_template_file: str
    destination_template_file: str
    region: str
    s3_bucket: str
    ecr_repo: str | None = None
    environment_variables: Mapping[str, str] = field(default_factory=dict)


def build_package_args(request: PackageRequest) -> list[str]:
    args = [
        "package",
        "--template-file",
        request.source_template_file,
        "--s3-bucket",
        request.s3_bucket,
        "--output-template-file",
        request.destination_template_file,
        "--region",
        request.region,
    ]
    if request.ecr_repo:
        args.extend(["--image-repository", request.ecr_repo])
    return args


async def run_sam_cli_package(request: PackageRequest, invoker: SamCliProcessInvoker) -> None:
    args = build_package_args(request)
    logger.info("Packaging %s to s3://%s", request.source_template_file, request.s3_bucket)
    result = await invoker.invoke(arguments=args, env=request.environment_variables)
    log_and_raise_if_unexpected_exit_code(result, 0)
