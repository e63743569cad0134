from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version

from sam_cli.context import SamCliContext, get_sam_cli_context, get_sam_cli_version
from sam_cli.errors import (
    CliNotFoundOrInvalidError,
    InvalidSamCliVersionError,
    ProcessLaunchError,
    SamCliError,
    SamCliNotFoundError,
    UnexpectedExitCodeError,
)
from sam_cli.exit_codes import log_and_raise_if_unexpected_exit_code
from sam_cli.init import ImagePackage, InitRequest, ZipPackage, build_init_args, run_sam_cli_init
from sam_cli.invoker import (
    DefaultSamCliProcessInvoker,
    ProcessInvocation,
    ProcessResult,
    SamCliProcessInvoker,
    run_process,
)
from sam_cli.package import PackageRequest, build_package_args, run_sam_cli_package
from sam_cli.validator import DefaultSamCliValidator, SamCliValidatorResult, throw_if_invalid


def _resolve_version() -> str:
    for distribution_name in ("samapp-toolkit", "samapp_toolkit"):
        try:
            return package_version(distribution_name)
        except PackageNotFoundError:
            continue
    return "0+unknown"


__version__ = _resolve_version()

__all__ = [
    "__version__",
    "CliNotFoundOrInvalidError",
    "DefaultSamCliProcessInvoker",
    "DefaultSamCliValidator",
    "ImagePackage",
    "InitRequest",
    "InvalidSamCliVersionError",
    "PackageRequest",
    "ProcessInvocation",
    "ProcessLaunchError",
    "ProcessResult",
    "SamCliContext",
    "SamCliError",
    "SamCliNotFoundError",
    "SamCliProcessInvoker",
    "SamCliValidatorResult",
    "UnexpectedExitCodeError",
    "ZipPackage",
    "build_init_args",
    "build_package_args",
    "get_sam_cli_context",
    "get_sam_cli_version",
    "log_and_raise_if_unexpected_exit_code",
    "run_process",
    "run_sam_cli_init",
    "run_sam_cli_package",
    "throw_if_invalid",
]
