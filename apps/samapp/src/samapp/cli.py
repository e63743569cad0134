from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from sam_cli.context import SamCliContext, get_sam_cli_context
from sam_cli.errors import SamCliError
from sam_cli.package import PackageRequest, run_sam_cli_package
from sam_cli.templates import template_names

from samapp import __version__
from samapp.client_builder import DefaultAwsClientBuilder
from samapp.create_app import SamAppHost, create_new_sam_application, resume_create_new_sam_app
from samapp.notify import ConsoleNotifier
from samapp.regions import EnvironmentAwsContext, StaticRegionProvider
from samapp.registry import TemplateRegistry
from samapp.reload_state import ActivationReloadState
from samapp.settings import Settings, SettingsError, load_settings
from samapp.telemetry import RESULT_FAILED, JsonlTelemetryRecorder
from samapp.wizard import (
    PACKAGE_TYPE_IMAGE,
    PACKAGE_TYPE_ZIP,
    CreateNewSamAppWizardResponse,
    StaticWizard,
)
from samapp.workspace import LocalWorkspace

logger = logging.getLogger(__name__)


def _parse_env_pairs(values: list[str] | None) -> dict[str, str]:
    out: dict[str, str] = {}
    for raw in values or []:
        key, sep, value = raw.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {raw!r}")
        out[key] = value
    return out


def build_parser() -> argparse.ArgumentParser:
    """Build the samapp CLI argument parser."""
    parser = argparse.ArgumentParser(prog="samapp")
    parser.add_argument("--config", type=Path, help="Path to a samapp settings YAML file.")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the log level from settings.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    init_p = sub.add_parser("init", help="Create a new SAM application and its launch configs.")
    init_p.add_argument("--name", required=True, help="Application name (project directory).")
    init_p.add_argument(
        "--location",
        type=Path,
        default=Path.cwd(),
        help="Parent directory; it is added to the workspace.",
    )
    init_p.add_argument("--runtime", required=True, help="Lambda runtime, e.g. python3.8.")
    init_p.add_argument(
        "--package-type",
        choices=[PACKAGE_TYPE_ZIP, PACKAGE_TYPE_IMAGE],
        default=PACKAGE_TYPE_ZIP,
    )
    init_p.add_argument("--template", choices=template_names(), help="Application template.")
    init_p.add_argument(
        "--dependency-manager", help="Defaults from the runtime (npm, pip, gradle, ...)."
    )
    init_p.add_argument("--region", help="Schemas region (EventBridge schema template only).")
    init_p.add_argument("--registry-name", help="Schema registry name.")
    init_p.add_argument("--schema-name", help="Schema name.")

    sub.add_parser("resume", help="Finish launch configuration for an interrupted init.")

    package_p = sub.add_parser("package", help="Run `sam package` for a template.")
    package_p.add_argument("--template-file", type=Path, required=True)
    package_p.add_argument("--output-template-file", type=Path, required=True)
    package_p.add_argument("--region", required=True)
    package_p.add_argument("--s3-bucket", required=True)
    package_p.add_argument("--image-repository", help="ECR repository for Image functions.")
    package_p.add_argument(
        "--env",
        action="append",
        metavar="KEY=VALUE",
        help="Extra environment variable for the sam process (repeatable).",
    )
    return parser


def _build_host(settings: Settings) -> SamAppHost:
    workspace = LocalWorkspace(settings.resolved_workspace_file)
    registry = TemplateRegistry()
    for folder in workspace.folders():
        registry.add_items_from_folder(folder.path)
    workspace.on_did_change_folder(lambda folder: registry.add_items_from_folder(folder.path))

    aws_context = EnvironmentAwsContext()
    return SamAppHost(
        aws_context=aws_context,
        region_provider=StaticRegionProvider(),
        workspace=workspace,
        registry=registry,
        notifier=ConsoleNotifier(),
        telemetry=JsonlTelemetryRecorder(settings.resolved_telemetry_path),
        reload_state=ActivationReloadState(settings.reload_state_path),
        client_builder=DefaultAwsClientBuilder(
            aws_context, product_version=__version__, endpoint=settings.endpoint
        ),
        registration_timeout=settings.registration_timeout_seconds,
        registration_interval=settings.registration_interval_seconds,
    )


def _cmd_init(args: argparse.Namespace, host: SamAppHost, context: SamCliContext) -> int:
    response = CreateNewSamAppWizardResponse(
        name=args.name,
        location=args.location.resolve(),
        runtime=args.runtime,
        package_type=args.package_type,
        template=args.template,
        dependency_manager=args.dependency_manager,
        region=args.region,
        registry_name=args.registry_name,
        schema_name=args.schema_name,
    )
    event = asyncio.run(create_new_sam_application(host, StaticWizard(response), context))
    return 1 if event.result == RESULT_FAILED else 0


def _cmd_resume(host: SamAppHost, context: SamCliContext) -> int:
    event = asyncio.run(resume_create_new_sam_app(host, context))
    if event is None:
        print("Nothing to resume.", file=sys.stderr)
        return 0
    return 1 if event.result == RESULT_FAILED else 0


def _cmd_package(args: argparse.Namespace, context: SamCliContext) -> int:
    try:
        env = _parse_env_pairs(args.env)
    except argparse.ArgumentTypeError as e:
        print(str(e), file=sys.stderr)
        return 2
    request = PackageRequest(
        source_template_file=str(args.template_file),
        destination_template_file=str(args.output_template_file),
        region=args.region,
        s3_bucket=args.s3_bucket,
        ecr_repo=args.image_repository,
        environment_variables=env,
    )
    try:
        asyncio.run(run_sam_cli_package(request, context.invoker))
    except SamCliError as e:
        print(f"sam package failed: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    """Run the CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except SettingsError as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        raise SystemExit(2) from e

    logging.basicConfig(
        level=args.log_level or settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    context = get_sam_cli_context(sam_cli_location=settings.sam_cli_location)

    if args.cmd == "package":
        raise SystemExit(_cmd_package(args, context))
    if args.cmd == "init":
        raise SystemExit(_cmd_init(args, _build_host(settings), context))
    if args.cmd == "resume":
        raise SystemExit(_cmd_resume(_build_host(settings), context))
    raise SystemExit(2)


if __name__ == "__main__":
    main()
