from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from sam_cli.context import SamCliContext, get_sam_cli_version
from sam_cli.init import ImagePackage, InitRequest, ZipPackage, run_sam_cli_init
from sam_cli.templates import (
    EVENTBRIDGE_STARTER_APP_TEMPLATE,
    base_image_for_runtime,
    get_dependency_manager,
)
from sam_cli.validator import throw_if_invalid
from sam_debug.model import DebugConfiguration
from sam_debug.provider import SamDebugConfigProvider
from sam_debug.reconcile import add_initial_launch_configuration
from sam_debug.store import LaunchConfiguration, LaunchConfigurationStore

from samapp.client_builder import DefaultAwsClientBuilder
from samapp.errors import RegistrationTimeoutError, SamAppError
from samapp.notify import CHECK_LOGS_MESSAGE, GET_HELP_ACTION, Notifier
from samapp.regions import SCHEMAS_SERVICE_ID, AwsContext, RegionProvider, regions_with_service
from samapp.registry import TEMPLATE_FILE_NAMES, TemplateRegistry
from samapp.reload_state import ActivationReloadState, SamInitState
from samapp.schemas import (
    SchemaClient,
    SchemaCodeDownloader,
    SchemaCodeDownloadRequest,
    SchemaTemplateParameters,
    build_schema_template_parameters,
    download_schema_code_bindings,
    get_api_value_for_schemas_download,
)
from samapp.telemetry import (
    REASON_COMPLETE,
    REASON_ERROR,
    REASON_FILE_NOT_FOUND,
    REASON_UNKNOWN,
    REASON_USER_CANCELLED,
    RESULT_CANCELLED,
    RESULT_FAILED,
    RESULT_SUCCEEDED,
    SamInitEvent,
    TelemetryRecorder,
)
from samapp.timeouts import wait_until
from samapp.wizard import (
    PACKAGE_TYPE_IMAGE,
    PACKAGE_TYPE_ZIP,
    CreateNewSamAppWizard,
    CreateNewSamAppWizardResponse,
    WizardContext,
)
from samapp.workspace import Workspace, WorkspaceFolder

logger = logging.getLogger(__name__)

LAUNCH_CONFIG_DOC_URL = "https://docs.aws.amazon.com/console/toolkit-for-vscode/launch-config"
SCHEMA_CODE_DIRECTORY = "hello_world_function"


class CreationState(str, Enum):
    START = "start"
    VALIDATING = "validating"
    CONFIGURING = "configuring"
    INITIALIZING = "initializing"
    AWAITING_SCHEMA_DOWNLOAD = "awaiting_schema_download"
    REGISTERING_WORKSPACE = "registering_workspace"
    POLLING_TEMPLATE_REGISTRATION = "polling_template_registration"
    RECONCILING_LAUNCH_CONFIG = "reconciling_launch_config"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class SamAppHost:
    """The host services a creation run talks to."""

    aws_context: AwsContext
    region_provider: RegionProvider
    workspace: Workspace
    registry: TemplateRegistry
    notifier: Notifier
    telemetry: TelemetryRecorder
    reload_state: ActivationReloadState
    client_builder: DefaultAwsClientBuilder
    schema_client_factory: Callable[[dict], SchemaClient] | None = None
    schema_code_downloader: SchemaCodeDownloader | None = None
    launch_configuration_factory: Callable[[Path], LaunchConfigurationStore] = field(
        default=LaunchConfiguration
    )
    registration_timeout: float = 5.0
    registration_interval: float = 0.5

    def debug_config_provider(self) -> SamDebugConfigProvider:
        return SamDebugConfigProvider(self.registry)


def find_project_template(project_dir: Path) -> Path | None:
    for file_name in TEMPLATE_FILE_NAMES:
        candidate = project_dir / file_name
        if candidate.is_file():
            return candidate
    return None


async def wait_for_template_registration(
    registry: TemplateRegistry, path: Path, *, timeout: float, interval: float
) -> None:
    registered = await wait_until(
        lambda: registry.get_registered_item(path),
        timeout=timeout,
        interval=interval,
        truthy=False,
    )
    if registered is None:
        raise RegistrationTimeoutError(
            f"{path} was not registered within {timeout:g}s", path=path, timeout=timeout
        )


async def add_initial_launch_configuration_for(
    host: SamAppHost,
    folder: WorkspaceFolder,
    target_path: Path,
    runtime: str | None,
) -> list[DebugConfiguration] | None:
    return await add_initial_launch_configuration(
        host.debug_config_provider(),
        folder.path,
        target_path,
        runtime,
        folder_name=folder.name,
        store=host.launch_configuration_factory(folder.path),
    )


class CreateNewSamApp:
    """
    One run of the "create new SAM application" command.

    Steps run strictly in order. Any exception moves the run to `failed`, the user gets one
    error notification, and exactly one telemetry event is recorded whatever the outcome.
    """

    def __init__(
        self,
        host: SamAppHost,
        wizard: CreateNewSamAppWizard,
        sam_cli_context: SamCliContext,
    ) -> None:
        self.host = host
        self.wizard = wizard
        self.sam_cli_context = sam_cli_context
        self.state = CreationState.START
        self.states: list[CreationState] = [CreationState.START]
        self.result = RESULT_SUCCEEDED
        self.reason = REASON_UNKNOWN
        self.lambda_package_type: str | None = None
        self.runtime: str | None = None
        self.sam_cli_version: str | None = None
        self.launch_configurations: list[DebugConfiguration] | None = None

    def _enter(self, state: CreationState) -> None:
        logger.debug("create-new-sam-app: %s -> %s", self.state.value, state.value)
        self.state = state
        self.states.append(state)

    async def run(self) -> SamInitEvent:
        try:
            await self._run_steps()
        except Exception:
            self.result = RESULT_FAILED
            self.reason = REASON_ERROR
            self._enter(CreationState.FAILED)
            logger.exception("Error creating new SAM Application")
            # Do not try to continue on the next activation.
            self.host.reload_state.clear_sam_init_state()
            await self.host.notifier.show_error(
                f"An error occurred while creating a new SAM Application. {CHECK_LOGS_MESSAGE}"
            )
        finally:
            event = SamInitEvent(
                lambda_package_type=self.lambda_package_type,
                result=self.result,
                reason=self.reason,
                runtime=self.runtime,
                version=self.sam_cli_version,
            )
            self.host.telemetry.record_sam_init(event)
        return event

    async def _run_steps(self) -> None:
        host = self.host
        context = self.sam_cli_context

        self._enter(CreationState.VALIDATING)
        throw_if_invalid(await context.validator.detect_valid_sam_cli())
        credentials = await host.aws_context.get_credentials()
        schemas_regions = regions_with_service(host.region_provider, SCHEMAS_SERVICE_ID)
        self.sam_cli_version = await get_sam_cli_version(context)

        self._enter(CreationState.CONFIGURING)
        config = await self.wizard.run(
            WizardContext(
                credentials=credentials,
                schemas_regions=schemas_regions,
                sam_cli_version=self.sam_cli_version,
            )
        )
        if config is None:
            self.result = RESULT_CANCELLED
            self.reason = REASON_USER_CANCELLED
            self._enter(CreationState.CANCELLED)
            return

        self.runtime = config.runtime
        schema_parameters: SchemaTemplateParameters | None = None
        if config.template == EVENTBRIDGE_STARTER_APP_TEMPLATE:
            schema_parameters = await self._build_schema_parameters(config)

        request = self._build_init_request(config, schema_parameters)

        self._enter(CreationState.INITIALIZING)
        await run_sam_cli_init(request, context)

        location = Path(config.location)
        project_dir = location / config.name
        template_path = find_project_template(project_dir)
        if template_path is None:
            self.reason = REASON_FILE_NOT_FOUND
            await host.notifier.show_warning(
                f"Project created successfully, but no template file was found in {project_dir}"
            )
            self._enter(CreationState.COMPLETED)
            return

        if schema_parameters is not None:
            self._enter(CreationState.AWAITING_SCHEMA_DOWNLOAD)
            await self._download_schema_code(config, schema_parameters, project_dir)

        # Adding the folder may restart the host; the launch configuration step resumes from here.
        host.reload_state.set_sam_init_state(
            SamInitState(
                path=str(template_path),
                runtime=config.runtime,
                is_image=config.package_type == PACKAGE_TYPE_IMAGE,
            )
        )

        self._enter(CreationState.REGISTERING_WORKSPACE)
        await host.workspace.add_folder_to_workspace(
            WorkspaceFolder(path=location, name=location.name), suppress_prompt=True
        )

        self._enter(CreationState.POLLING_TEMPLATE_REGISTRATION)
        try:
            await wait_for_template_registration(
                host.registry,
                template_path,
                timeout=host.registration_timeout,
                interval=host.registration_interval,
            )
        except RegistrationTimeoutError as e:
            logger.warning("%s", e)
            self.result = RESULT_FAILED
            self.reason = REASON_FILE_NOT_FOUND
            self._enter(CreationState.FAILED)
            await self._warn_with_help(
                f'Created SAM application "{config.name}" but failed to generate launch '
                "configurations. You can generate them from the template or handler file."
            )
        else:
            await self._reconcile_launch_configurations(config, location, template_path)

        host.reload_state.clear_sam_init_state()
        readme = project_dir / "README.md"
        await host.workspace.open_document(readme if readme.is_file() else template_path)

    def _build_init_request(
        self,
        config: CreateNewSamAppWizardResponse,
        schema_parameters: SchemaTemplateParameters | None,
    ) -> InitRequest:
        if config.package_type == PACKAGE_TYPE_IMAGE:
            self.lambda_package_type = PACKAGE_TYPE_IMAGE
            package: ImagePackage | ZipPackage = ImagePackage(
                base_image=base_image_for_runtime(config.runtime)
            )
        else:
            self.lambda_package_type = PACKAGE_TYPE_ZIP
            package = ZipPackage(runtime=config.runtime, template=config.template)

        return InitRequest(
            name=config.name,
            location=config.location,
            dependency_manager=config.dependency_manager or get_dependency_manager(config.runtime),
            package=package,
            extra_context=(
                schema_parameters.template_extra_context if schema_parameters is not None else None
            ),
        )

    async def _build_schema_parameters(
        self, config: CreateNewSamAppWizardResponse
    ) -> SchemaTemplateParameters:
        if self.host.schema_client_factory is None:
            raise SamAppError(
                f"The {EVENTBRIDGE_STARTER_APP_TEMPLATE} template needs a schemas client; "
                "none is configured."
            )
        client = await self.host.client_builder.create_and_configure_service_client(
            self.host.schema_client_factory, region=config.region
        )
        return await build_schema_template_parameters(
            config.schema_name or "", config.registry_name or "", client
        )

    async def _download_schema_code(
        self,
        config: CreateNewSamAppWizardResponse,
        schema_parameters: SchemaTemplateParameters,
        project_dir: Path,
    ) -> None:
        downloader = self.host.schema_code_downloader
        if downloader is None:
            raise SamAppError("No schema code downloader is configured.")
        request = SchemaCodeDownloadRequest(
            registry_name=config.registry_name or "",
            schema_name=config.schema_name or "",
            language=get_api_value_for_schemas_download(config.runtime),
            schema_version=schema_parameters.schema_version,
            destination_directory=project_dir / SCHEMA_CODE_DIRECTORY,
        )
        await download_schema_code_bindings(downloader, request)
        await self.host.notifier.show_info(f"Downloaded code for schema {request.schema_name}!")

    async def _reconcile_launch_configurations(
        self,
        config: CreateNewSamAppWizardResponse,
        location: Path,
        template_path: Path,
    ) -> None:
        self._enter(CreationState.RECONCILING_LAUNCH_CONFIG)
        folder = self.host.workspace.get_workspace_folder(template_path) or WorkspaceFolder(
            path=location, name=location.name
        )
        configs = await add_initial_launch_configuration_for(
            self.host, folder, template_path, config.runtime
        )
        self.launch_configurations = configs
        if configs:
            await self._show_completion(config.name, folder, configs)
        else:
            await self._warn_with_help(
                f'Created SAM application "{config.name}" but no launch configurations '
                f"matched {template_path}. You can generate them from the template or handler file."
            )
        self.reason = REASON_COMPLETE
        self._enter(CreationState.COMPLETED)

    async def _show_completion(
        self, app_name: str, folder: WorkspaceFolder, configs: Sequence[DebugConfiguration]
    ) -> None:
        names = '", "'.join(c.name for c in configs)
        open_action = "Open launch.json"
        choice = await self.host.notifier.show_info(
            f'Created SAM application "{app_name}" and added launch configurations to '
            f'launch.json: "{names}"',
            open_action,
        )
        if choice == open_action:
            await self.host.workspace.open_document(folder.path / ".vscode" / "launch.json")

    async def _warn_with_help(self, message: str) -> None:
        choice = await self.host.notifier.show_warning(message, GET_HELP_ACTION)
        if choice == GET_HELP_ACTION:
            await self.host.notifier.open_external(LAUNCH_CONFIG_DOC_URL)


async def create_new_sam_application(
    host: SamAppHost,
    wizard: CreateNewSamAppWizard,
    sam_cli_context: SamCliContext,
) -> SamInitEvent:
    return await CreateNewSamApp(host, wizard, sam_cli_context).run()


async def resume_create_new_sam_app(
    host: SamAppHost, sam_cli_context: SamCliContext
) -> SamInitEvent | None:
    """
    Finish a creation run interrupted by a host restart.

    Only the launch configuration step is repeated. Returns None when nothing is pending.
    """

    state = host.reload_state.get_sam_init_state()
    if state is None:
        return None

    result = RESULT_SUCCEEDED
    reason = REASON_COMPLETE
    version: str | None = None
    try:
        path = Path(state.path)
        folder = host.workspace.get_workspace_folder(path)
        if folder is None:
            # Only set for files inside the newly added folder, so this should not happen.
            result = RESULT_FAILED
            reason = REASON_ERROR
            await host.notifier.show_error(
                f"Could not open file '{path}'. If this file exists on disk, try adding it to "
                "your workspace."
            )
        else:
            version = await get_sam_cli_version(sam_cli_context)
            await add_initial_launch_configuration_for(
                host, folder, path, state.runtime if state.is_image else None
            )
            await host.workspace.open_document(path)
    except Exception:
        result = RESULT_FAILED
        reason = REASON_ERROR
        logger.exception("Error resuming new SAM Application")
        await host.notifier.show_error(
            f"An error occurred while resuming SAM Application creation. {CHECK_LOGS_MESSAGE}"
        )
    finally:
        host.reload_state.clear_sam_init_state()
        event = SamInitEvent(
            lambda_package_type=PACKAGE_TYPE_IMAGE if state.is_image else PACKAGE_TYPE_ZIP,
            result=result,
            reason=reason,
            runtime=state.runtime,
            version=version,
        )
        host.telemetry.record_sam_init(event)
    return event
