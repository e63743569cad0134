from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from sam_cli.context import SamCliContext
from sam_cli.templates import EVENTBRIDGE_STARTER_APP_TEMPLATE, HELLO_WORLD_TEMPLATE
from sam_cli.testing import (
    BadExitCodeSamCliProcessInvoker,
    FakeSamCliValidator,
    InvokeCall,
    RecordingSamCliProcessInvoker,
)
from sam_cli.validator import VERSION_NOT_PARSEABLE, SamCliValidatorResult

from samapp.client_builder import DefaultAwsClientBuilder
from samapp.create_app import (
    LAUNCH_CONFIG_DOC_URL,
    CreateNewSamApp,
    CreationState,
    SamAppHost,
    create_new_sam_application,
    resume_create_new_sam_app,
)
from samapp.notify import CHECK_LOGS_MESSAGE, GET_HELP_ACTION
from samapp.regions import EnvironmentAwsContext, StaticRegionProvider
from samapp.registry import TemplateRegistry
from samapp.reload_state import ActivationReloadState, SamInitState
from samapp.schemas import SchemaCodeDownloadRequest
from samapp.telemetry import SamInitEvent
from samapp.wizard import CreateNewSamAppWizardResponse, StaticWizard, WizardContext
from samapp.workspace import LocalWorkspace, WorkspaceFolder

FUNCTION_TEMPLATE = """\
AWSTemplateFormatVersion: '2010-09-09'
Transform: AWS::Serverless-2016-10-31
Resources:
  HelloWorldFunction:
    Type: AWS::Serverless::Function
    Properties:
      CodeUri: hello_world/
      Handler: app.lambda_handler
      Runtime: python3.8
Outputs:
  HelloWorldFunction:
    Value: !GetAtt HelloWorldFunction.Arn
"""

BUCKET_ONLY_TEMPLATE = """\
Resources:
  Bucket:
    Type: AWS::S3::Bucket
"""


class _RecordingNotifier:
    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[tuple[str, tuple[str, ...]]] = []
        self.infos: list[tuple[str, tuple[str, ...]]] = []
        self.opened: list[str] = []

    async def show_error(self, message: str) -> None:
        self.errors.append(message)

    async def show_warning(self, message: str, *actions: str) -> str | None:
        self.warnings.append((message, actions))
        return actions[0] if actions else None

    async def show_info(self, message: str, *actions: str) -> str | None:
        self.infos.append((message, actions))
        return None

    async def open_external(self, url: str) -> None:
        self.opened.append(url)


class _RecordingTelemetry:
    def __init__(self) -> None:
        self.events: list[SamInitEvent] = []

    def record_sam_init(self, event: SamInitEvent) -> None:
        self.events.append(event)


class _FakeSchemaClient:
    def __init__(self, options: dict[str, Any]) -> None:
        self.options = options

    async def describe_schema(self, registry_name: str, schema_name: str) -> Mapping[str, Any]:
        content = {
            "x-amazon-events-source": "aws.ec2",
            "x-amazon-events-detail-type": "EC2 Instance State-change Notification",
            "components": {
                "schemas": {
                    "AWSEvent": {
                        "properties": {
                            "detail": {"$ref": "#/components/schemas/EC2InstanceStateChange"}
                        }
                    },
                    "EC2InstanceStateChange": {"type": "object"},
                }
            },
        }
        return {"Content": json.dumps(content), "SchemaVersion": "2"}


class _RecordingDownloader:
    def __init__(self) -> None:
        self.requests: list[SchemaCodeDownloadRequest] = []

    async def download_code(self, request: SchemaCodeDownloadRequest) -> None:
        self.requests.append(request)
        request.destination_directory.mkdir(parents=True, exist_ok=True)


def _make_host(tmp_path: Path, *, register_templates: bool = True) -> SamAppHost:
    workspace = LocalWorkspace(tmp_path / "state" / "workspace.json")
    registry = TemplateRegistry()
    if register_templates:
        workspace.on_did_change_folder(lambda folder: registry.add_items_from_folder(folder.path))
    aws_context = EnvironmentAwsContext({"AWS_PROFILE": "default"})
    return SamAppHost(
        aws_context=aws_context,
        region_provider=StaticRegionProvider(),
        workspace=workspace,
        registry=registry,
        notifier=_RecordingNotifier(),
        telemetry=_RecordingTelemetry(),
        reload_state=ActivationReloadState(tmp_path / "state" / "reload_state.json"),
        client_builder=DefaultAwsClientBuilder(aws_context, product_version="1.2.3"),
        registration_timeout=0.2,
        registration_interval=0.01,
    )


def _writes_project(template_text: str, *, readme: bool = True):
    def on_invoke(call: InvokeCall) -> None:
        assert call.cwd is not None
        name = call.arguments[call.arguments.index("--name") + 1]
        project = Path(call.cwd) / name
        project.mkdir(parents=True)
        (project / "template.yaml").write_text(template_text, encoding="utf-8")
        if readme:
            (project / "README.md").write_text("# app\n", encoding="utf-8")

    return on_invoke


def _response(location: Path, **overrides: Any) -> CreateNewSamAppWizardResponse:
    values: dict[str, Any] = {
        "name": "app",
        "location": location,
        "runtime": "python3.8",
        "template": HELLO_WORLD_TEMPLATE,
    }
    values.update(overrides)
    return CreateNewSamAppWizardResponse(**values)


def _context(invoker: RecordingSamCliProcessInvoker, validator: FakeSamCliValidator | None = None):
    return SamCliContext(validator=validator or FakeSamCliValidator(), invoker=invoker)


@pytest.mark.asyncio
async def test_create_adds_folder_and_launch_configuration(tmp_path: Path) -> None:
    location = tmp_path / "projects"
    location.mkdir()
    host = _make_host(tmp_path)
    invoker = RecordingSamCliProcessInvoker(on_invoke=_writes_project(FUNCTION_TEMPLATE))

    workflow = CreateNewSamApp(host, StaticWizard(_response(location)), _context(invoker))
    event = await workflow.run()

    assert event == SamInitEvent(
        lambda_package_type="Zip",
        result="Succeeded",
        reason="complete",
        runtime="python3.8",
        version="1.20.0",
    )
    assert host.telemetry.events == [event]  # type: ignore[attr-defined]
    assert workflow.state is CreationState.COMPLETED
    assert workflow.states == [
        CreationState.START,
        CreationState.VALIDATING,
        CreationState.CONFIGURING,
        CreationState.INITIALIZING,
        CreationState.REGISTERING_WORKSPACE,
        CreationState.POLLING_TEMPLATE_REGISTRATION,
        CreationState.RECONCILING_LAUNCH_CONFIG,
        CreationState.COMPLETED,
    ]

    assert invoker.calls[0].cwd == str(location)
    assert invoker.calls[0].arguments == [
        "init",
        "--name",
        "app",
        "--no-interactive",
        "--dependency-manager",
        "pip",
        "--runtime",
        "python3.8",
        "--app-template",
        "hello-world",
    ]

    launch = json.loads((location / ".vscode" / "launch.json").read_text(encoding="utf-8"))
    assert launch["configurations"] == [
        {
            "type": "aws-sam",
            "name": "projects:HelloWorldFunction",
            "request": "direct-invoke",
            "invokeTarget": {
                "target": "template",
                "templatePath": "${workspaceFolder}/app/template.yaml",
                "logicalId": "HelloWorldFunction",
            },
            "lambda": {"runtime": "python3.8", "payload": {}, "environmentVariables": {}},
        }
    ]

    assert [f.path for f in host.workspace.folders()] == [location]
    assert host.reload_state.get_sam_init_state() is None
    opened = host.workspace.opened_documents  # type: ignore[attr-defined]
    assert opened == [location / "app" / "README.md"]
    notifier = host.notifier
    assert notifier.errors == []  # type: ignore[attr-defined]
    assert "projects:HelloWorldFunction" in notifier.infos[0][0]  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_image_package_uses_base_image(tmp_path: Path) -> None:
    location = tmp_path / "projects"
    location.mkdir()
    host = _make_host(tmp_path)
    invoker = RecordingSamCliProcessInvoker(on_invoke=_writes_project(FUNCTION_TEMPLATE))
    response = _response(location, runtime="nodejs12.x", package_type="Image", template=None)

    event = await create_new_sam_application(host, StaticWizard(response), _context(invoker))

    assert event.lambda_package_type == "Image"
    assert event.result == "Succeeded"
    assert invoker.calls[0].arguments[-2:] == ["--base-image", "amazon/nodejs12.x-base"]
    args = invoker.calls[0].arguments
    assert args[args.index("--dependency-manager") + 1] == "npm"


@pytest.mark.asyncio
async def test_cancelled_wizard_records_user_cancelled(tmp_path: Path) -> None:
    host = _make_host(tmp_path)
    invoker = RecordingSamCliProcessInvoker()

    workflow = CreateNewSamApp(host, StaticWizard(None), _context(invoker))
    event = await workflow.run()

    assert event.result == "Cancelled"
    assert event.reason == "userCancelled"
    assert event.lambda_package_type is None
    assert workflow.state is CreationState.CANCELLED
    assert invoker.calls == []
    assert host.telemetry.events == [event]  # type: ignore[attr-defined]
    assert host.notifier.errors == []  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_missing_sam_cli_fails_before_wizard(tmp_path: Path) -> None:
    host = _make_host(tmp_path)
    invoker = RecordingSamCliProcessInvoker()
    validator = FakeSamCliValidator(
        SamCliValidatorResult(
            sam_cli_found=False, location=None, version=None, validation=VERSION_NOT_PARSEABLE
        )
    )

    workflow = CreateNewSamApp(
        host, StaticWizard(_response(tmp_path)), _context(invoker, validator)
    )
    event = await workflow.run()

    assert event.result == "Failed"
    assert event.reason == "error"
    assert event.version is None
    assert workflow.states[-2:] == [CreationState.VALIDATING, CreationState.FAILED]
    assert invoker.calls == []
    errors = host.notifier.errors  # type: ignore[attr-defined]
    assert len(errors) == 1
    assert CHECK_LOGS_MESSAGE in errors[0]


@pytest.mark.asyncio
async def test_bad_exit_code_fails_and_records_once(tmp_path: Path) -> None:
    location = tmp_path / "projects"
    location.mkdir()
    host = _make_host(tmp_path)
    invoker = BadExitCodeSamCliProcessInvoker()

    event = await create_new_sam_application(
        host, StaticWizard(_response(location)), _context(invoker)
    )

    assert event.result == "Failed"
    assert event.reason == "error"
    assert event.lambda_package_type == "Zip"
    assert host.telemetry.events == [event]  # type: ignore[attr-defined]
    assert host.workspace.folders() == []
    assert host.reload_state.get_sam_init_state() is None


@pytest.mark.asyncio
async def test_missing_template_warns_but_succeeds(tmp_path: Path) -> None:
    location = tmp_path / "projects"
    location.mkdir()
    host = _make_host(tmp_path)
    invoker = RecordingSamCliProcessInvoker()

    event = await create_new_sam_application(
        host, StaticWizard(_response(location)), _context(invoker)
    )

    assert event.result == "Succeeded"
    assert event.reason == "fileNotFound"
    assert len(host.notifier.warnings) == 1  # type: ignore[attr-defined]
    assert host.workspace.folders() == []


@pytest.mark.asyncio
async def test_registration_timeout_warns_with_help_link(tmp_path: Path) -> None:
    location = tmp_path / "projects"
    location.mkdir()
    host = _make_host(tmp_path, register_templates=False)
    host.registration_timeout = 0.05
    invoker = RecordingSamCliProcessInvoker(on_invoke=_writes_project(FUNCTION_TEMPLATE))

    workflow = CreateNewSamApp(host, StaticWizard(_response(location)), _context(invoker))
    event = await workflow.run()

    assert event.result == "Failed"
    assert event.reason == "fileNotFound"
    assert CreationState.FAILED in workflow.states
    assert CreationState.RECONCILING_LAUNCH_CONFIG not in workflow.states
    notifier = host.notifier
    assert notifier.warnings[0][1] == (GET_HELP_ACTION,)  # type: ignore[attr-defined]
    assert notifier.opened == [LAUNCH_CONFIG_DOC_URL]  # type: ignore[attr-defined]
    assert notifier.errors == []  # type: ignore[attr-defined]
    assert (location / "app" / "template.yaml").is_file()
    assert not (location / ".vscode" / "launch.json").exists()
    assert host.reload_state.get_sam_init_state() is None


@pytest.mark.asyncio
async def test_template_without_functions_warns_and_completes(tmp_path: Path) -> None:
    location = tmp_path / "projects"
    location.mkdir()
    host = _make_host(tmp_path)
    invoker = RecordingSamCliProcessInvoker(on_invoke=_writes_project(BUCKET_ONLY_TEMPLATE))

    event = await create_new_sam_application(
        host, StaticWizard(_response(location)), _context(invoker)
    )

    assert event.result == "Succeeded"
    assert event.reason == "complete"
    assert not (location / ".vscode" / "launch.json").exists()
    assert host.notifier.opened == [LAUNCH_CONFIG_DOC_URL]  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_schema_template_passes_extra_context_and_downloads_code(tmp_path: Path) -> None:
    location = tmp_path / "projects"
    location.mkdir()
    host = _make_host(tmp_path)
    clients: list[_FakeSchemaClient] = []

    def factory(options: dict[str, Any]) -> _FakeSchemaClient:
        client = _FakeSchemaClient(options)
        clients.append(client)
        return client

    downloader = _RecordingDownloader()
    host.schema_client_factory = factory
    host.schema_code_downloader = downloader
    invoker = RecordingSamCliProcessInvoker(on_invoke=_writes_project(FUNCTION_TEMPLATE))
    response = _response(
        location,
        template=EVENTBRIDGE_STARTER_APP_TEMPLATE,
        region="us-east-1",
        registry_name="aws.events",
        schema_name="aws.ec2@EC2InstanceStateChange",
    )

    workflow = CreateNewSamApp(host, StaticWizard(response), _context(invoker))
    event = await workflow.run()

    assert event.result == "Succeeded"
    assert CreationState.AWAITING_SCHEMA_DOWNLOAD in workflow.states
    assert clients[0].options["region"] == "us-east-1"
    assert clients[0].options["custom_user_agent"].startswith("samapp-toolkit/1.2.3 ")

    args = invoker.calls[0].arguments
    assert args[args.index("--app-template") + 1] == "eventBridge-schema-app"
    extra_context = json.loads(args[args.index("--extra-context") + 1])
    assert extra_context["AWS_Schema_registry"] == "aws.events"
    assert extra_context["AWS_Schema_name"] == "EC2InstanceStateChange"
    assert extra_context["AWS_Schema_root"] == "schema.aws.ec2.ec2instancestatechange"

    assert downloader.requests == [
        SchemaCodeDownloadRequest(
            registry_name="aws.events",
            schema_name="aws.ec2@EC2InstanceStateChange",
            language="Python36",
            schema_version="2",
            destination_directory=location / "app" / "hello_world_function",
        )
    ]
    assert any("Downloaded code" in m for m, _ in host.notifier.infos)  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_schema_template_without_client_factory_fails(tmp_path: Path) -> None:
    host = _make_host(tmp_path)
    invoker = RecordingSamCliProcessInvoker()
    response = _response(
        tmp_path,
        template=EVENTBRIDGE_STARTER_APP_TEMPLATE,
        region="us-east-1",
        registry_name="aws.events",
        schema_name="aws.ec2@EC2InstanceStateChange",
    )

    event = await create_new_sam_application(host, StaticWizard(response), _context(invoker))

    assert event.result == "Failed"
    assert event.reason == "error"
    assert invoker.calls == []


@pytest.mark.asyncio
async def test_invalid_wizard_region_fails(tmp_path: Path) -> None:
    host = _make_host(tmp_path)
    invoker = RecordingSamCliProcessInvoker()
    response = _response(
        tmp_path,
        template=EVENTBRIDGE_STARTER_APP_TEMPLATE,
        region="sa-east-1",
        registry_name="aws.events",
        schema_name="aws.ec2@EC2InstanceStateChange",
    )

    event = await create_new_sam_application(host, StaticWizard(response), _context(invoker))

    assert event.result == "Failed"
    assert invoker.calls == []


@pytest.mark.asyncio
async def test_wizard_receives_schema_regions_and_version(tmp_path: Path) -> None:
    seen: list[WizardContext] = []

    class _Wizard:
        async def run(self, context: WizardContext) -> CreateNewSamAppWizardResponse | None:
            seen.append(context)
            return None

    host = _make_host(tmp_path)
    await create_new_sam_application(host, _Wizard(), _context(RecordingSamCliProcessInvoker()))

    assert seen[0].sam_cli_version == "1.20.0"
    assert seen[0].credentials == {"profile": "default"}
    region_ids = {r.id for r in seen[0].schemas_regions}
    assert "us-east-1" in region_ids
    assert "sa-east-1" not in region_ids


@pytest.mark.asyncio
async def test_resume_adds_launch_configuration_for_pending_project(tmp_path: Path) -> None:
    location = tmp_path / "projects"
    project = location / "app"
    project.mkdir(parents=True)
    template = project / "template.yaml"
    template.write_text(FUNCTION_TEMPLATE, encoding="utf-8")

    host = _make_host(tmp_path)
    await host.workspace.add_folder_to_workspace(WorkspaceFolder(path=location, name="projects"))
    host.reload_state.set_sam_init_state(SamInitState(path=str(template), runtime="python3.8"))
    invoker = RecordingSamCliProcessInvoker()

    event = await resume_create_new_sam_app(host, _context(invoker))

    assert event == SamInitEvent(
        lambda_package_type="Zip",
        result="Succeeded",
        reason="complete",
        runtime="python3.8",
        version="1.20.0",
    )
    launch = json.loads((location / ".vscode" / "launch.json").read_text(encoding="utf-8"))
    assert [c["name"] for c in launch["configurations"]] == ["projects:HelloWorldFunction"]
    # Zip projects take the runtime from the template.
    assert "runtime" not in launch["configurations"][0]["lambda"]
    assert host.workspace.opened_documents == [template]  # type: ignore[attr-defined]
    assert host.reload_state.get_sam_init_state() is None
    assert host.telemetry.events == [event]  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_resume_stamps_runtime_for_image_projects(tmp_path: Path) -> None:
    location = tmp_path / "projects"
    project = location / "app"
    project.mkdir(parents=True)
    template = project / "template.yaml"
    template.write_text(FUNCTION_TEMPLATE, encoding="utf-8")

    host = _make_host(tmp_path)
    await host.workspace.add_folder_to_workspace(WorkspaceFolder(path=location, name="projects"))
    host.reload_state.set_sam_init_state(
        SamInitState(path=str(template), runtime="nodejs12.x", is_image=True)
    )

    event = await resume_create_new_sam_app(host, _context(RecordingSamCliProcessInvoker()))

    assert event is not None
    assert event.lambda_package_type == "Image"
    launch = json.loads((location / ".vscode" / "launch.json").read_text(encoding="utf-8"))
    assert launch["configurations"][0]["lambda"]["runtime"] == "nodejs12.x"


@pytest.mark.asyncio
async def test_resume_outside_workspace_reports_error(tmp_path: Path) -> None:
    host = _make_host(tmp_path)
    missing = tmp_path / "elsewhere" / "template.yaml"
    host.reload_state.set_sam_init_state(SamInitState(path=str(missing)))

    event = await resume_create_new_sam_app(host, _context(RecordingSamCliProcessInvoker()))

    assert event is not None
    assert event.result == "Failed"
    assert event.reason == "error"
    errors = host.notifier.errors  # type: ignore[attr-defined]
    assert errors == [
        f"Could not open file '{missing}'. If this file exists on disk, try adding it to "
        "your workspace."
    ]
    assert host.reload_state.get_sam_init_state() is None


@pytest.mark.asyncio
async def test_resume_without_pending_state_is_a_no_op(tmp_path: Path) -> None:
    host = _make_host(tmp_path)

    assert await resume_create_new_sam_app(host, _context(RecordingSamCliProcessInvoker())) is None
    assert host.telemetry.events == []  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_second_app_in_same_location_gets_launch_configuration(tmp_path: Path) -> None:
    location = tmp_path / "projects"
    location.mkdir()
    host = _make_host(tmp_path)
    invoker = RecordingSamCliProcessInvoker(on_invoke=_writes_project(FUNCTION_TEMPLATE))

    first = await create_new_sam_application(
        host, StaticWizard(_response(location, name="one")), _context(invoker)
    )
    second = await create_new_sam_application(
        host, StaticWizard(_response(location, name="two")), _context(invoker)
    )

    assert (first.result, first.reason) == ("Succeeded", "complete")
    assert (second.result, second.reason) == ("Succeeded", "complete")
    assert len(host.workspace.folders()) == 1
    assert host.registry.get_registered_item(location / "two" / "template.yaml") is not None
    launch = json.loads((location / ".vscode" / "launch.json").read_text(encoding="utf-8"))
    assert [c["invokeTarget"]["templatePath"] for c in launch["configurations"]] == [
        "${workspaceFolder}/one/template.yaml",
        "${workspaceFolder}/two/template.yaml",
    ]
    assert host.notifier.warnings == []  # type: ignore[attr-defined]
