from __future__ import annotations

HELLO_WORLD_TEMPLATE = "AWS SAM Hello World"
EVENTBRIDGE_HELLO_WORLD_TEMPLATE = "AWS SAM EventBridge Hello World"
EVENTBRIDGE_STARTER_APP_TEMPLATE = "AWS SAM EventBridge App from Scratch"
STEP_FUNCTIONS_SAMPLE_APP_TEMPLATE = "AWS Step Functions Sample App"

_TEMPLATE_PARAMETERS: dict[str, str] = {
    HELLO_WORLD_TEMPLATE: "hello-world",
    EVENTBRIDGE_HELLO_WORLD_TEMPLATE: "eventBridge-hello-world",
    EVENTBRIDGE_STARTER_APP_TEMPLATE: "eventBridge-schema-app",
    STEP_FUNCTIONS_SAMPLE_APP_TEMPLATE: "step-functions-sample-app",
}

# Runtime family prefix -> dependency manager passed to `sam init`.
_DEPENDENCY_MANAGERS: tuple[tuple[str, str], ...] = (
    ("nodejs", "npm"),
    ("python", "pip"),
    ("dotnetcore", "cli-package"),
    ("dotnet", "cli-package"),
    ("java", "gradle"),
    ("go", "mod"),
)


def template_names() -> list[str]:
    return list(_TEMPLATE_PARAMETERS)


def get_sam_cli_template_parameter(template: str) -> str:
    """Map a template display name, or an already-mapped value, to `--app-template`."""

    if template in _TEMPLATE_PARAMETERS:
        return _TEMPLATE_PARAMETERS[template]
    if template in _TEMPLATE_PARAMETERS.values():
        return template
    raise ValueError(f"Unknown SAM application template: {template!r}")


def get_dependency_manager(runtime: str) -> str:
    normalized = runtime.strip().lower()
    for prefix, manager in _DEPENDENCY_MANAGERS:
        if normalized.startswith(prefix):
            return manager
    raise ValueError(f"No dependency manager is known for runtime {runtime!r}")


def base_image_for_runtime(runtime: str) -> str:
    return f"amazon/{runtime}-base"
