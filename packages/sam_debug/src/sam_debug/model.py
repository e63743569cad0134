from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

AWS_SAM_DEBUG_TYPE = "aws-sam"
DIRECT_INVOKE = "direct-invoke"
TEMPLATE_TARGET = "template"
CODE_TARGET = "code"

_KNOWN_KEYS: frozenset[str] = frozenset({"type", "name", "request", "invokeTarget", "lambda"})


class DebugConfigurationError(ValueError):
    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


@dataclass
class TemplateTarget:
    template_path: str
    logical_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": TEMPLATE_TARGET,
            "templatePath": self.template_path,
            "logicalId": self.logical_id,
        }


@dataclass
class CodeTarget:
    project_root: str
    lambda_handler: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": CODE_TARGET,
            "projectRoot": self.project_root,
            "lambdaHandler": self.lambda_handler,
        }


InvokeTarget = TemplateTarget | CodeTarget


@dataclass
class LambdaOptions:
    runtime: str | None = None
    payload: dict[str, Any] | None = None
    environment_variables: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.runtime is not None:
            out["runtime"] = self.runtime
        if self.payload is not None:
            out["payload"] = self.payload
        if self.environment_variables is not None:
            out["environmentVariables"] = self.environment_variables
        return out


@dataclass
class DebugConfiguration:
    name: str
    invoke_target: InvokeTarget
    type: str = AWS_SAM_DEBUG_TYPE
    request: str = DIRECT_INVOKE
    lambda_options: LambdaOptions | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type,
            "name": self.name,
            "request": self.request,
            "invokeTarget": self.invoke_target.to_dict(),
        }
        if self.lambda_options is not None:
            out["lambda"] = self.lambda_options.to_dict()
        out.update(self.extra)
        return out

    @classmethod
    def from_dict(cls, raw: Any) -> DebugConfiguration:
        if not isinstance(raw, dict):
            raise DebugConfigurationError(
                f"Expected a debug configuration object, got {type(raw).__name__}."
            )

        name = raw.get("name")
        if not isinstance(name, str) or not name:
            raise DebugConfigurationError("Debug configuration is missing `name`.", details=raw)

        return cls(
            name=name,
            invoke_target=_invoke_target_from_dict(raw.get("invokeTarget"), name=name),
            type=str(raw.get("type", AWS_SAM_DEBUG_TYPE)),
            request=str(raw.get("request", DIRECT_INVOKE)),
            lambda_options=_lambda_options_from_dict(raw.get("lambda")),
            extra={k: v for k, v in raw.items() if k not in _KNOWN_KEYS},
        )


def _invoke_target_from_dict(raw: Any, *, name: str) -> InvokeTarget:
    if not isinstance(raw, dict):
        raise DebugConfigurationError(f"Debug configuration {name!r} has no `invokeTarget`.")

    target = raw.get("target")
    if target == TEMPLATE_TARGET:
        return TemplateTarget(
            template_path=str(raw.get("templatePath", "")),
            logical_id=str(raw.get("logicalId", "")),
        )
    if target == CODE_TARGET:
        return CodeTarget(
            project_root=str(raw.get("projectRoot", "")),
            lambda_handler=str(raw.get("lambdaHandler", "")),
        )
    raise DebugConfigurationError(
        f"Debug configuration {name!r} has unsupported invokeTarget.target {target!r}.",
        details={"invokeTarget": raw},
    )


def _lambda_options_from_dict(raw: Any) -> LambdaOptions | None:
    if not isinstance(raw, dict):
        return None
    runtime = raw.get("runtime")
    payload = raw.get("payload")
    env = raw.get("environmentVariables")
    return LambdaOptions(
        runtime=runtime if isinstance(runtime, str) else None,
        payload=dict(payload) if isinstance(payload, dict) else None,
        environment_variables=dict(env) if isinstance(env, dict) else None,
    )
