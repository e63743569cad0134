from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol

from sam_debug.model import DebugConfiguration, LambdaOptions, TemplateTarget
from sam_debug.pathing import normalize_path, workspace_relative_path

logger = logging.getLogger(__name__)

SERVERLESS_FUNCTION_TYPE = "AWS::Serverless::Function"


class TemplateSource(Protocol):
    def iter_templates(self) -> Iterable[tuple[Path, Mapping[str, Any]]]: ...


def _is_inside(folder: Path, path: Path) -> bool:
    root = normalize_path(folder).rstrip("/") + "/"
    return normalize_path(path).startswith(root)


def iter_serverless_functions(
    template: Mapping[str, Any],
) -> Iterable[tuple[str, Mapping[str, Any]]]:
    resources = template.get("Resources")
    if not isinstance(resources, Mapping):
        return
    for logical_id, resource in resources.items():
        if not isinstance(resource, Mapping):
            continue
        if resource.get("Type") == SERVERLESS_FUNCTION_TYPE:
            yield str(logical_id), resource


class SamDebugConfigProvider:
    def __init__(self, templates: TemplateSource) -> None:
        self._templates = templates

    async def provide_debug_configurations(
        self, folder: Path | str, *, name: str | None = None
    ) -> list[DebugConfiguration] | None:
        """
        Build one template-targeted configuration per serverless function in `folder`.

        Returns None when `folder` is not a directory.
        """

        folder_path = Path(folder)
        if not folder_path.is_dir():
            return None
        folder_name = name or folder_path.name

        configs: list[DebugConfiguration] = []
        for template_path, template in self._templates.iter_templates():
            if not _is_inside(folder_path, template_path):
                continue
            relative = workspace_relative_path(folder_path, template_path)
            for logical_id, _resource in iter_serverless_functions(template):
                configs.append(
                    DebugConfiguration(
                        name=f"{folder_name}:{logical_id}",
                        invoke_target=TemplateTarget(template_path=relative, logical_id=logical_id),
                        lambda_options=LambdaOptions(payload={}, environment_variables={}),
                    )
                )
        logger.debug("Provided %d debug configuration(s) for %s", len(configs), folder_path)
        return configs
