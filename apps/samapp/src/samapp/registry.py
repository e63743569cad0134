from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from sam_debug.pathing import normalize_path

logger = logging.getLogger(__name__)

TEMPLATE_FILE_NAMES: tuple[str, ...] = ("template.yaml", "template.yml")
_SKIPPED_DIRS: frozenset[str] = frozenset(
    {".aws-sam", ".git", "node_modules", ".venv", "__pycache__"}
)


class TemplateParseError(ValueError):
    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path


class CloudFormationLoader(yaml.SafeLoader):
    """SafeLoader that understands CloudFormation short-form tags such as `!Ref` and `!Sub`."""


def _construct_intrinsic(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> Any:
    value: Any
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)  # type: ignore[arg-type]

    if tag_suffix == "Ref":
        return {"Ref": value}
    if tag_suffix == "GetAtt" and isinstance(value, str):
        value = value.split(".", 1)
    return {f"Fn::{tag_suffix}": value}


CloudFormationLoader.add_multi_constructor("!", _construct_intrinsic)


def load_template(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.load(path.read_text(encoding="utf-8"), Loader=CloudFormationLoader)  # noqa: S506
    except OSError as e:
        raise TemplateParseError(f"Failed to read {path}: {e}", path=path) from e
    except yaml.YAMLError as e:
        raise TemplateParseError(f"Failed to parse YAML in {path}: {e}", path=path) from e

    if not isinstance(raw, dict) or not isinstance(raw.get("Resources"), dict):
        raise TemplateParseError(
            f"{path} is not a CloudFormation template (no Resources).", path=path
        )
    return raw


@dataclass(frozen=True)
class RegisteredTemplate:
    path: Path
    template: Mapping[str, Any]


class TemplateRegistry:
    """Index of CloudFormation/SAM templates known to the workspace."""

    def __init__(self) -> None:
        self._items: dict[str, RegisteredTemplate] = {}

    @staticmethod
    def _key(path: Path | str) -> str:
        return normalize_path(os.path.abspath(path))

    def reset(self) -> None:
        self._items.clear()

    def add_item_to_registry(self, path: Path | str) -> RegisteredTemplate:
        template_path = Path(os.path.abspath(path))
        item = RegisteredTemplate(path=template_path, template=load_template(template_path))
        self._items[self._key(template_path)] = item
        logger.debug("Registered template %s", template_path)
        return item

    def remove_item_from_registry(self, path: Path | str) -> None:
        self._items.pop(self._key(path), None)

    def get_registered_item(self, path: Path | str) -> RegisteredTemplate | None:
        return self._items.get(self._key(path))

    def items(self) -> list[RegisteredTemplate]:
        return list(self._items.values())

    def iter_templates(self) -> Iterable[tuple[Path, Mapping[str, Any]]]:
        for item in self.items():
            yield item.path, item.template

    def add_items_from_folder(self, folder: Path | str) -> int:
        """Register every template file under `folder`, skipping files that do not parse."""

        added = 0
        for root, dirs, files in os.walk(folder):
            dirs[:] = [d for d in dirs if d not in _SKIPPED_DIRS]
            for file_name in files:
                if file_name not in TEMPLATE_FILE_NAMES:
                    continue
                try:
                    self.add_item_to_registry(Path(root) / file_name)
                except TemplateParseError as e:
                    logger.warning("Not registering %s: %s", e.path, e)
                    continue
                added += 1
        return added
