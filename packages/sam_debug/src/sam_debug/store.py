from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from sam_debug.model import AWS_SAM_DEBUG_TYPE, DebugConfiguration, DebugConfigurationError
from sam_debug.schema import validate_debug_configuration

logger = logging.getLogger(__name__)

LAUNCH_JSON_VERSION = "0.2.0"


def strip_jsonc(text: str) -> str:
    """
    Remove `//` and `/* */` comments and trailing commas so JSONC parses as JSON.

    String literals are copied verbatim, so `"https://..."` values survive.
    """

    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            j = i + 1
            while j < n and text[j] != '"':
                j += 2 if text[j] == "\\" else 1
            out.append(text[i : j + 1])
            i = j + 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        elif ch in "}]":
            k = len(out) - 1
            while k >= 0 and out[k].isspace():
                k -= 1
            if k >= 0 and out[k] == ",":
                del out[k]
            out.append(ch)
            i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


class LaunchConfigurationError(Exception):
    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.errors = errors or []


class LaunchConfigurationStore(Protocol):
    def get_debug_configurations(self) -> list[DebugConfiguration]: ...

    async def add_debug_configurations(self, configs: Sequence[DebugConfiguration]) -> None: ...


class LaunchConfiguration:
    """Debug configurations of one workspace folder, stored in `.vscode/launch.json`."""

    def __init__(self, folder: Path | str) -> None:
        self.folder = Path(folder)
        self.path = self.folder / ".vscode" / "launch.json"

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"version": LAUNCH_JSON_VERSION, "configurations": []}
        try:
            raw = json.loads(strip_jsonc(self.path.read_text(encoding="utf-8")))
        except OSError as e:
            raise LaunchConfigurationError(
                f"Failed to read {self.path}: {e}", path=self.path
            ) from e
        except json.JSONDecodeError as e:
            raise LaunchConfigurationError(
                f"Failed to parse JSON in {self.path}: {e}", path=self.path
            ) from e

        if not isinstance(raw, dict):
            raise LaunchConfigurationError(
                f"Expected a JSON object in {self.path}, got {type(raw).__name__}.", path=self.path
            )
        configurations = raw.get("configurations")
        if configurations is None:
            raw["configurations"] = []
        elif not isinstance(configurations, list):
            raise LaunchConfigurationError(
                f"`configurations` in {self.path} must be a list.", path=self.path
            )
        return raw

    def _write(self, payload: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(payload, indent=4, ensure_ascii=False) + "\n",
            encoding="utf-8",
            newline="\n",
        )

    def get_debug_configurations(self) -> list[DebugConfiguration]:
        out: list[DebugConfiguration] = []
        for raw in self._read()["configurations"]:
            if not isinstance(raw, dict) or raw.get("type") != AWS_SAM_DEBUG_TYPE:
                continue
            try:
                out.append(DebugConfiguration.from_dict(raw))
            except DebugConfigurationError as e:
                logger.warning("Skipping unreadable debug configuration in %s: %s", self.path, e)
        return out

    async def add_debug_configurations(self, configs: Sequence[DebugConfiguration]) -> None:
        if not configs:
            return

        payloads = [config.to_dict() for config in configs]
        errors: list[str] = []
        for payload in payloads:
            errors.extend(
                f"{payload.get('name')!r}: {err}" for err in validate_debug_configuration(payload)
            )
        if errors:
            raise LaunchConfigurationError(
                f"Refusing to write invalid debug configurations to {self.path}.",
                path=self.path,
                errors=errors,
            )

        document = self._read()
        document["configurations"].extend(payloads)
        await asyncio.to_thread(self._write, document)
        logger.info("Added %d debug configuration(s) to %s", len(payloads), self.path)
