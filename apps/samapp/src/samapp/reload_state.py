from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class SamInitState:
    path: str
    runtime: str | None = None
    is_image: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "runtime": self.runtime, "is_image": self.is_image}


class ActivationReloadState:
    """
    State that survives a host restart between creating a project and configuring it.

    Adding a workspace folder can restart the host; the pending launch configuration step
    is stored here and picked up by `resume_create_new_sam_app`.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        return raw if isinstance(raw, dict) else {}

    def _write(self, payload: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8", newline="\n")

    def get_sam_init_state(self) -> SamInitState | None:
        raw = self._read().get("sam_init")
        if not isinstance(raw, dict) or not isinstance(raw.get("path"), str):
            return None
        runtime = raw.get("runtime")
        return SamInitState(
            path=raw["path"],
            runtime=runtime if isinstance(runtime, str) else None,
            is_image=bool(raw.get("is_image", False)),
        )

    def set_sam_init_state(self, state: SamInitState) -> None:
        payload = self._read()
        payload["sam_init"] = state.to_dict()
        self._write(payload)

    def clear_sam_init_state(self) -> None:
        payload = self._read()
        if payload.pop("sam_init", None) is not None:
            self._write(payload)
