from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from sam_debug.pathing import normalize_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkspaceFolder:
    path: Path
    name: str
    index: int = 0


class Workspace(Protocol):
    def folders(self) -> list[WorkspaceFolder]: ...

    def get_workspace_folder(self, path: Path | str) -> WorkspaceFolder | None: ...

    async def add_folder_to_workspace(
        self, folder: WorkspaceFolder, suppress_prompt: bool = False
    ) -> bool: ...

    async def open_document(self, path: Path | str) -> None: ...


class LocalWorkspace:
    """
    Workspace folders persisted in a JSON file.

    Listeners registered with `on_did_change_folder` run whenever a folder is added, including
    a folder that is already present, since new files may have appeared under it.
    """

    def __init__(self, workspace_file: Path | None = None) -> None:
        self.workspace_file = workspace_file
        self._folders: list[WorkspaceFolder] = []
        self._listeners: list[Callable[[WorkspaceFolder], None]] = []
        self.opened_documents: list[Path] = []
        if workspace_file is not None and workspace_file.exists():
            self._folders = self._load(workspace_file)

    @staticmethod
    def _load(path: Path) -> list[WorkspaceFolder]:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
        entries = raw.get("folders") if isinstance(raw, dict) else None
        if not isinstance(entries, list):
            return []
        out: list[WorkspaceFolder] = []
        for entry in entries:
            if not isinstance(entry, dict) or not isinstance(entry.get("path"), str):
                continue
            folder_path = Path(entry["path"])
            out.append(
                WorkspaceFolder(
                    path=folder_path,
                    name=str(entry.get("name") or folder_path.name),
                    index=len(out),
                )
            )
        return out

    def _save(self) -> None:
        if self.workspace_file is None:
            return
        self.workspace_file.parent.mkdir(parents=True, exist_ok=True)
        payload = {"folders": [{"path": str(f.path), "name": f.name} for f in self._folders]}
        self.workspace_file.write_text(
            json.dumps(payload, indent=2) + "\n", encoding="utf-8", newline="\n"
        )

    def on_did_change_folder(self, listener: Callable[[WorkspaceFolder], None]) -> None:
        self._listeners.append(listener)

    def folders(self) -> list[WorkspaceFolder]:
        return list(self._folders)

    def get_workspace_folder(self, path: Path | str) -> WorkspaceFolder | None:
        target = normalize_path(os.path.abspath(path))
        best: WorkspaceFolder | None = None
        best_len = -1
        for folder in self._folders:
            root = normalize_path(os.path.abspath(folder.path))
            if target != root and not target.startswith(root.rstrip("/") + "/"):
                continue
            if len(root) > best_len:
                best, best_len = folder, len(root)
        return best

    async def add_folder_to_workspace(
        self, folder: WorkspaceFolder, suppress_prompt: bool = False
    ) -> bool:
        key = normalize_path(os.path.abspath(folder.path))
        existing = next(
            (f for f in self._folders if normalize_path(os.path.abspath(f.path)) == key), None
        )
        if existing is not None:
            logger.debug("Folder %s is already in the workspace", folder.path)
            await self._notify(existing)
            return False

        added = WorkspaceFolder(
            path=Path(os.path.abspath(folder.path)), name=folder.name, index=len(self._folders)
        )
        self._folders.append(added)
        await asyncio.to_thread(self._save)
        if not suppress_prompt:
            logger.info("Added %s to the workspace as %r", added.path, added.name)
        await self._notify(added)
        return True

    async def _notify(self, folder: WorkspaceFolder) -> None:
        for listener in self._listeners:
            await asyncio.to_thread(listener, folder)

    async def open_document(self, path: Path | str) -> None:
        self.opened_documents.append(Path(path))
        logger.info("Open %s", path)
