from __future__ import annotations

import os
import posixpath
import re
from pathlib import Path

WORKSPACE_FOLDER_VARIABLE = "${workspaceFolder}"

_WINDOWS_DRIVE_RE = re.compile(r"^[A-Za-z]:/")
_REPEATED_SEPARATORS_RE = re.compile(r"/{2,}")


def _is_case_insensitive(case_insensitive: bool | None) -> bool:
    if case_insensitive is not None:
        return case_insensitive
    return os.name == "nt"


def _is_absolute(posixish: str) -> bool:
    return posixish.startswith("/") or bool(_WINDOWS_DRIVE_RE.match(posixish))


def normalize_path(path: str | Path, *, case_insensitive: bool | None = None) -> str:
    """Normalize separators, `.`/`..` segments and drive-letter case; fold case if requested."""

    text = str(path).replace("\\", "/")
    if len(text) >= 2 and text[1] == ":":
        text = text[0].lower() + text[1:]
    # A leading `//` is only meaningful as a UNC prefix on Windows.
    unc = os.name == "nt" and text.startswith("//")
    text = _REPEATED_SEPARATORS_RE.sub("/", text)
    if unc:
        text = "/" + text
    text = posixpath.normpath(text)
    if _is_case_insensitive(case_insensitive):
        text = text.casefold()
    return text


def resolve_in_workspace(workspace_folder: str | Path | None, path: str | Path) -> str:
    text = str(path)
    if workspace_folder is None:
        return text.replace("\\", "/")

    root = str(workspace_folder).replace("\\", "/").rstrip("/") or "/"
    text = text.replace(WORKSPACE_FOLDER_VARIABLE, root).replace("\\", "/")
    if _is_absolute(text):
        return text
    return posixpath.join(root, text)


def are_equal(
    workspace_folder: str | Path | None,
    first: str | Path,
    second: str | Path,
    *,
    case_insensitive: bool | None = None,
) -> bool:
    """
    Compare two paths the way debug configurations reference files.

    Both paths may contain `${workspaceFolder}` or be relative to `workspace_folder`; they
    are equal when their resolved, normalized absolute forms match.
    """

    left = normalize_path(
        resolve_in_workspace(workspace_folder, first), case_insensitive=case_insensitive
    )
    right = normalize_path(
        resolve_in_workspace(workspace_folder, second), case_insensitive=case_insensitive
    )
    return left == right


def workspace_relative_path(workspace_folder: str | Path, path: str | Path) -> str:
    """Return `${workspaceFolder}/<relative>` when `path` lives inside the folder."""

    root = normalize_path(workspace_folder, case_insensitive=False)
    target = normalize_path(path, case_insensitive=False)
    if target == root:
        return WORKSPACE_FOLDER_VARIABLE
    prefix = root.rstrip("/") + "/"
    if target.startswith(prefix):
        return f"{WORKSPACE_FOLDER_VARIABLE}/{target[len(prefix):]}"
    return target
