from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_STATE_DIR = Path.home() / ".samapp"
_LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_ALLOWED_KEYS: frozenset[str] = frozenset(
    {
        "sam_cli_location",
        "endpoint",
        "log_level",
        "state_dir",
        "workspace_file",
        "telemetry_path",
        "registration_timeout_seconds",
        "registration_interval_seconds",
    }
)


@dataclass(frozen=True)
class Settings:
    sam_cli_location: str | None = None
    endpoint: str | None = None
    log_level: str = "INFO"
    state_dir: Path = DEFAULT_STATE_DIR
    workspace_file: Path | None = None
    telemetry_path: Path | None = None
    registration_timeout_seconds: float = 5.0
    registration_interval_seconds: float = 0.5

    @property
    def resolved_workspace_file(self) -> Path:
        return self.workspace_file or self.state_dir / "workspace.json"

    @property
    def resolved_telemetry_path(self) -> Path:
        return self.telemetry_path or self.state_dir / "telemetry.jsonl"

    @property
    def reload_state_path(self) -> Path:
        return self.state_dir / "reload_state.json"


class SettingsError(ValueError):
    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SettingsError(f"Failed to read {path}: {e}", code="read_failed") from e
    except yaml.YAMLError as e:
        raise SettingsError(f"Failed to parse YAML in {path}: {e}", code="parse_failed") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise SettingsError(
            f"Expected a YAML mapping in {path}, got {type(raw).__name__}.", code="not_a_mapping"
        )
    return raw


def _optional_str(data: dict[str, Any], key: str, *, path: Path) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise SettingsError(
            f"`{key}` in {path} must be a non-empty string.",
            code="invalid_value",
            details={"key": key, "value": value},
        )
    return value.strip()


def _positive_float(data: dict[str, Any], key: str, default: float, *, path: Path) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise SettingsError(
            f"`{key}` in {path} must be a positive number.",
            code="invalid_value",
            details={"key": key, "value": value},
        )
    return float(value)


def _optional_path(data: dict[str, Any], key: str, *, path: Path) -> Path | None:
    value = _optional_str(data, key, path=path)
    if value is None:
        return None
    p = Path(value).expanduser()
    return p if p.is_absolute() else (path.parent / p)


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from a YAML file; a missing path or file yields the defaults."""

    if path is None or not path.exists():
        return Settings()

    data = _load_yaml_mapping(path)
    unknown = set(data) - _ALLOWED_KEYS
    if unknown:
        raise SettingsError(
            f"Unknown keys in {path}: {', '.join(sorted(unknown))}",
            code="unknown_keys",
            details={"unknown_keys": sorted(unknown), "allowed_keys": sorted(_ALLOWED_KEYS)},
        )

    log_level = (_optional_str(data, "log_level", path=path) or "INFO").upper()
    if log_level not in _LOG_LEVELS:
        raise SettingsError(
            f"`log_level` in {path} must be one of {', '.join(sorted(_LOG_LEVELS))}.",
            code="invalid_value",
            details={"key": "log_level", "value": data.get("log_level")},
        )

    return Settings(
        sam_cli_location=_optional_str(data, "sam_cli_location", path=path),
        endpoint=_optional_str(data, "endpoint", path=path),
        log_level=log_level,
        state_dir=_optional_path(data, "state_dir", path=path) or DEFAULT_STATE_DIR,
        workspace_file=_optional_path(data, "workspace_file", path=path),
        telemetry_path=_optional_path(data, "telemetry_path", path=path),
        registration_timeout_seconds=_positive_float(
            data, "registration_timeout_seconds", 5.0, path=path
        ),
        registration_interval_seconds=_positive_float(
            data, "registration_interval_seconds", 0.5, path=path
        ),
    )
