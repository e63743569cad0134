from __future__ import annotations

from pathlib import Path


class SamAppError(Exception):
    """Base class for errors raised by the application workflow."""


class SchemaDownloadError(SamAppError):
    def __init__(self, message: str, *, schema_name: str, destination: Path) -> None:
        super().__init__(message)
        self.schema_name = schema_name
        self.destination = destination


class RegistrationTimeoutError(SamAppError):
    def __init__(self, message: str, *, path: Path, timeout: float) -> None:
        super().__init__(message)
        self.path = path
        self.timeout = timeout
