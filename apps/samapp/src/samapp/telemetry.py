from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

RESULT_SUCCEEDED = "Succeeded"
RESULT_FAILED = "Failed"
RESULT_CANCELLED = "Cancelled"

REASON_UNKNOWN = "unknown"
REASON_USER_CANCELLED = "userCancelled"
REASON_FILE_NOT_FOUND = "fileNotFound"
REASON_COMPLETE = "complete"
REASON_ERROR = "error"


@dataclass(frozen=True)
class SamInitEvent:
    lambda_package_type: str | None
    result: str
    reason: str
    runtime: str | None
    version: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "lambda_package_type": self.lambda_package_type,
            "result": self.result,
            "reason": self.reason,
            "runtime": self.runtime,
            "version": self.version,
        }


class TelemetryRecorder(Protocol):
    def record_sam_init(self, event: SamInitEvent) -> None: ...


class JsonlTelemetryRecorder:
    """Appends one JSON line per recorded event."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def record_sam_init(self, event: SamInitEvent) -> None:
        payload = {
            "schema_version": 1,
            "metric": "sam_init",
            "created_at": datetime.now(tz=timezone.utc).isoformat(),
            **event.to_dict(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8", newline="\n") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")
        logger.debug("Recorded sam_init event: %s", payload)
