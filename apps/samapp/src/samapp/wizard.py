from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from sam_cli.templates import EVENTBRIDGE_STARTER_APP_TEMPLATE

from samapp.regions import Region

PACKAGE_TYPE_ZIP = "Zip"
PACKAGE_TYPE_IMAGE = "Image"


class WizardValidationError(ValueError):
    pass


@dataclass(frozen=True)
class WizardContext:
    credentials: Any | None
    schemas_regions: list[Region] = field(default_factory=list)
    sam_cli_version: str | None = None


@dataclass(frozen=True)
class CreateNewSamAppWizardResponse:
    name: str
    location: Path
    runtime: str
    package_type: str = PACKAGE_TYPE_ZIP
    template: str | None = None
    dependency_manager: str | None = None
    region: str | None = None
    registry_name: str | None = None
    schema_name: str | None = None


class CreateNewSamAppWizard(Protocol):
    async def run(self, context: WizardContext) -> CreateNewSamAppWizardResponse | None:
        """Collect the new application's settings; None means the user cancelled."""
        ...


def validate_wizard_response(
    response: CreateNewSamAppWizardResponse, context: WizardContext
) -> None:
    if not response.name.strip():
        raise WizardValidationError("Application name must not be empty.")
    if response.package_type not in (PACKAGE_TYPE_ZIP, PACKAGE_TYPE_IMAGE):
        raise WizardValidationError(
            f"Package type must be {PACKAGE_TYPE_ZIP} or {PACKAGE_TYPE_IMAGE}, "
            f"got {response.package_type!r}."
        )
    if response.package_type == PACKAGE_TYPE_IMAGE and response.template is not None:
        raise WizardValidationError("Application templates are only available for Zip packages.")

    if response.template != EVENTBRIDGE_STARTER_APP_TEMPLATE:
        return
    missing = [
        flag
        for flag, value in (
            ("region", response.region),
            ("registry name", response.registry_name),
            ("schema name", response.schema_name),
        )
        if not value
    ]
    if missing:
        raise WizardValidationError(
            f"The {EVENTBRIDGE_STARTER_APP_TEMPLATE} template needs a {', '.join(missing)}."
        )
    available = {r.id for r in context.schemas_regions}
    if response.region not in available:
        raise WizardValidationError(
            f"EventBridge schemas are not available in {response.region}. "
            f"Choose one of: {', '.join(sorted(available)) or '(none)'}."
        )


class StaticWizard:
    """Answers the wizard with a response prepared up front (command-line flags, tests)."""

    def __init__(self, response: CreateNewSamAppWizardResponse | None) -> None:
        self._response = response

    async def run(self, context: WizardContext) -> CreateNewSamAppWizardResponse | None:
        if self._response is None:
            return None
        validate_wizard_response(self._response, context)
        return self._response
