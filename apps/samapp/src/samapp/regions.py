from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

SCHEMAS_SERVICE_ID = "schemas"


@dataclass(frozen=True)
class Region:
    id: str
    name: str


class AwsContext(Protocol):
    async def get_credentials(self) -> Any | None: ...


class RegionProvider(Protocol):
    def get_regions(self) -> list[Region]: ...

    def is_service_in_region(self, service_id: str, region_id: str) -> bool: ...


DEFAULT_REGIONS: tuple[Region, ...] = (
    Region("us-east-1", "US East (N. Virginia)"),
    Region("us-east-2", "US East (Ohio)"),
    Region("us-west-1", "US West (N. California)"),
    Region("us-west-2", "US West (Oregon)"),
    Region("ap-northeast-1", "Asia Pacific (Tokyo)"),
    Region("ap-southeast-2", "Asia Pacific (Sydney)"),
    Region("ca-central-1", "Canada (Central)"),
    Region("eu-central-1", "Europe (Frankfurt)"),
    Region("eu-west-1", "Europe (Ireland)"),
    Region("sa-east-1", "South America (Sao Paulo)"),
)

DEFAULT_SERVICE_REGIONS: dict[str, frozenset[str]] = {
    SCHEMAS_SERVICE_ID: frozenset(
        {
            "us-east-1",
            "us-east-2",
            "us-west-1",
            "us-west-2",
            "ap-northeast-1",
            "ap-southeast-2",
            "ca-central-1",
            "eu-central-1",
            "eu-west-1",
        }
    ),
}


class StaticRegionProvider:
    def __init__(
        self,
        regions: Iterable[Region] = DEFAULT_REGIONS,
        service_regions: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self._regions = list(regions)
        source = DEFAULT_SERVICE_REGIONS if service_regions is None else service_regions
        self._service_regions = {service: frozenset(ids) for service, ids in source.items()}

    def get_regions(self) -> list[Region]:
        return list(self._regions)

    def is_service_in_region(self, service_id: str, region_id: str) -> bool:
        return region_id in self._service_regions.get(service_id, frozenset())


def regions_with_service(provider: RegionProvider, service_id: str) -> list[Region]:
    return [r for r in provider.get_regions() if provider.is_service_in_region(service_id, r.id)]


class EnvironmentAwsContext:
    """Credentials taken from the standard AWS environment variables, if any are set."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    async def get_credentials(self) -> dict[str, str] | None:
        access_key = self._environ.get("AWS_ACCESS_KEY_ID")
        profile = self._environ.get("AWS_PROFILE")
        if access_key:
            creds = {
                "access_key_id": access_key,
                "secret_access_key": self._environ.get("AWS_SECRET_ACCESS_KEY", ""),
            }
            session_token = self._environ.get("AWS_SESSION_TOKEN")
            if session_token:
                creds["session_token"] = session_token
            return creds
        if profile:
            return {"profile": profile}
        return None
