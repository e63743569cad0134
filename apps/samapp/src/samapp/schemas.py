from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from samapp.errors import SchemaDownloadError

logger = logging.getLogger(__name__)

X_AMAZON_EVENT_SOURCE = "x-amazon-events-source"
X_AMAZON_EVENT_DETAIL_TYPE = "x-amazon-events-detail-type"
DEFAULT_EVENT_SOURCE = "INSERT-YOUR-EVENT-SOURCE"
DEFAULT_EVENT_DETAIL_TYPE = "INSERT-YOUR-DETAIL-TYPE"
SCHEMA_PACKAGE_PREFIX = "schema"
USER_AGENT = "samapp-toolkit"

_LANGUAGES_BY_RUNTIME_PREFIX: tuple[tuple[str, str], ...] = (
    ("python3", "Python36"),
    ("java", "Java8"),
    ("nodejs", "TypeScript3"),
)
_PACKAGE_INVALID_CHARS_RE = re.compile(r"[^a-z0-9_.]")


@dataclass(frozen=True)
class SchemaTemplateParameters:
    schema_version: str
    template_extra_context: dict[str, str]


@dataclass(frozen=True)
class SchemaCodeDownloadRequest:
    registry_name: str
    schema_name: str
    language: str
    schema_version: str
    destination_directory: Path


class SchemaClient(Protocol):
    async def describe_schema(self, registry_name: str, schema_name: str) -> Mapping[str, Any]:
        """Return the service response, including `Content` and `SchemaVersion`."""
        ...


class SchemaCodeDownloader(Protocol):
    async def download_code(self, request: SchemaCodeDownloadRequest) -> None: ...


def get_api_value_for_schemas_download(runtime: str) -> str:
    for prefix, language in _LANGUAGES_BY_RUNTIME_PREFIX:
        if runtime.startswith(prefix):
            return language
    raise ValueError(f"Runtime {runtime} is not supported by the EventBridge starter application")


def build_schema_package_hierarchy(schema_name: str) -> str:
    """`aws.ec2@EC2InstanceStateChange` -> `schema.aws.ec2.ec2instancestatechange`."""

    suffix = _PACKAGE_INVALID_CHARS_RE.sub("_", schema_name.lower().replace("@", "."))
    return f"{SCHEMA_PACKAGE_PREFIX}.{suffix}"


def build_schema_root_event_name(schemas_node: Mapping[str, Any]) -> str:
    names = list(schemas_node)
    if not names:
        raise ValueError("Schema content has no components.schemas entries")

    aws_event = schemas_node.get("AWSEvent")
    if isinstance(aws_event, Mapping):
        detail = aws_event.get("properties", {}).get("detail", {})
        ref = detail.get("$ref") if isinstance(detail, Mapping) else None
        if isinstance(ref, str) and ref:
            return ref.rsplit("/", 1)[-1]
        return "AWSEvent"
    return names[0]


async def build_schema_template_parameters(
    schema_name: str, registry_name: str, client: SchemaClient
) -> SchemaTemplateParameters:
    response = await client.describe_schema(registry_name, schema_name)
    content = response.get("Content")
    if not isinstance(content, str):
        raise ValueError(f"Schema {schema_name} in {registry_name} has no content")
    schema_node = json.loads(content)

    schemas_node = schema_node.get("components", {}).get("schemas", {})
    source = schema_node.get(X_AMAZON_EVENT_SOURCE)
    detail_type = schema_node.get(X_AMAZON_EVENT_DETAIL_TYPE)

    extra_context = {
        "AWS_Schema_registry": registry_name,
        "AWS_Schema_name": build_schema_root_event_name(schemas_node),
        "AWS_Schema_root": build_schema_package_hierarchy(schema_name),
        "AWS_Schema_source": source if isinstance(source, str) else DEFAULT_EVENT_SOURCE,
        "AWS_Schema_detail_type": (
            detail_type if isinstance(detail_type, str) else DEFAULT_EVENT_DETAIL_TYPE
        ),
        "user_agent": USER_AGENT,
    }
    return SchemaTemplateParameters(
        schema_version=str(response.get("SchemaVersion", "")),
        template_extra_context=extra_context,
    )


async def download_schema_code_bindings(
    downloader: SchemaCodeDownloader, request: SchemaCodeDownloadRequest
) -> None:
    logger.info("Downloading code for schema %s...", request.schema_name)
    try:
        await downloader.download_code(request)
    except SchemaDownloadError:
        raise
    except Exception as e:
        raise SchemaDownloadError(
            f"Failed to download code for schema {request.schema_name}: {e}",
            schema_name=request.schema_name,
            destination=request.destination_directory,
        ) from e
