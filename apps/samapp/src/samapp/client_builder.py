from __future__ import annotations

import platform
import re
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from samapp.regions import AwsContext

T = TypeVar("T")

PRODUCT_NAME = "samapp-toolkit"
_WHITESPACE_RE = re.compile(r"\s")


def build_user_agent(
    product_name: str, product_version: str, platform_name: str, platform_version: str
) -> str:
    host = _WHITESPACE_RE.sub("-", platform_name)
    return f"{product_name}/{product_version} {host}/{platform_version}"


class DefaultAwsClientBuilder:
    """Central construction of service clients so user agent and endpoint are set consistently."""

    def __init__(
        self,
        aws_context: AwsContext,
        *,
        product_version: str,
        endpoint: str | None = None,
        platform_name: str | None = None,
        platform_version: str | None = None,
    ) -> None:
        self._aws_context = aws_context
        self._product_version = product_version
        self._endpoint = endpoint
        self._platform_name = platform_name or platform.python_implementation()
        self._platform_version = platform_version or platform.python_version()

    async def create_and_configure_service_client(
        self,
        factory: Callable[[dict[str, Any]], T],
        options: Mapping[str, Any] | None = None,
        region: str | None = None,
        add_user_agent: bool = True,
    ) -> T:
        opts: dict[str, Any] = dict(options or {})

        if not opts.get("credentials"):
            opts["credentials"] = await self._aws_context.get_credentials()

        if not opts.get("region") and region:
            opts["region"] = region

        if not opts.get("custom_user_agent") and add_user_agent:
            opts["custom_user_agent"] = build_user_agent(
                PRODUCT_NAME, self._product_version, self._platform_name, self._platform_version
            )

        if self._endpoint:
            opts["endpoint"] = self._endpoint

        return factory(opts)
