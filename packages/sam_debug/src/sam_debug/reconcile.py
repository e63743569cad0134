from __future__ import annotations

import copy
import logging
from collections.abc import Sequence
from pathlib import Path

from sam_debug.model import DebugConfiguration, LambdaOptions, TemplateTarget
from sam_debug.pathing import are_equal
from sam_debug.provider import SamDebugConfigProvider
from sam_debug.store import LaunchConfiguration, LaunchConfigurationStore

logger = logging.getLogger(__name__)


def filter_configurations_for_template(
    candidates: Sequence[DebugConfiguration],
    workspace_root: Path | str,
    target_path: Path | str,
) -> list[DebugConfiguration]:
    return [
        copy.deepcopy(config)
        for config in candidates
        if isinstance(config.invoke_target, TemplateTarget)
        and are_equal(workspace_root, config.invoke_target.template_path, target_path)
    ]


async def reconcile(
    candidates: Sequence[DebugConfiguration],
    workspace_root: Path | str,
    target_path: Path | str,
    runtime: str | None = None,
    *,
    store: LaunchConfigurationStore,
) -> list[DebugConfiguration]:
    """
    Keep the configurations that target `target_path`, stamp `runtime` on them and persist them.

    The caller's configurations are never mutated. An empty list means nothing matched;
    persistence errors propagate.
    """

    matched = filter_configurations_for_template(candidates, workspace_root, target_path)

    # Optional for Zip functions, required for Image functions.
    if runtime is not None:
        for config in matched:
            if config.lambda_options is None:
                config.lambda_options = LambdaOptions()
            config.lambda_options.runtime = runtime

    await store.add_debug_configurations(matched)
    logger.debug(
        "Reconciled %d of %d configuration(s) for %s", len(matched), len(candidates), target_path
    )
    return matched


async def add_initial_launch_configuration(
    provider: SamDebugConfigProvider,
    folder: Path | str,
    target_path: Path | str,
    runtime: str | None = None,
    *,
    folder_name: str | None = None,
    store: LaunchConfigurationStore | None = None,
) -> list[DebugConfiguration] | None:
    configurations = await provider.provide_debug_configurations(folder, name=folder_name)
    if configurations is None:
        return None
    return await reconcile(
        configurations,
        folder,
        target_path,
        runtime,
        store=store if store is not None else LaunchConfiguration(folder),
    )
