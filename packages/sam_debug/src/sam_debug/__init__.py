from sam_debug.model import (
    AWS_SAM_DEBUG_TYPE,
    DIRECT_INVOKE,
    CodeTarget,
    DebugConfiguration,
    DebugConfigurationError,
    LambdaOptions,
    TemplateTarget,
)
from sam_debug.pathing import WORKSPACE_FOLDER_VARIABLE, are_equal, normalize_path
from sam_debug.provider import SamDebugConfigProvider, TemplateSource
from sam_debug.reconcile import add_initial_launch_configuration, reconcile
from sam_debug.store import LaunchConfiguration, LaunchConfigurationError, LaunchConfigurationStore

__all__ = [
    "AWS_SAM_DEBUG_TYPE",
    "DIRECT_INVOKE",
    "WORKSPACE_FOLDER_VARIABLE",
    "CodeTarget",
    "DebugConfiguration",
    "DebugConfigurationError",
    "LambdaOptions",
    "LaunchConfiguration",
    "LaunchConfigurationError",
    "LaunchConfigurationStore",
    "SamDebugConfigProvider",
    "TemplateSource",
    "TemplateTarget",
    "add_initial_launch_configuration",
    "are_equal",
    "normalize_path",
    "reconcile",
]
