"""Plugin system for SeedVR2."""

from .hookspecs import hookimpl
from .manager import (
    WorkflowStep,
    collect_node_features,
    collect_workflow_steps,
    create_plugin_manager,
    load_plugins,
    pm,
    run_workflow_steps,
)

__all__ = [
    "WorkflowStep",
    "collect_node_features",
    "collect_workflow_steps",
    "create_plugin_manager",
    "hookimpl",
    "load_plugins",
    "pm",
    "run_workflow_steps",
]
