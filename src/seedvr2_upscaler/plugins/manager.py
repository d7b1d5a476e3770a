"""Plugin manager for discovering SeedVR2 workflow steps."""

import logging
from collections.abc import Callable, Iterable
from typing import NamedTuple

import pluggy

from .hookspecs import SeedVR2HookSpec

logger = logging.getLogger(__name__)

ENTRYPOINT_GROUP = "seedvr2"
BUILTIN_PLUGIN_NAME = "seedvr2-builtin"


def create_plugin_manager() -> pluggy.PluginManager:
    manager = pluggy.PluginManager("seedvr2")
    manager.add_hookspecs(SeedVR2HookSpec)
    return manager


# Create the plugin manager singleton
pm = create_plugin_manager()


class WorkflowStep(NamedTuple):
    priority: float
    name: str
    run: Callable


def load_plugins(manager: pluggy.PluginManager = pm):
    """Register the built-in plugin and any installed via entry points."""
    from . import builtin

    if manager.get_plugin(BUILTIN_PLUGIN_NAME) is None:
        manager.register(builtin, name=BUILTIN_PLUGIN_NAME)
    manager.load_setuptools_entrypoints(ENTRYPOINT_GROUP)
    logger.info(f"Loaded {len(manager.get_plugins())} plugin(s)")


def collect_workflow_steps(manager: pluggy.PluginManager = pm) -> list[WorkflowStep]:
    """Call register_workflow_steps on every plugin, ordered by priority.

    Steps with equal priority keep their registration order.
    """
    steps: list[WorkflowStep] = []

    def register_callback(step, priority, name=None):
        step_name = name or getattr(step, "__name__", repr(step))
        steps.append(WorkflowStep(float(priority), step_name, step))
        logger.debug(f"Registered workflow step: {step_name} (priority {priority})")

    manager.hook.register_workflow_steps(register=register_callback)
    return sorted(steps, key=lambda s: s.priority)


def collect_node_features(manager: pluggy.PluginManager = pm) -> dict[str, str]:
    """Map each registered node class to the feature that provides it."""
    features: dict[str, str] = {}

    def register_callback(node_class, feature_id):
        features[node_class] = feature_id

    manager.hook.register_features(register=register_callback)
    return features


def run_workflow_steps(gen, steps: Iterable[WorkflowStep]) -> list[str]:
    """Run ``steps`` in priority order until the pass is marked complete.

    Args:
        gen: The ``GenerationPass`` the steps operate on
        steps: Plugin steps, possibly merged with the host's own steps

    Returns:
        Names of the steps that ran
    """
    ran = []
    for step in sorted(steps, key=lambda s: s.priority):
        if gen.builder.is_complete:
            logger.debug(f"Generation pass complete, skipping step {step.name}")
            continue
        step.run(gen)
        ran.append(step.name)
    return ran
