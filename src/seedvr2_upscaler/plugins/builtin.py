"""Built-in plugin wiring the SeedVR2 workflow modes into the host steps."""

import logging

from ..config.context import WorkflowMode
from ..workflow.modes import STEP_PRIORITIES, select_mode
from ..workflow.nodes import NODE_FEATURES
from ..workflow.orchestrator import GenerationPass, generate_upscale_workflow
from .hookspecs import hookimpl

logger = logging.getLogger(__name__)


def make_mode_step(mode: WorkflowMode):
    """Return a step that runs the orchestrator only for ``mode``."""

    def step(gen: GenerationPass) -> None:
        if select_mode(gen.params, gen.host) is not mode:
            return
        logger.debug(f"SeedVR2: Running {mode.value} step")
        generate_upscale_workflow(gen, mode)

    step.__name__ = f"seedvr2_{mode.value}_step"
    return step


@hookimpl
def register_workflow_steps(register):
    for mode, priority in STEP_PRIORITIES.items():
        register(make_mode_step(mode), priority, f"seedvr2:{mode.value}")


@hookimpl
def register_features(register):
    for node_class, feature_id in NODE_FEATURES.items():
        register(node_class, feature_id)
