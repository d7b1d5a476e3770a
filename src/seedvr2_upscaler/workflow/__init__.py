"""Workflow mode selection and graph assembly."""

from .modes import STEP_PRIORITIES, HostContext, select_mode
from .nodes import FEATURE_ID, NODE_FEATURES, split_video_format
from .orchestrator import GenerationPass, generate_upscale_workflow

__all__ = [
    "FEATURE_ID",
    "NODE_FEATURES",
    "STEP_PRIORITIES",
    "GenerationPass",
    "HostContext",
    "generate_upscale_workflow",
    "select_mode",
    "split_video_format",
]
