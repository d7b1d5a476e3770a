"""Parameters, static tables and configuration resolution."""

from .context import MODE_DEFAULTS, ModeDefaults, WorkflowContext, WorkflowMode
from .params import UpscaleParams, ui_field_config
from .presets import (
    DEFAULT_CATALOG,
    MODEL_VARIANTS,
    PRESETS,
    VRAM_TIERS,
    ModelCatalog,
    PresetChoice,
    SelectionKey,
    SelectionKind,
)
from .resolver import ResolvedConfig, compute_resolution, resolve_config, select_vram_tier

__all__ = [
    "DEFAULT_CATALOG",
    "MODEL_VARIANTS",
    "MODE_DEFAULTS",
    "PRESETS",
    "VRAM_TIERS",
    "ModeDefaults",
    "ModelCatalog",
    "PresetChoice",
    "ResolvedConfig",
    "SelectionKey",
    "SelectionKind",
    "UpscaleParams",
    "WorkflowContext",
    "WorkflowMode",
    "compute_resolution",
    "resolve_config",
    "select_vram_tier",
    "ui_field_config",
]
