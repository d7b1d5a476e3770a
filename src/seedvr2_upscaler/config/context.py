"""Workflow modes and the per-pass context the resolver needs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field

from .presets import DEFAULT_MODEL_ASSET


class WorkflowMode(str, Enum):
    """Graph topology produced for one generation pass."""

    STANDALONE_IMAGE_FILE = "standalone_image_file"
    STANDALONE_VIDEO_FILE = "standalone_video_file"
    IN_PIPELINE_IMAGE = "in_pipeline_image"
    IN_PIPELINE_VIDEO = "in_pipeline_video"

    @property
    def is_multi_frame(self) -> bool:
        return self in (
            WorkflowMode.STANDALONE_VIDEO_FILE,
            WorkflowMode.IN_PIPELINE_VIDEO,
        )


@dataclass(frozen=True)
class ModeDefaults:
    """Defaults that differ between workflow modes."""

    upscale_by: float = 1.0
    manual_block_swap: int = 0
    manual_tiled_vae: bool = False
    fallback_asset: str = DEFAULT_MODEL_ASSET
    # Shortest edge assumed when the source size is unknown.
    unknown_edge: int = 1024


MODE_DEFAULTS: Mapping[WorkflowMode, ModeDefaults] = MappingProxyType(
    {
        WorkflowMode.IN_PIPELINE_IMAGE: ModeDefaults(),
        WorkflowMode.IN_PIPELINE_VIDEO: ModeDefaults(),
        WorkflowMode.STANDALONE_IMAGE_FILE: ModeDefaults(upscale_by=1.5),
        WorkflowMode.STANDALONE_VIDEO_FILE: ModeDefaults(
            upscale_by=2.0,
            manual_block_swap=32,
            manual_tiled_vae=True,
            fallback_asset="seedvr2_ema_3b_fp16.safetensors",
            unknown_edge=540,
        ),
    }
)


class WorkflowContext(BaseModel):
    """What the resolver needs to know about the current pass.

    ``width``/``height`` are the source dimensions: the host's generation
    size for in-pipeline modes, the file's size for a standalone image, and
    unknown for a standalone video. ``upstream_scale`` is any upscale the
    host already applied before SeedVR2 runs (e.g. a refiner upscale).
    """

    model_config = ConfigDict(frozen=True)

    mode: WorkflowMode
    width: int | None = Field(default=None, ge=0)
    height: int | None = Field(default=None, ge=0)
    upstream_scale: float = Field(default=1.0, gt=0.0)
    seed: int = 42

    @property
    def defaults(self) -> ModeDefaults:
        return MODE_DEFAULTS[self.mode]

    @property
    def has_dimensions(self) -> bool:
        return bool(self.width) and bool(self.height)
