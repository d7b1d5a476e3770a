"""Host-side context and workflow mode selection."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from ..config.context import WorkflowMode
from ..config.params import UpscaleParams

# Host workflow-step priorities for each mode. Standalone files run before
# anything else; the in-pipeline image step runs after decode and face
# refinement (5) but before the image save (10); the in-pipeline video step
# runs after the video save (11) and redirects it.
STEP_PRIORITIES: dict[WorkflowMode, float] = {
    WorkflowMode.STANDALONE_IMAGE_FILE: -2,
    WorkflowMode.STANDALONE_VIDEO_FILE: -1,
    WorkflowMode.IN_PIPELINE_IMAGE: 6,
    WorkflowMode.IN_PIPELINE_VIDEO: 15,
}


class HostContext(BaseModel):
    """Values the surrounding pipeline supplies for a generation pass."""

    model_config = ConfigDict(frozen=True)

    image_width: int = Field(default=1024, ge=0)
    image_height: int = Field(default=1024, ge=0)
    upstream_scale: float = Field(
        default=1.0,
        gt=0.0,
        description="Upscale already applied by the pipeline (e.g. refiner upscale)",
    )
    seed: int = 42
    video_format: str = "h264-mp4"
    video_model_active: bool = Field(
        default=False,
        description="A video-producing model is part of this pass",
    )
    output_dir: Path | None = None


def select_mode(params: UpscaleParams, host: HostContext) -> WorkflowMode | None:
    """Pick the topology for this pass, or None when SeedVR2 is not enabled.

    Standalone file paths are checked first (image before video). Otherwise
    the group must be enabled via the model parameter, and a video model or
    an enabled video batch size selects the video frames topology.
    """
    if params.has_text("image_file"):
        return WorkflowMode.STANDALONE_IMAGE_FILE
    if params.has_text("video_file"):
        return WorkflowMode.STANDALONE_VIDEO_FILE
    if not params.has("model"):
        return None
    if host.video_model_active or params.has("video_batch_size"):
        return WorkflowMode.IN_PIPELINE_VIDEO
    return WorkflowMode.IN_PIPELINE_IMAGE
