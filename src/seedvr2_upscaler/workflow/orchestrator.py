"""Assemble the SeedVR2 upscale graph for the selected workflow mode.

Each generation pass runs exactly one topology:

- standalone image file: LoadImage -> loaders -> [ImageScaleBy] -> upscaler -> SaveImage
- standalone video file: LoadVideo -> loaders -> upscaler -> CreateVideo -> SaveVideo
- in-pipeline image: [VRAM_Debug] -> loaders -> [ImageScaleBy] -> upscaler
- in-pipeline video: [VRAM_Debug] -> loaders -> upscaler, then the host's
  save node is redirected to the upscaled frames

Standalone topologies mark the pass complete so no further host steps run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .._utils import strip_choice_label
from ..config.context import WorkflowContext, WorkflowMode
from ..config.params import UpscaleParams
from ..config.presets import DEFAULT_CATALOG, ModelCatalog, SelectionKey
from ..config.resolver import ResolvedConfig, resolve_config
from ..errors import MissingFeatureError
from ..graph.builder import GraphBuilder
from ..graph.schema import EdgeRef
from ..hardware.probe import DeviceCatalog, probe_devices
from .media import read_image_size, resolve_media_path
from .modes import HostContext, select_mode
from .nodes import (
    FEATURE_ID,
    KJNODES_FEATURE_ID,
    PACKAGE_NAME,
    PACKAGE_URL,
    VIDEO_CONSUMER_NODES,
    VIDEO_FRAMES_SLOT,
    add_load_image,
    add_load_video,
    add_model_loaders,
    add_pre_downscale,
    add_save_image,
    add_upscaler,
    add_video_save,
    add_vram_cleanup,
)

logger = logging.getLogger(__name__)

STANDALONE_DEFAULT_SELECTION = "seedvr2-preset-balanced"
SELECTION_PREFIX = "seedvr2-"


@dataclass
class GenerationPass:
    """Everything one workflow generation pass works on.

    The device catalog is probed at most once per pass and reused.
    """

    builder: GraphBuilder
    params: UpscaleParams
    features: frozenset[str] = frozenset()
    host: HostContext = field(default_factory=HostContext)
    models: ModelCatalog = DEFAULT_CATALOG
    probe: Callable[[], DeviceCatalog] = probe_devices
    _catalog: DeviceCatalog | None = field(default=None, init=False, repr=False)

    def device_catalog(self) -> DeviceCatalog:
        if self._catalog is None:
            self._catalog = self.probe()
        return self._catalog

    def require_feature(self) -> None:
        if FEATURE_ID not in self.features:
            raise MissingFeatureError(FEATURE_ID, PACKAGE_NAME, PACKAGE_URL)

    def resolve(self, selection: SelectionKey, context: WorkflowContext) -> ResolvedConfig:
        return resolve_config(
            selection,
            self.params,
            context,
            catalog=self.device_catalog(),
            models=self.models,
        )


def standalone_selection(params: UpscaleParams, models: ModelCatalog = DEFAULT_CATALOG) -> SelectionKey:
    """Selection for standalone files, defaulting to the balanced preset."""
    raw = strip_choice_label(params.get("model", ""))
    if raw.startswith(SELECTION_PREFIX):
        key = SelectionKey.parse(raw, models)
        if key.is_known(models):
            return key
        logger.warning(f"SeedVR2: Unknown model selection '{raw}', using {STANDALONE_DEFAULT_SELECTION}")
    return SelectionKey.parse(STANDALONE_DEFAULT_SELECTION, models)


def _in_pipeline_context(gen: GenerationPass, mode: WorkflowMode) -> WorkflowContext:
    return WorkflowContext(
        mode=mode,
        width=gen.host.image_width,
        height=gen.host.image_height,
        upstream_scale=gen.host.upstream_scale,
        seed=gen.host.seed,
    )


def _generate_image_file(gen: GenerationPass) -> None:
    raw_path = gen.params.image_file
    logger.info(f"SeedVR2 Image File Mode: Processing image '{raw_path}'")
    gen.require_feature()
    path = resolve_media_path(raw_path, "Image", gen.host.output_dir)
    size = read_image_size(path)
    width, height = size if size is not None else (None, None)

    context = WorkflowContext(
        mode=WorkflowMode.STANDALONE_IMAGE_FILE,
        width=width,
        height=height,
        seed=gen.host.seed,
    )
    config = gen.resolve(standalone_selection(gen.params, gen.models), context)

    builder = gen.builder
    image = add_load_image(builder, str(path))
    dit, vae = add_model_loaders(builder, config)
    if config.two_step_mode:
        image = add_pre_downscale(builder, image, config.pre_downscale)
    upscaled = add_upscaler(builder, image, dit, vae, config)
    builder.set_current_output(upscaled)
    add_save_image(builder, upscaled)
    builder.mark_complete()
    logger.info(
        f"SeedVR2 Image File: Complete workflow created - loading '{path}', "
        f"upscaling {config.upscale_by:g}x to resolution {config.resolution}"
    )


def _generate_video_file(gen: GenerationPass) -> None:
    raw_path = gen.params.video_file
    logger.info(f"SeedVR2 Video File Mode: Processing video '{raw_path}'")
    gen.require_feature()
    path = resolve_media_path(raw_path, "Video", gen.host.output_dir)

    context = WorkflowContext(mode=WorkflowMode.STANDALONE_VIDEO_FILE, seed=gen.host.seed)
    config = gen.resolve(standalone_selection(gen.params, gen.models), context)

    builder = gen.builder
    load_video_id = add_load_video(builder, str(path))
    dit, vae = add_model_loaders(builder, config)
    frames = EdgeRef(load_video_id, VIDEO_FRAMES_SLOT)
    upscaled = add_upscaler(builder, frames, dit, vae, config)
    add_video_save(builder, upscaled, load_video_id, gen.host.video_format)
    builder.set_current_output(upscaled)
    builder.mark_complete()
    logger.info(
        f"SeedVR2 Video File: Complete workflow created - loading '{path}', "
        f"upscaling {config.upscale_by:g}x (batch_size={config.batch_size}, "
        f"temporal_overlap={config.temporal_overlap})"
    )


def _generate_in_pipeline_image(gen: GenerationPass) -> None:
    if not gen.params.has("model"):
        logger.debug("SeedVR2: Model parameter not set, skipping image upscale")
        return
    gen.require_feature()
    source = gen.builder.current_output
    if source is None:
        logger.warning("SeedVR2: No image output available to upscale")
        return

    context = _in_pipeline_context(gen, WorkflowMode.IN_PIPELINE_IMAGE)
    config = gen.resolve(SelectionKey.parse(gen.params.model, gen.models), context)

    builder = gen.builder
    image = source
    if KJNODES_FEATURE_ID in gen.features:
        image = add_vram_cleanup(builder, image)
    dit, vae = add_model_loaders(builder, config)
    if config.two_step_mode:
        image = add_pre_downscale(builder, image, config.pre_downscale)
    upscaled = add_upscaler(builder, image, dit, vae, config)
    builder.set_current_output(upscaled)
    logger.info(f"SeedVR2: Upscaling image to resolution {config.resolution} ({config.summary()})")


def _generate_in_pipeline_video(gen: GenerationPass) -> None:
    if not gen.params.has("model"):
        logger.debug("SeedVR2 Video: Model parameter not set, skipping video upscale")
        return
    gen.require_feature()
    original = gen.builder.current_output
    if original is None:
        logger.warning("SeedVR2 Video: No video frames available to upscale")
        return

    context = _in_pipeline_context(gen, WorkflowMode.IN_PIPELINE_VIDEO)
    config = gen.resolve(SelectionKey.parse(gen.params.model, gen.models), context)

    builder = gen.builder
    frames = original
    if KJNODES_FEATURE_ID in gen.features:
        frames = add_vram_cleanup(builder, frames)
    dit, vae = add_model_loaders(builder, config)
    upscaled = add_upscaler(builder, frames, dit, vae, config)
    logger.info(
        f"SeedVR2 Video: Upscaling video frames to resolution {config.resolution} "
        f"(model={config.model}, batch_size={config.batch_size}, "
        f"temporal_overlap={config.temporal_overlap})"
    )

    redirected = builder.redirect_consumers(
        original,
        upscaled,
        VIDEO_CONSUMER_NODES,
        slot="images",
        exclude=[upscaled.node_id],
    )
    if not redirected:
        logger.warning(
            "SeedVR2 Video: Could not find save node to update - upscaling "
            "relies on later steps consuming the current output"
        )
    builder.set_current_output(upscaled)


_HANDLERS: dict[WorkflowMode, Callable[[GenerationPass], None]] = {
    WorkflowMode.STANDALONE_IMAGE_FILE: _generate_image_file,
    WorkflowMode.STANDALONE_VIDEO_FILE: _generate_video_file,
    WorkflowMode.IN_PIPELINE_IMAGE: _generate_in_pipeline_image,
    WorkflowMode.IN_PIPELINE_VIDEO: _generate_in_pipeline_video,
}


def generate_upscale_workflow(
    gen: GenerationPass,
    mode: WorkflowMode | None = None,
) -> WorkflowMode | None:
    """Append the SeedVR2 nodes for this pass.

    Args:
        gen: The generation pass to extend
        mode: Topology to build; selected from the parameters when None

    Returns:
        The mode that ran, or None when SeedVR2 is not enabled

    Raises:
        MissingFeatureError: the SeedVR2 nodes are not installed
        MediaFileNotFoundError: a standalone file does not exist
        InvalidDeviceError, MissingRequiredDeviceError: bad offload device
    """
    if mode is None:
        mode = select_mode(gen.params, gen.host)
    if mode is None:
        return None
    _HANDLERS[mode](gen)
    return mode
