"""Resolve a consistent SeedVR2 configuration from the user's selection.

The selection (auto, named preset or manual model) decides where the model
variant, block swap and tiled VAE values come from; explicitly set
parameters then win over preset values. Unknown presets and variants fall
back to defaults with a diagnostic, and block swap is clamped to the model
family's ceiling. Only device validation can make resolution fail.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from ..hardware.devices import resolve_offload_device
from ..hardware.probe import DeviceCatalog, probe_devices
from .context import WorkflowContext
from .params import UpscaleParams
from .presets import (
    DEFAULT_CATALOG,
    ModelCatalog,
    PresetChoice,
    SelectionKey,
    SelectionKind,
    max_blocks_for,
)

logger = logging.getLogger(__name__)

DEFAULT_VIDEO_BATCH_SIZE = 33
DEFAULT_TEMPORAL_OVERLAP = 3
DEFAULT_PRE_DOWNSCALE = 0.5
LOW_VRAM_GIB = 8.0


class ResolvedConfig(BaseModel):
    """Fully resolved settings for one SeedVR2 run."""

    model_config = ConfigDict(frozen=True)

    variant: str
    model: str
    block_swap: int
    tiled_vae: bool
    vae_offload_device: str
    dit_offload_device: str
    upscale_by: float
    resolution: int
    max_resolution: int
    batch_size: int
    temporal_overlap: int
    uniform_batch_size: bool
    color_correction: str
    latent_noise_scale: float
    two_step_mode: bool
    pre_downscale: float
    cache_model: bool
    seed: int
    preset_sourced: bool
    diagnostics: tuple[str, ...] = ()

    def summary(self) -> str:
        mode_info = (
            f" [2-Step: downscale {self.pre_downscale}x first]"
            if self.two_step_mode
            else ""
        )
        return (
            f"model={self.model}, upscale={self.upscale_by:g}, "
            f"resolution={self.resolution}, blockSwap={self.block_swap}, "
            f"tiledVAE={self.tiled_vae}{mode_info}"
        )


def select_vram_tier(
    catalog: DeviceCatalog,
    models: ModelCatalog = DEFAULT_CATALOG,
    diagnostics: list[str] | None = None,
) -> PresetChoice:
    """Pick a (variant, block swap, tiled VAE) triple from the largest GPU."""
    best = catalog.largest_accelerator()
    if best is None:
        message = (
            "SeedVR2 Auto: Could not detect GPU VRAM, defaulting to "
            f"{models.no_gpu_default.variant} with block swap "
            f"{models.no_gpu_default.block_swap}"
        )
        logger.warning(message)
        if diagnostics is not None:
            diagnostics.append(message)
        return models.no_gpu_default

    vram_gib = best.total_memory_gib
    logger.info(
        f"SeedVR2 Auto: Detected GPU '{best.name or best.identifier}' "
        f"with {vram_gib:.1f} GiB VRAM"
    )
    choice = models.tier_for(vram_gib)
    if vram_gib < LOW_VRAM_GIB:
        message = (
            f"SeedVR2 Auto: Low VRAM ({vram_gib:.1f} GiB) - using "
            f"{choice.variant} with block swap {choice.block_swap}"
        )
        logger.warning(message)
        if diagnostics is not None:
            diagnostics.append(message)
    else:
        logger.info(
            f"SeedVR2 Auto: Selected {choice.variant} with block swap "
            f"{choice.block_swap}, tiledVAE={choice.tiled_vae}"
        )
    return choice


def compute_resolution(context: WorkflowContext, upscale_by: float) -> int:
    """Shortest-edge target resolution for the context's source size."""
    if not context.has_dimensions:
        return int(context.defaults.unknown_edge * upscale_by)
    base_width = round(context.width * context.upstream_scale)
    base_height = round(context.height * context.upstream_scale)
    target_width = round(base_width * upscale_by)
    target_height = round(base_height * upscale_by)
    return min(target_width, target_height)


def resolve_config(
    selection: SelectionKey,
    params: UpscaleParams,
    context: WorkflowContext,
    catalog: DeviceCatalog | None = None,
    models: ModelCatalog = DEFAULT_CATALOG,
    probe: Callable[[], DeviceCatalog] = probe_devices,
) -> ResolvedConfig:
    """Resolve the configuration for one pass.

    Args:
        selection: Auto, named preset or manual model variant
        params: Parameters from the UI; presence matters
        context: Workflow mode, source size and seed
        catalog: Device catalog for this pass; probed when not given
        models: Variant, preset and VRAM tier tables
        probe: Device probe used when ``catalog`` is None

    Raises:
        InvalidDeviceError: an offload device override is not available
        MissingRequiredDeviceError: Cache Model is set without a device
    """
    diagnostics: list[str] = []
    defaults = context.defaults
    if catalog is None:
        catalog = probe()

    preset_sourced = False
    if selection.kind is SelectionKind.AUTO:
        variant, block_swap, tiled_vae = select_vram_tier(catalog, models, diagnostics)
        preset_sourced = True
    elif selection.kind is SelectionKind.PRESET and models.preset(selection.value or ""):
        variant, block_swap, tiled_vae = models.preset(selection.value)
        preset_sourced = True
        logger.info(
            f"SeedVR2: Using preset '{selection.value}' with model={variant}, "
            f"blockSwap={block_swap}, tiledVAE={tiled_vae}"
        )
    else:
        variant = selection.value or ""
        if selection.kind is SelectionKind.PRESET:
            message = f"SeedVR2: Unknown preset '{variant}', treating it as a model key"
            logger.warning(message)
            diagnostics.append(message)
        block_swap = params.get("block_swap", defaults.manual_block_swap)
        tiled_vae = params.get("tiled_vae", defaults.manual_tiled_vae)

    if preset_sourced:
        if params.has("block_swap"):
            block_swap = params.block_swap
        if params.has("tiled_vae"):
            tiled_vae = params.tiled_vae

    model = models.asset_for(variant)
    if model is None:
        model = defaults.fallback_asset
        message = f"SeedVR2: Unknown model key '{variant}', falling back to {model}"
        logger.warning(message)
        diagnostics.append(message)

    upscale_by = float(params.get("upscale_by", defaults.upscale_by))
    if params.has("resolution"):
        resolution = params.resolution
    else:
        resolution = compute_resolution(context, upscale_by)

    max_blocks = max_blocks_for(variant)
    if block_swap > max_blocks:
        family = "7B" if max_blocks > 32 else "3B"
        message = (
            f"SeedVR2: Block swap {block_swap} exceeds max {max_blocks} "
            f"for {family} model, capping"
        )
        logger.warning(message)
        diagnostics.append(message)
        block_swap = max_blocks

    multi_frame = context.mode.is_multi_frame
    if multi_frame:
        batch_size = params.get("video_batch_size", DEFAULT_VIDEO_BATCH_SIZE)
        temporal_overlap = params.get("temporal_overlap", DEFAULT_TEMPORAL_OVERLAP)
        uniform_batch_size = params.get("uniform_batch_size", True)
        max_resolution = 0
        two_step_mode = False
    else:
        batch_size = 1
        temporal_overlap = 0
        uniform_batch_size = False
        max_resolution = resolution
        two_step_mode = params.get("two_step_mode", False)

    cache_model = params.get("cache_model", False)
    vae_offload_device = resolve_offload_device(
        catalog,
        params.try_get("vae_offload_device"),
        cache_model=cache_model,
        offload_needed=tiled_vae,
        setting="SeedVR2 VAE Offload Device",
        dependent_setting="SeedVR2 Cache Model",
    )
    dit_offload_device = resolve_offload_device(
        catalog,
        params.try_get("dit_offload_device"),
        cache_model=cache_model,
        offload_needed=block_swap > 0,
        setting="SeedVR2 DiT Offload Device",
        dependent_setting="SeedVR2 Cache Model",
    )

    config = ResolvedConfig(
        variant=variant,
        model=model,
        block_swap=block_swap,
        tiled_vae=tiled_vae,
        vae_offload_device=vae_offload_device,
        dit_offload_device=dit_offload_device,
        upscale_by=upscale_by,
        resolution=resolution,
        max_resolution=max_resolution,
        batch_size=batch_size,
        temporal_overlap=temporal_overlap,
        uniform_batch_size=uniform_batch_size,
        color_correction=params.get("color_correction", "none"),
        latent_noise_scale=params.get("latent_noise_scale", 0.0),
        two_step_mode=two_step_mode,
        pre_downscale=params.get("pre_downscale", DEFAULT_PRE_DOWNSCALE),
        cache_model=cache_model,
        seed=context.seed,
        preset_sourced=preset_sourced,
        diagnostics=tuple(diagnostics),
    )
    logger.info(f"SeedVR2: Resolved configuration ({config.summary()})")
    return config
