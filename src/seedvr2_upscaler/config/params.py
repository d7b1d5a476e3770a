"""User-facing SeedVR2 parameters.

Every parameter is optional. A parameter is *present* only when the user
explicitly enabled it (it is in ``model_fields_set`` and not ``None``);
presence and absence resolve differently, e.g. an explicitly set block swap
overrides a preset while an absent one does not.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .presets import MODEL_CHOICES

GROUP_NAME = "SeedVR2 Upscaler"

ColorCorrection = Literal["none", "lab", "wavelet", "wavelet_adaptive", "hsv", "adain"]

COLOR_CORRECTION_CHOICES: tuple[str, ...] = (
    "none",
    "lab",
    "wavelet",
    "wavelet_adaptive",
    "hsv",
    "adain",
)


def ui_field_config(
    order: int,
    label: str,
    *,
    advanced: bool = False,
    toggleable: bool = False,
    hidden: bool = False,
    values: tuple[str, ...] | None = None,
    view_max: float | None = None,
) -> dict[str, Any]:
    """Build the ``json_schema_extra`` UI metadata for a parameter."""
    extra: dict[str, Any] = {
        "ui:group": GROUP_NAME,
        "ui:order": order,
        "ui:label": label,
        "ui:advanced": advanced,
        "ui:toggleable": toggleable,
        "ui:feature": "seedvr2_upscaler",
    }
    if hidden:
        extra["ui:hidden"] = True
    if values is not None:
        extra["ui:values"] = list(values)
    if view_max is not None:
        extra["ui:viewMax"] = view_max
    return extra


class UpscaleParams(BaseModel):
    """The SeedVR2 parameter group as supplied by the host UI."""

    model_config = ConfigDict(extra="forbid")

    model: str | None = Field(
        default=None,
        description="Which SeedVR2 model/preset to use. Auto detects VRAM and selects a configuration.",
        json_schema_extra=ui_field_config(0, "SeedVR2 Model", values=MODEL_CHOICES),
    )
    upscale_by: float | None = Field(
        default=None,
        ge=1.0,
        le=16.0,
        description="How much to upscale the decoded image by. 1.0 keeps the size (detail pass).",
        json_schema_extra=ui_field_config(1, "SeedVR2 Upscale By", view_max=4.0),
    )
    block_swap: int | None = Field(
        default=None,
        ge=0,
        description="Transformer blocks swapped to the offload device. Capped at 32 for 3B and 36 for 7B models.",
        json_schema_extra=ui_field_config(
            2, "SeedVR2 Block Swap", advanced=True, toggleable=True
        ),
    )
    color_correction: ColorCorrection | None = Field(
        default=None,
        description="Color correction method applied to match the original image.",
        json_schema_extra=ui_field_config(
            3,
            "SeedVR2 Color Correction",
            advanced=True,
            toggleable=True,
            values=COLOR_CORRECTION_CHOICES,
        ),
    )
    two_step_mode: bool | None = Field(
        default=None,
        description="Downscale the image first, then upscale with SeedVR2.",
        json_schema_extra=ui_field_config(4, "SeedVR2 2-Step Mode", advanced=True),
    )
    pre_downscale: float | None = Field(
        default=None,
        ge=0.25,
        le=0.9,
        description="Downscale factor applied before upscaling when 2-step mode is enabled.",
        json_schema_extra=ui_field_config(
            5, "SeedVR2 Pre-Downscale", advanced=True, toggleable=True
        ),
    )
    tiled_vae: bool | None = Field(
        default=None,
        description="Tiled VAE encode/decode. Reduces VRAM usage but may be slower.",
        json_schema_extra=ui_field_config(6, "SeedVR2 Tiled VAE", advanced=True),
    )
    vae_offload_device: str | None = Field(
        default=None,
        description="Device the VAE is offloaded to. Chosen automatically when not set.",
        json_schema_extra=ui_field_config(
            7, "SeedVR2 VAE Offload Device", advanced=True, toggleable=True
        ),
    )
    dit_offload_device: str | None = Field(
        default=None,
        description="Device swapped DiT blocks are offloaded to. Chosen automatically when not set.",
        json_schema_extra=ui_field_config(
            8, "SeedVR2 DiT Offload Device", advanced=True, toggleable=True
        ),
    )
    latent_noise_scale: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Noise added in latent space during upscaling. 0 = no noise.",
        json_schema_extra=ui_field_config(
            9, "SeedVR2 Latent Noise", advanced=True, toggleable=True
        ),
    )
    cache_model: bool | None = Field(
        default=None,
        description="Keep SeedVR2 models loaded between generations.",
        json_schema_extra=ui_field_config(10, "SeedVR2 Cache Model", advanced=True),
    )
    video_batch_size: int | None = Field(
        default=None,
        ge=1,
        le=64,
        description="Frames processed per batch when upscaling video. Enables video upscaling.",
        json_schema_extra=ui_field_config(
            11, "SeedVR2 Video Batch Size", advanced=True, toggleable=True
        ),
    )
    temporal_overlap: int | None = Field(
        default=None,
        ge=0,
        le=16,
        description="Overlapping frames between video batches.",
        json_schema_extra=ui_field_config(
            12, "SeedVR2 Temporal Overlap", advanced=True, toggleable=True
        ),
    )
    uniform_batch_size: bool | None = Field(
        default=None,
        description="Use uniform batch sizes for all video chunks.",
        json_schema_extra=ui_field_config(13, "SeedVR2 Uniform Batch Size", advanced=True),
    )
    resolution: int | None = Field(
        default=None,
        ge=16,
        description="Explicit shortest-edge target resolution. Replaces the computed value.",
        json_schema_extra=ui_field_config(
            14, "SeedVR2 Resolution", advanced=True, toggleable=True
        ),
    )
    video_file: str | None = Field(
        default=None,
        description="Internal: existing video file to upscale.",
        json_schema_extra=ui_field_config(50, "SeedVR2 Video File", hidden=True),
    )
    image_file: str | None = Field(
        default=None,
        description="Internal: existing image file to upscale.",
        json_schema_extra=ui_field_config(51, "SeedVR2 Image File", hidden=True),
    )

    def has(self, name: str) -> bool:
        """Return True if *name* was explicitly set to a non-None value."""
        if name not in type(self).model_fields:
            raise KeyError(f"Unknown SeedVR2 parameter: {name!r}")
        return name in self.model_fields_set and getattr(self, name) is not None

    def try_get(self, name: str) -> Any | None:
        """Return the value of *name* when present, otherwise None."""
        if not self.has(name):
            return None
        return getattr(self, name)

    def get(self, name: str, default: Any) -> Any:
        value = self.try_get(name)
        return default if value is None else value

    def has_text(self, name: str) -> bool:
        """Present and not an empty/whitespace string."""
        value = self.try_get(name)
        return isinstance(value, str) and value.strip() != ""

    @classmethod
    def ui_schema(cls) -> list[dict[str, Any]]:
        """Return parameter metadata for the UI, ordered by ``ui:order``."""
        properties = cls.model_json_schema()["properties"]
        entries = []
        for name, prop in properties.items():
            entry = {"name": name, **prop}
            entries.append(entry)
        return sorted(entries, key=lambda e: e.get("ui:order", 0))
