"""Static model, preset and VRAM tier tables.

The tables are read-only and wrapped in a :class:`ModelCatalog` so the
resolver can be handed alternate tables in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple

from .._utils import strip_choice_label


class PresetChoice(NamedTuple):
    """Model variant, block swap count and tiled VAE flag."""

    variant: str
    block_swap: int
    tiled_vae: bool


MODEL_VARIANTS: Mapping[str, str] = MappingProxyType(
    {
        "seedvr2-3b-q4": "seedvr2_ema_3b-Q4_K_M.gguf",
        "seedvr2-3b-q8": "seedvr2_ema_3b-Q8_0.gguf",
        "seedvr2-3b-fp8": "seedvr2_ema_3b_fp8_e4m3fn.safetensors",
        "seedvr2-3b-fp16": "seedvr2_ema_3b_fp16.safetensors",
        "seedvr2-7b-q4": "seedvr2_ema_7b-Q4_K_M.gguf",
        "seedvr2-7b-fp8": "seedvr2_ema_7b_fp8_e4m3fn_mixed_block35_fp16.safetensors",
        "seedvr2-7b-fp16": "seedvr2_ema_7b_fp16.safetensors",
        "seedvr2-7b-sharp-q4": "seedvr2_ema_7b_sharp-Q4_K_M.gguf",
        "seedvr2-7b-sharp-fp8": "seedvr2_ema_7b_sharp_fp8_e4m3fn_mixed_block35_fp16.safetensors",
        "seedvr2-7b-sharp-fp16": "seedvr2_ema_7b_sharp_fp16.safetensors",
    }
)

PRESETS: Mapping[str, PresetChoice] = MappingProxyType(
    {
        "fast": PresetChoice("seedvr2-3b-q4", 20, True),
        "balanced": PresetChoice("seedvr2-3b-fp8", 12, False),
        "quality": PresetChoice("seedvr2-7b-fp8", 16, True),
        "max": PresetChoice("seedvr2-7b-sharp-fp16", 0, False),
    }
)

# Descending VRAM thresholds in GiB. The last entry catches everything below 8.
VRAM_TIERS: tuple[tuple[float, PresetChoice], ...] = (
    (24.0, PresetChoice("seedvr2-7b-sharp-fp16", 0, False)),
    (20.0, PresetChoice("seedvr2-7b-fp8", 8, False)),
    (16.0, PresetChoice("seedvr2-7b-q4", 16, True)),
    (12.0, PresetChoice("seedvr2-3b-fp8", 12, True)),
    (8.0, PresetChoice("seedvr2-3b-q4", 20, True)),
    (0.0, PresetChoice("seedvr2-3b-q4", 28, True)),
)

# Used when no GPU can be detected.
CONSERVATIVE_DEFAULT = PresetChoice("seedvr2-3b-fp8", 16, True)

DEFAULT_MODEL_ASSET = "seedvr2_ema_3b_fp8_e4m3fn.safetensors"
VAE_MODEL_ASSET = "ema_vae_fp16.safetensors"

SMALL_FAMILY_MAX_BLOCKS = 32
LARGE_FAMILY_MAX_BLOCKS = 36
LARGE_FAMILY_MARKER = "-7b-"

AUTO_ID = "seedvr2-auto"
PRESET_PREFIX = "seedvr2-preset-"

# Selection values offered by the UI, in ``value///label`` form.
MODEL_CHOICES: tuple[str, ...] = (
    "seedvr2-auto///Auto (VRAM-based)",
    "seedvr2-preset-fast///Fast (3B Q4)",
    "seedvr2-preset-balanced///Balanced (3B FP8)",
    "seedvr2-preset-quality///Quality (7B FP8)",
    "seedvr2-preset-max///Max Quality (7B Sharp FP16)",
)


def max_blocks_for(variant: str) -> int:
    """Return the block swap ceiling for a variant's model family."""
    if LARGE_FAMILY_MARKER in variant:
        return LARGE_FAMILY_MAX_BLOCKS
    return SMALL_FAMILY_MAX_BLOCKS


@dataclass(frozen=True)
class ModelCatalog:
    """Read-only lookup over the variant, preset and tier tables."""

    variants: Mapping[str, str] = field(default_factory=lambda: MODEL_VARIANTS)
    presets: Mapping[str, PresetChoice] = field(default_factory=lambda: PRESETS)
    vram_tiers: tuple[tuple[float, PresetChoice], ...] = VRAM_TIERS
    no_gpu_default: PresetChoice = CONSERVATIVE_DEFAULT

    def asset_for(self, variant: str) -> str | None:
        return self.variants.get(variant)

    def preset(self, preset_id: str) -> PresetChoice | None:
        return self.presets.get(preset_id)

    def tier_for(self, vram_gib: float) -> PresetChoice:
        """Map a VRAM size to the first tier whose threshold it meets."""
        for threshold, choice in self.vram_tiers:
            if vram_gib >= threshold:
                return choice
        return self.vram_tiers[-1][1]


DEFAULT_CATALOG = ModelCatalog()


class SelectionKind(str, Enum):
    AUTO = "auto"
    PRESET = "preset"
    MANUAL = "manual"


@dataclass(frozen=True)
class SelectionKey:
    """Which source of truth supplies the model, block swap and tiling."""

    kind: SelectionKind
    value: str | None = None

    @classmethod
    def auto(cls) -> "SelectionKey":
        return cls(SelectionKind.AUTO)

    @classmethod
    def preset(cls, preset_id: str) -> "SelectionKey":
        return cls(SelectionKind.PRESET, preset_id)

    @classmethod
    def manual(cls, variant: str) -> "SelectionKey":
        return cls(SelectionKind.MANUAL, variant)

    @classmethod
    def parse(cls, raw: str, catalog: ModelCatalog = DEFAULT_CATALOG) -> "SelectionKey":
        """Parse a UI model choice such as ``seedvr2-preset-fast///Fast (3B Q4)``."""
        key = strip_choice_label(raw)
        if key in (AUTO_ID, "auto"):
            return cls.auto()
        if key.startswith(PRESET_PREFIX):
            return cls.preset(key[len(PRESET_PREFIX) :])
        if catalog.preset(key) is not None:
            return cls.preset(key)
        return cls.manual(key)

    def is_known(self, catalog: ModelCatalog = DEFAULT_CATALOG) -> bool:
        if self.kind is SelectionKind.AUTO:
            return True
        if self.kind is SelectionKind.PRESET:
            return catalog.preset(self.value or "") is not None
        return catalog.asset_for(self.value or "") is not None
