"""Shared pytest fixtures."""

import pytest
from PIL import Image

from seedvr2_upscaler.config.resolver import ResolvedConfig
from seedvr2_upscaler.hardware.probe import GPUInfo, build_device_catalog


@pytest.fixture
def cpu_catalog():
    """Catalog of a machine without accelerators (not macOS)."""
    return build_device_catalog([], has_mps=False)


@pytest.fixture
def make_gpu_catalog():
    """Factory building a catalog with one NVIDIA GPU per VRAM size in GiB."""

    def _make(*vram_gib):
        gpus = [
            GPUInfo(index=i, name=f"NVIDIA Test GPU {i}", total_memory_mb=int(v * 1024))
            for i, v in enumerate(vram_gib)
        ]
        return build_device_catalog(gpus, has_mps=False)

    return _make


@pytest.fixture
def source_image(tmp_path):
    """A 512x768 PNG on disk."""
    path = tmp_path / "source.png"
    Image.new("RGB", (512, 768), color=(40, 80, 120)).save(path)
    return path


@pytest.fixture
def source_video(tmp_path):
    """A placeholder video file; only its existence matters."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path


@pytest.fixture
def resolved_config():
    """Factory for a ResolvedConfig with still-image defaults."""

    def _make(**overrides):
        values = {
            "variant": "seedvr2-3b-fp8",
            "model": "seedvr2_ema_3b_fp8_e4m3fn.safetensors",
            "block_swap": 12,
            "tiled_vae": False,
            "vae_offload_device": "none",
            "dit_offload_device": "cpu",
            "upscale_by": 2.0,
            "resolution": 1024,
            "max_resolution": 1024,
            "batch_size": 1,
            "temporal_overlap": 0,
            "uniform_batch_size": False,
            "color_correction": "lab",
            "latent_noise_scale": 0.0,
            "two_step_mode": False,
            "pre_downscale": 0.5,
            "cache_model": False,
            "seed": 42,
            "preset_sourced": True,
        }
        values.update(overrides)
        return ResolvedConfig(**values)

    return _make
