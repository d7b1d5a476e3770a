"""Node emitters for the SeedVR2 and core engine nodes.

Node class names and input slot names are part of the engine's wire
contract and must match its node registry exactly.
"""

from __future__ import annotations

from ..config.presets import VAE_MODEL_ASSET
from ..config.resolver import ResolvedConfig
from ..graph.builder import GraphBuilder
from ..graph.schema import EdgeRef

FEATURE_ID = "seedvr2_upscaler"
KJNODES_FEATURE_ID = "kjnodes"
PACKAGE_NAME = "SeedVR2 Video Upscaler"
PACKAGE_URL = "https://github.com/numz/ComfyUI-SeedVR2_VideoUpscaler"

UPSCALER_NODE = "SeedVR2VideoUpscaler"
DIT_LOADER_NODE = "SeedVR2LoadDiTModel"
VAE_LOADER_NODE = "SeedVR2LoadVAEModel"
TORCH_COMPILE_NODE = "SeedVR2TorchCompileSettings"
VRAM_CLEANUP_NODE = "VRAM_Debug"
LOAD_IMAGE_NODE = "LoadImage"
SAVE_IMAGE_NODE = "SaveImage"
IMAGE_SCALE_NODE = "ImageScaleBy"
LOAD_VIDEO_NODE = "LoadVideo"
CREATE_VIDEO_NODE = "CreateVideo"
SAVE_VIDEO_NODE = "SaveVideo"

# Host nodes that consume generated video frames through their "images" input.
VIDEO_CONSUMER_NODES = ("SwarmSaveAnimationWS", "SwarmVideoBoomerang")

NODE_FEATURES: dict[str, str] = {
    UPSCALER_NODE: FEATURE_ID,
    DIT_LOADER_NODE: FEATURE_ID,
    VAE_LOADER_NODE: FEATURE_ID,
    TORCH_COMPILE_NODE: FEATURE_ID,
    VRAM_CLEANUP_NODE: KJNODES_FEATURE_ID,
}

IMAGE_FILENAME_PREFIX = "SeedVR2_upscaled"
VIDEO_FILENAME_PREFIX = "video/SeedVR2_upscaled"
DEFAULT_VIDEO_FORMAT = "h264-mp4"

LOADER_DEVICE = "cuda:0"
ATTENTION_MODE = "sdpa"
VAE_TILE_SIZE = 1024
VAE_TILE_OVERLAP = 128

# LoadVideo output slots
VIDEO_FRAMES_SLOT = 0
VIDEO_AUDIO_SLOT = 1
VIDEO_FPS_SLOT = 2


def add_vram_cleanup(builder: GraphBuilder, image: EdgeRef) -> EdgeRef:
    """Unload the generation models before SeedVR2 runs.

    The image passes through unchanged on output slot 1.
    """
    node_id = builder.append_node(
        VRAM_CLEANUP_NODE,
        {
            "empty_cache": True,
            "gc_collect": True,
            "unload_all_models": True,
            "image_pass": image,
        },
    )
    return EdgeRef(node_id, 1)


def add_model_loaders(builder: GraphBuilder, config: ResolvedConfig) -> tuple[EdgeRef, EdgeRef]:
    """Append the DiT and VAE loaders and return their model outputs."""
    dit_id = builder.append_node(
        DIT_LOADER_NODE,
        {
            "model": config.model,
            "device": LOADER_DEVICE,
            "blocks_to_swap": config.block_swap,
            "swap_io_components": config.block_swap > 0,
            "offload_device": config.dit_offload_device,
            "cache_model": config.cache_model,
            "attention_mode": ATTENTION_MODE,
        },
    )

    vae_inputs = {
        "model": VAE_MODEL_ASSET,
        "device": LOADER_DEVICE,
        "encode_tiled": config.tiled_vae,
        "decode_tiled": config.tiled_vae,
        "offload_device": config.vae_offload_device,
        "cache_model": config.cache_model,
    }
    if config.tiled_vae:
        vae_inputs.update(
            {
                "encode_tile_size": VAE_TILE_SIZE,
                "encode_tile_overlap": VAE_TILE_OVERLAP,
                "decode_tile_size": VAE_TILE_SIZE,
                "decode_tile_overlap": VAE_TILE_OVERLAP,
            }
        )
    vae_id = builder.append_node(VAE_LOADER_NODE, vae_inputs)
    return EdgeRef(dit_id, 0), EdgeRef(vae_id, 0)


def add_pre_downscale(builder: GraphBuilder, image: EdgeRef, factor: float) -> EdgeRef:
    node_id = builder.append_node(
        IMAGE_SCALE_NODE,
        {"image": image, "upscale_method": "lanczos", "scale_by": factor},
    )
    return EdgeRef(node_id, 0)


def add_upscaler(
    builder: GraphBuilder,
    image: EdgeRef,
    dit: EdgeRef,
    vae: EdgeRef,
    config: ResolvedConfig,
) -> EdgeRef:
    node_id = builder.append_node(
        UPSCALER_NODE,
        {
            "image": image,
            "dit": dit,
            "vae": vae,
            "seed": config.seed,
            "resolution": config.resolution,
            "max_resolution": config.max_resolution,
            "batch_size": config.batch_size,
            "uniform_batch_size": config.uniform_batch_size,
            "temporal_overlap": config.temporal_overlap,
            "prepend_frames": 0,
            "color_correction": config.color_correction,
            "input_noise_scale": 0.0,
            "latent_noise_scale": config.latent_noise_scale,
            "offload_device": "cpu",
            "enable_debug": False,
        },
    )
    return EdgeRef(node_id, 0)


def add_load_image(builder: GraphBuilder, path: str) -> EdgeRef:
    return EdgeRef(builder.append_node(LOAD_IMAGE_NODE, {"image": path}), 0)


def add_save_image(builder: GraphBuilder, images: EdgeRef) -> str:
    return builder.append_node(
        SAVE_IMAGE_NODE,
        {"images": images, "filename_prefix": IMAGE_FILENAME_PREFIX},
    )


def add_load_video(builder: GraphBuilder, path: str) -> str:
    return builder.append_node(LOAD_VIDEO_NODE, {"file": path})


def split_video_format(video_format: str | None) -> tuple[str, str]:
    """Map a host ``codec-container`` format onto SaveVideo's (container, codec).

    SaveVideo only accepts ``mp4``/``auto`` containers and ``h264``/``auto``
    codecs; anything else is replaced.
    """
    video_format = video_format or DEFAULT_VIDEO_FORMAT
    codec = "auto"
    if "-" in video_format:
        codec, container = video_format.split("-", 1)
    else:
        container = video_format
    if container not in ("mp4", "auto"):
        container = "mp4"
    if codec not in ("h264", "auto"):
        codec = "auto"
    return container, codec


def add_video_save(
    builder: GraphBuilder,
    frames: EdgeRef,
    load_video_id: str,
    video_format: str | None,
) -> str:
    """Recombine frames with the source audio/fps and save the video."""
    create_id = builder.append_node(
        CREATE_VIDEO_NODE,
        {
            "images": frames,
            "audio": EdgeRef(load_video_id, VIDEO_AUDIO_SLOT),
            "fps": EdgeRef(load_video_id, VIDEO_FPS_SLOT),
        },
    )
    container, codec = split_video_format(video_format)
    return builder.append_node(
        SAVE_VIDEO_NODE,
        {
            "video": EdgeRef(create_id, 0),
            "filename_prefix": VIDEO_FILENAME_PREFIX,
            "format": container,
            "codec": codec,
        },
    )
