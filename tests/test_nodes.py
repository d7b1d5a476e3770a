"""Tests for the SeedVR2 and engine node emitters."""

import pytest

from seedvr2_upscaler.graph.builder import GraphBuilder
from seedvr2_upscaler.graph.schema import EdgeRef
from seedvr2_upscaler.workflow.nodes import (
    NODE_FEATURES,
    add_load_video,
    add_model_loaders,
    add_pre_downscale,
    add_upscaler,
    add_video_save,
    add_vram_cleanup,
    split_video_format,
)


@pytest.fixture
def builder():
    builder = GraphBuilder()
    builder.append_node("VAEDecode", node_id="1")
    return builder


class TestModelLoaders:
    def test_dit_loader_inputs(self, builder, resolved_config):
        dit, _ = add_model_loaders(builder, resolved_config(block_swap=12, dit_offload_device="cpu"))
        inputs = builder.get_node(dit.node_id).inputs

        assert builder.get_node(dit.node_id).class_type == "SeedVR2LoadDiTModel"
        assert inputs["model"] == "seedvr2_ema_3b_fp8_e4m3fn.safetensors"
        assert inputs["blocks_to_swap"] == 12
        assert inputs["swap_io_components"] is True
        assert inputs["offload_device"] == "cpu"
        assert inputs["attention_mode"] == "sdpa"

    def test_no_swap_disables_io_swap(self, builder, resolved_config):
        dit, _ = add_model_loaders(builder, resolved_config(block_swap=0))
        assert builder.get_node(dit.node_id).inputs["swap_io_components"] is False

    def test_tiled_vae_adds_tile_settings(self, builder, resolved_config):
        _, vae = add_model_loaders(builder, resolved_config(tiled_vae=True))
        inputs = builder.get_node(vae.node_id).inputs

        assert inputs["model"] == "ema_vae_fp16.safetensors"
        assert inputs["encode_tiled"] is True
        assert inputs["decode_tiled"] is True
        assert inputs["encode_tile_size"] == 1024
        assert inputs["decode_tile_overlap"] == 128

    def test_untiled_vae_has_no_tile_settings(self, builder, resolved_config):
        _, vae = add_model_loaders(builder, resolved_config(tiled_vae=False))
        inputs = builder.get_node(vae.node_id).inputs
        assert "encode_tile_size" not in inputs
        assert inputs["decode_tiled"] is False


class TestUpscaler:
    def test_inputs_follow_config(self, builder, resolved_config):
        config = resolved_config(resolution=1080, max_resolution=0, batch_size=33, seed=9)
        dit, vae = add_model_loaders(builder, config)
        out = add_upscaler(builder, EdgeRef("1", 0), dit, vae, config)
        inputs = builder.get_node(out.node_id).inputs

        assert out.slot == 0
        assert inputs["image"] == EdgeRef("1", 0)
        assert inputs["dit"] == dit
        assert inputs["vae"] == vae
        assert inputs["resolution"] == 1080
        assert inputs["max_resolution"] == 0
        assert inputs["batch_size"] == 33
        assert inputs["seed"] == 9
        assert inputs["color_correction"] == "lab"

    def test_pre_downscale(self, builder):
        out = add_pre_downscale(builder, EdgeRef("1", 0), 0.5)
        node = builder.get_node(out.node_id)
        assert node.class_type == "ImageScaleBy"
        assert node.inputs == {"image": EdgeRef("1", 0), "upscale_method": "lanczos", "scale_by": 0.5}


class TestVramCleanup:
    def test_passes_image_through_slot_one(self, builder):
        out = add_vram_cleanup(builder, EdgeRef("1", 0))
        node = builder.get_node(out.node_id)
        assert out.slot == 1
        assert node.class_type == "VRAM_Debug"
        assert node.inputs["image_pass"] == EdgeRef("1", 0)
        assert node.inputs["unload_all_models"] is True


class TestVideoSave:
    @pytest.mark.parametrize(
        "video_format,expected",
        [
            (None, ("mp4", "h264")),
            ("h264-mp4", ("mp4", "h264")),
            ("auto-auto", ("auto", "auto")),
            ("vp9-webm", ("mp4", "auto")),
            ("gif", ("mp4", "auto")),
            ("mp4", ("mp4", "auto")),
        ],
    )
    def test_split_video_format(self, video_format, expected):
        assert split_video_format(video_format) == expected

    def test_recombines_audio_and_fps(self, builder):
        load = add_load_video(builder, "/tmp/clip.mp4")
        save = add_video_save(builder, EdgeRef(load, 0), load, "h264-mp4")

        save_node = builder.get_node(save)
        create = builder.get_node(save_node.inputs["video"].node_id)
        assert create.class_type == "CreateVideo"
        assert create.inputs["audio"] == EdgeRef(load, 1)
        assert create.inputs["fps"] == EdgeRef(load, 2)
        assert save_node.inputs["format"] == "mp4"
        assert save_node.inputs["filename_prefix"] == "video/SeedVR2_upscaled"


def test_node_features():
    assert NODE_FEATURES["SeedVR2VideoUpscaler"] == "seedvr2_upscaler"
    assert NODE_FEATURES["VRAM_Debug"] == "kjnodes"
