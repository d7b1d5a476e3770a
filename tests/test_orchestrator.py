"""Tests for workflow mode selection and graph assembly."""

import logging
from unittest.mock import MagicMock

import pytest

from seedvr2_upscaler.config.context import WorkflowMode
from seedvr2_upscaler.config.params import UpscaleParams
from seedvr2_upscaler.config.presets import SelectionKey
from seedvr2_upscaler.errors import MediaFileNotFoundError, MissingFeatureError
from seedvr2_upscaler.graph.builder import GraphBuilder
from seedvr2_upscaler.graph.schema import EdgeRef
from seedvr2_upscaler.hardware.probe import build_device_catalog
from seedvr2_upscaler.workflow.modes import HostContext, select_mode
from seedvr2_upscaler.workflow.orchestrator import (
    GenerationPass,
    generate_upscale_workflow,
    standalone_selection,
)

ALL_FEATURES = frozenset({"seedvr2_upscaler", "kjnodes"})
SEEDVR2_ONLY = frozenset({"seedvr2_upscaler"})


def cpu_probe():
    return build_device_catalog([], has_mps=False)


def make_pass(params, builder=None, features=ALL_FEATURES, **host):
    return GenerationPass(
        builder=builder or GraphBuilder(),
        params=params,
        features=features,
        host=HostContext(**host),
        probe=cpu_probe,
    )


def class_types(builder):
    return [node.class_type for node in builder.nodes.values()]


def find_node(builder, class_type):
    matches = [(nid, n) for nid, n in builder.nodes.items() if n.class_type == class_type]
    assert len(matches) == 1, class_type
    return matches[0]


class TestSelectMode:
    """Mode selection priority."""

    @pytest.mark.parametrize(
        "params,host,expected",
        [
            ({}, {}, None),
            ({"upscale_by": 2.0}, {}, None),
            ({"model": "seedvr2-auto"}, {}, WorkflowMode.IN_PIPELINE_IMAGE),
            ({"model": "seedvr2-auto", "video_batch_size": 8}, {}, WorkflowMode.IN_PIPELINE_VIDEO),
            ({"model": "seedvr2-auto"}, {"video_model_active": True}, WorkflowMode.IN_PIPELINE_VIDEO),
            ({"video_file": "/v.mp4"}, {}, WorkflowMode.STANDALONE_VIDEO_FILE),
            ({"image_file": "/i.png", "video_file": "/v.mp4"}, {}, WorkflowMode.STANDALONE_IMAGE_FILE),
            ({"image_file": "  ", "model": "seedvr2-auto"}, {}, WorkflowMode.IN_PIPELINE_IMAGE),
        ],
    )
    def test_priority(self, params, host, expected):
        assert select_mode(UpscaleParams(**params), HostContext(**host)) is expected

    def test_not_enabled_emits_nothing(self):
        gen = make_pass(UpscaleParams(upscale_by=2.0))
        assert generate_upscale_workflow(gen) is None
        assert len(gen.builder) == 0

    @pytest.mark.parametrize("mode", [WorkflowMode.IN_PIPELINE_IMAGE, WorkflowMode.IN_PIPELINE_VIDEO])
    def test_forced_in_pipeline_mode_without_model_emits_nothing(self, mode):
        builder = pipeline_builder("SwarmSaveAnimationWS")
        gen = make_pass(UpscaleParams(upscale_by=2.0), builder=builder)

        assert generate_upscale_workflow(gen, mode) is mode
        assert class_types(builder) == ["VAEDecode", "SwarmSaveAnimationWS"]
        assert builder.current_output == EdgeRef("10", 0)


class TestStandaloneSelection:
    @pytest.mark.parametrize(
        "model,expected",
        [
            (None, SelectionKey.preset("balanced")),
            ("", SelectionKey.preset("balanced")),
            ("fast", SelectionKey.preset("balanced")),
            ("seedvr2-auto///Auto", SelectionKey.auto()),
            ("seedvr2-preset-max", SelectionKey.preset("max")),
            ("seedvr2-7b-fp8", SelectionKey.manual("seedvr2-7b-fp8")),
            ("seedvr2-9b", SelectionKey.preset("balanced")),
            ("seedvr2-preset-ultra", SelectionKey.preset("balanced")),
        ],
    )
    def test_defaults_to_balanced(self, model, expected):
        params = UpscaleParams() if model is None else UpscaleParams(model=model)
        assert standalone_selection(params) == expected


class TestStandaloneImage:
    """Standalone image file topology."""

    def test_balanced_image_end_to_end(self, source_image):
        params = UpscaleParams(
            image_file=str(source_image),
            model="seedvr2-preset-balanced",
            upscale_by=2.0,
        )
        gen = make_pass(params)

        mode = generate_upscale_workflow(gen)

        builder = gen.builder
        assert mode is WorkflowMode.STANDALONE_IMAGE_FILE
        assert class_types(builder) == [
            "LoadImage",
            "SeedVR2LoadDiTModel",
            "SeedVR2LoadVAEModel",
            "SeedVR2VideoUpscaler",
            "SaveImage",
        ]
        load_id, load = find_node(builder, "LoadImage")
        upscaler_id, upscaler = find_node(builder, "SeedVR2VideoUpscaler")
        _, dit = find_node(builder, "SeedVR2LoadDiTModel")
        _, vae = find_node(builder, "SeedVR2LoadVAEModel")
        _, save = find_node(builder, "SaveImage")

        assert load.inputs["image"] == str(source_image.resolve())
        assert upscaler.inputs["image"] == EdgeRef(load_id, 0)
        assert upscaler.inputs["resolution"] == 1024
        assert upscaler.inputs["max_resolution"] == 1024
        assert upscaler.inputs["batch_size"] == 1
        assert dit.inputs["model"] == "seedvr2_ema_3b_fp8_e4m3fn.safetensors"
        assert dit.inputs["blocks_to_swap"] == 12
        assert dit.inputs["offload_device"] == "cpu"
        assert vae.inputs["encode_tiled"] is False
        assert vae.inputs["offload_device"] == "none"
        assert save.inputs["images"] == EdgeRef(upscaler_id, 0)
        assert builder.current_output == EdgeRef(upscaler_id, 0)
        assert builder.is_complete

    def test_two_step_mode_downscales_first(self, source_image):
        params = UpscaleParams(image_file=str(source_image), two_step_mode=True, pre_downscale=0.75)
        gen = make_pass(params)

        generate_upscale_workflow(gen)

        assert class_types(gen.builder) == [
            "LoadImage",
            "SeedVR2LoadDiTModel",
            "SeedVR2LoadVAEModel",
            "ImageScaleBy",
            "SeedVR2VideoUpscaler",
            "SaveImage",
        ]
        scale_id, scale = find_node(gen.builder, "ImageScaleBy")
        _, upscaler = find_node(gen.builder, "SeedVR2VideoUpscaler")
        assert scale.inputs["scale_by"] == 0.75
        assert upscaler.inputs["image"] == EdgeRef(scale_id, 0)

    def test_default_upscale_for_image_file(self, source_image):
        gen = make_pass(UpscaleParams(image_file=str(source_image)))
        generate_upscale_workflow(gen)
        _, upscaler = find_node(gen.builder, "SeedVR2VideoUpscaler")
        assert upscaler.inputs["resolution"] == 768

    def test_unreadable_image_uses_fallback_resolution(self, tmp_path):
        bogus = tmp_path / "broken.png"
        bogus.write_text("nope")
        gen = make_pass(UpscaleParams(image_file=str(bogus), upscale_by=2.0))

        generate_upscale_workflow(gen)

        _, upscaler = find_node(gen.builder, "SeedVR2VideoUpscaler")
        assert upscaler.inputs["resolution"] == 2048

    def test_missing_feature_emits_nothing(self, source_image):
        gen = make_pass(UpscaleParams(image_file=str(source_image)), features=frozenset())

        with pytest.raises(MissingFeatureError) as exc_info:
            generate_upscale_workflow(gen)

        assert len(gen.builder) == 0
        assert "SeedVR2 Video Upscaler" in str(exc_info.value)
        assert "https://github.com/numz/ComfyUI-SeedVR2_VideoUpscaler" in str(exc_info.value)

    def test_missing_file_emits_nothing(self, tmp_path):
        gen = make_pass(UpscaleParams(image_file=str(tmp_path / "nope.png")))
        with pytest.raises(MediaFileNotFoundError):
            generate_upscale_workflow(gen)
        assert len(gen.builder) == 0


class TestStandaloneVideo:
    """Standalone video file topology."""

    def test_video_workflow(self, source_video):
        gen = make_pass(UpscaleParams(video_file=str(source_video)), seed=5)

        mode = generate_upscale_workflow(gen)

        builder = gen.builder
        assert mode is WorkflowMode.STANDALONE_VIDEO_FILE
        assert class_types(builder) == [
            "LoadVideo",
            "SeedVR2LoadDiTModel",
            "SeedVR2LoadVAEModel",
            "SeedVR2VideoUpscaler",
            "CreateVideo",
            "SaveVideo",
        ]
        load_id, load = find_node(builder, "LoadVideo")
        upscaler_id, upscaler = find_node(builder, "SeedVR2VideoUpscaler")
        create_id, create = find_node(builder, "CreateVideo")
        _, save = find_node(builder, "SaveVideo")

        assert load.inputs["file"] == str(source_video.resolve())
        assert upscaler.inputs["image"] == EdgeRef(load_id, 0)
        assert upscaler.inputs["resolution"] == 1080
        assert upscaler.inputs["max_resolution"] == 0
        assert upscaler.inputs["batch_size"] == 33
        assert upscaler.inputs["temporal_overlap"] == 3
        assert upscaler.inputs["uniform_batch_size"] is True
        assert upscaler.inputs["seed"] == 5
        assert create.inputs["images"] == EdgeRef(upscaler_id, 0)
        assert save.inputs["video"] == EdgeRef(create_id, 0)
        assert (save.inputs["format"], save.inputs["codec"]) == ("mp4", "h264")
        assert builder.is_complete

    def test_host_video_format_mapped(self, source_video):
        gen = make_pass(UpscaleParams(video_file=str(source_video)), video_format="vp9-webm")
        generate_upscale_workflow(gen)
        _, save = find_node(gen.builder, "SaveVideo")
        assert (save.inputs["format"], save.inputs["codec"]) == ("mp4", "auto")


def pipeline_builder(*consumers):
    """A builder holding a decoded image at node 10 plus the given consumers."""
    prompt = {"10": {"class_type": "VAEDecode", "inputs": {}}}
    for i, class_type in enumerate(consumers, start=11):
        prompt[str(i)] = {"class_type": class_type, "inputs": {"images": ["10", 0]}}
    builder = GraphBuilder.from_prompt(prompt)
    builder.set_current_output(EdgeRef("10", 0))
    return builder


class TestInPipelineImage:
    """Upscaling an image generated earlier in the same pass."""

    def test_with_vram_cleanup(self):
        builder = pipeline_builder()
        params = UpscaleParams(model="seedvr2-preset-fast", upscale_by=2.0)
        gen = make_pass(params, builder=builder, image_width=832, image_height=1216)

        mode = generate_upscale_workflow(gen)

        assert mode is WorkflowMode.IN_PIPELINE_IMAGE
        assert class_types(builder) == [
            "VAEDecode",
            "VRAM_Debug",
            "SeedVR2LoadDiTModel",
            "SeedVR2LoadVAEModel",
            "SeedVR2VideoUpscaler",
        ]
        cleanup_id, cleanup = find_node(builder, "VRAM_Debug")
        upscaler_id, upscaler = find_node(builder, "SeedVR2VideoUpscaler")
        assert cleanup.inputs["image_pass"] == EdgeRef("10", 0)
        assert upscaler.inputs["image"] == EdgeRef(cleanup_id, 1)
        assert upscaler.inputs["resolution"] == 1664
        assert builder.current_output == EdgeRef(upscaler_id, 0)
        assert not builder.is_complete

    def test_without_kjnodes_reads_source_directly(self):
        builder = pipeline_builder()
        gen = make_pass(UpscaleParams(model="seedvr2-preset-fast"), builder=builder, features=SEEDVR2_ONLY)

        generate_upscale_workflow(gen)

        _, upscaler = find_node(builder, "SeedVR2VideoUpscaler")
        assert "VRAM_Debug" not in class_types(builder)
        assert upscaler.inputs["image"] == EdgeRef("10", 0)

    def test_upstream_scale_included(self):
        builder = pipeline_builder()
        gen = make_pass(
            UpscaleParams(model="seedvr2-preset-fast", upscale_by=2.0),
            builder=builder,
            image_width=1024,
            image_height=1024,
            upstream_scale=1.5,
        )
        generate_upscale_workflow(gen)
        _, upscaler = find_node(builder, "SeedVR2VideoUpscaler")
        assert upscaler.inputs["resolution"] == 3072

    def test_no_current_output_is_skipped(self, caplog):
        gen = make_pass(UpscaleParams(model="seedvr2-auto"))

        with caplog.at_level(logging.WARNING):
            generate_upscale_workflow(gen)

        assert len(gen.builder) == 0
        assert "No image output available" in caplog.text

    def test_missing_feature_raises(self):
        builder = pipeline_builder()
        gen = make_pass(UpscaleParams(model="seedvr2-auto"), builder=builder, features=frozenset())
        with pytest.raises(MissingFeatureError):
            generate_upscale_workflow(gen)
        assert class_types(builder) == ["VAEDecode"]


class TestInPipelineVideo:
    """Upscaling frames generated earlier and redirecting the video save."""

    def test_redirects_video_consumers(self):
        builder = pipeline_builder("SwarmSaveAnimationWS", "SwarmVideoBoomerang", "SaveImage")
        params = UpscaleParams(model="seedvr2-preset-balanced", video_batch_size=21)
        gen = make_pass(params, builder=builder, image_width=832, image_height=480)

        mode = generate_upscale_workflow(gen)

        assert mode is WorkflowMode.IN_PIPELINE_VIDEO
        upscaler_id, upscaler = find_node(builder, "SeedVR2VideoUpscaler")
        cleanup_id, _ = find_node(builder, "VRAM_Debug")
        assert upscaler.inputs["image"] == EdgeRef(cleanup_id, 1)
        assert upscaler.inputs["batch_size"] == 21
        assert upscaler.inputs["max_resolution"] == 0
        assert builder.get_node("11").inputs["images"] == EdgeRef(upscaler_id, 0)
        assert builder.get_node("12").inputs["images"] == EdgeRef(upscaler_id, 0)
        assert builder.get_node("13").inputs["images"] == EdgeRef("10", 0)
        assert builder.current_output == EdgeRef(upscaler_id, 0)

    def test_video_model_without_batch_size(self):
        builder = pipeline_builder("SwarmSaveAnimationWS")
        gen = make_pass(
            UpscaleParams(model="seedvr2-preset-fast"),
            builder=builder,
            features=SEEDVR2_ONLY,
            video_model_active=True,
        )

        generate_upscale_workflow(gen)

        upscaler_id, upscaler = find_node(builder, "SeedVR2VideoUpscaler")
        assert upscaler.inputs["image"] == EdgeRef("10", 0)
        assert upscaler.inputs["batch_size"] == 33
        assert builder.get_node("11").inputs["images"] == EdgeRef(upscaler_id, 0)

    def test_no_consumer_warns_and_moves_output(self, caplog):
        builder = pipeline_builder("SaveImage")
        gen = make_pass(UpscaleParams(model="seedvr2-auto", video_batch_size=8), builder=builder)

        with caplog.at_level(logging.WARNING):
            generate_upscale_workflow(gen)

        upscaler_id, _ = find_node(builder, "SeedVR2VideoUpscaler")
        assert "Could not find save node" in caplog.text
        assert builder.current_output == EdgeRef(upscaler_id, 0)
        assert builder.get_node("11").inputs["images"] == EdgeRef("10", 0)


class TestGenerationPass:
    def test_device_catalog_probed_once(self):
        probe = MagicMock(side_effect=cpu_probe)
        gen = GenerationPass(builder=GraphBuilder(), params=UpscaleParams(), probe=probe)

        first = gen.device_catalog()
        second = gen.device_catalog()

        assert first is second
        probe.assert_called_once_with()

    def test_require_feature(self):
        gen = GenerationPass(builder=GraphBuilder(), params=UpscaleParams(), features=SEEDVR2_ONLY)
        gen.require_feature()
