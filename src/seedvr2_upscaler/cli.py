"""Command line interface for SeedVR2 workflow generation.

All commands print JSON to stdout; errors are printed as JSON to stderr.
"""

import json
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from .config.params import COLOR_CORRECTION_CHOICES, UpscaleParams
from .config.presets import DEFAULT_CATALOG
from .config.resolver import select_vram_tier
from .errors import SeedVR2Error
from .graph.builder import GraphBuilder
from .hardware.probe import probe_devices
from .settings import LOG_LEVEL_ENV_VAR, get_log_level
from .workflow.modes import HostContext
from .workflow.nodes import DEFAULT_VIDEO_FORMAT, FEATURE_ID, KJNODES_FEATURE_ID
from .workflow.orchestrator import GenerationPass, generate_upscale_workflow

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def output(data: dict, ctx):
    if ctx.obj.get("pretty"):
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(json.dumps(data))


def fail(message: str):
    click.echo(json.dumps({"error": message}), err=True)
    sys.exit(1)


@click.group()
@click.option(
    "--log-level",
    envvar=LOG_LEVEL_ENV_VAR,
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (default INFO)",
)
@click.option("--pretty/--no-pretty", default=True, help="Pretty print JSON output")
@click.pass_context
def cli(ctx, log_level, pretty):
    """SeedVR2 upscaler - generate upscale workflows for the execution engine."""
    logging.basicConfig(
        level=(log_level or get_log_level()).upper(),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["pretty"] = pretty


@cli.command()
@click.pass_context
def devices(ctx):
    """List the locally detected offload devices."""
    catalog = probe_devices()
    output(
        {
            "devices": [
                {
                    "id": device.identifier,
                    "name": device.name,
                    "vram_gib": device.total_memory_gib,
                }
                for device in catalog.devices
            ],
            "has_cuda": catalog.has_cuda,
            "has_mps": catalog.has_mps,
            "choices": catalog.ui_values(),
        },
        ctx,
    )


@cli.command()
@click.pass_context
def auto(ctx):
    """Show the configuration auto mode picks for this machine."""
    diagnostics: list[str] = []
    choice = select_vram_tier(probe_devices(), DEFAULT_CATALOG, diagnostics)
    output(
        {
            "variant": choice.variant,
            "model": DEFAULT_CATALOG.asset_for(choice.variant),
            "block_swap": choice.block_swap,
            "tiled_vae": choice.tiled_vae,
            "diagnostics": diagnostics,
        },
        ctx,
    )


def upscale_options(func):
    """Options shared by the standalone file commands; unset means 'not present'."""
    options = [
        click.option("--model", "-m", default=None, help="Model, preset (seedvr2-preset-*) or seedvr2-auto"),
        click.option("--upscale-by", type=float, default=None, help="Upscale factor"),
        click.option("--block-swap", type=int, default=None, help="DiT blocks swapped to the offload device"),
        click.option(
            "--color-correction",
            type=click.Choice(COLOR_CORRECTION_CHOICES),
            default=None,
            help="Color correction method",
        ),
        click.option("--two-step-mode", type=bool, default=None, help="Downscale first, then upscale"),
        click.option("--pre-downscale", type=float, default=None, help="2-step downscale factor"),
        click.option("--tiled-vae", type=bool, default=None, help="Tiled VAE encode/decode"),
        click.option("--vae-offload-device", default=None, help="VAE offload device"),
        click.option("--dit-offload-device", default=None, help="DiT offload device"),
        click.option("--latent-noise-scale", type=float, default=None, help="Latent noise 0-1"),
        click.option("--cache-model", type=bool, default=None, help="Keep models loaded"),
        click.option("--video-batch-size", type=int, default=None, help="Frames per batch"),
        click.option("--temporal-overlap", type=int, default=None, help="Overlap between batches"),
        click.option("--uniform-batch-size", type=bool, default=None, help="Uniform batch sizes"),
        click.option("--resolution", type=int, default=None, help="Explicit target resolution"),
        click.option("--seed", type=int, default=42, show_default=True, help="Upscaler seed"),
        click.option(
            "--video-format",
            default=DEFAULT_VIDEO_FORMAT,
            show_default=True,
            help="Video format as codec-container",
        ),
        click.option(
            "--output-dir",
            type=click.Path(file_okay=False, path_type=Path),
            default=None,
            help="Root for Output/... paths",
        ),
        click.option(
            "--feature",
            "features",
            multiple=True,
            default=(FEATURE_ID, KJNODES_FEATURE_ID),
            show_default=True,
            help="Features installed in the execution engine",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


HOST_OPTIONS = ("seed", "video_format", "output_dir", "features")


def _generate_standalone(ctx, path_param: str, path: str, options: dict):
    host = HostContext(
        seed=options["seed"],
        video_format=options["video_format"],
        output_dir=options["output_dir"],
    )
    values = {k: v for k, v in options.items() if k not in HOST_OPTIONS and v is not None}
    values[path_param] = path
    try:
        params = UpscaleParams(**values)
        builder = GraphBuilder()
        gen = GenerationPass(
            builder=builder,
            params=params,
            features=frozenset(options["features"]),
            host=host,
            probe=probe_devices,
        )
        generate_upscale_workflow(gen)
    except (SeedVR2Error, ValidationError) as e:
        fail(str(e))
    output(builder.to_prompt(), ctx)


@cli.command()
@click.argument("path")
@upscale_options
@click.pass_context
def image(ctx, path, **options):
    """Print the workflow that upscales an existing image file."""
    _generate_standalone(ctx, "image_file", path, options)


@cli.command()
@click.argument("path")
@upscale_options
@click.pass_context
def video(ctx, path, **options):
    """Print the workflow that upscales an existing video file."""
    _generate_standalone(ctx, "video_file", path, options)


def main():
    cli()


if __name__ == "__main__":
    main()
