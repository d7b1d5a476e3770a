"""SeedVR2 upscaling workflow generation."""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy import for plugin hooks so the config layer does not need pluggy loaded."""
    if name == "hookimpl":
        from seedvr2_upscaler.plugins import hookimpl

        return hookimpl
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["hookimpl"]
