"""User-facing errors raised while generating an upscale workflow.

Every error here aborts the generation pass: no partial graph is handed to
the execution engine. Fallback conditions (unknown model variant, unknown
preset, clamped block swap) are not errors and only show up as diagnostics.
"""

from __future__ import annotations


class SeedVR2Error(Exception):
    """Base class for errors that should be shown to the user as-is."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidDeviceError(SeedVR2Error):
    """A requested offload device is not in the locally detected device list."""

    def __init__(self, device: str, valid_options: list[str], setting: str):
        self.device = device
        self.valid_options = valid_options
        self.setting = setting
        valid = ", ".join(valid_options)
        super().__init__(
            f"SeedVR2: Invalid {setting} '{device}'. "
            f"Valid values (locally detected) are: {valid}."
        )


class MissingRequiredDeviceError(SeedVR2Error):
    """A setting needs an offload device but the device resolved to ``none``."""

    def __init__(self, setting: str, dependent_setting: str):
        self.setting = setting
        self.dependent_setting = dependent_setting
        super().__init__(
            f"SeedVR2: '{dependent_setting}' requires '{setting}' to be set "
            "(for example 'cpu' or 'cuda:0')."
        )


class MissingFeatureError(SeedVR2Error):
    """The execution engine does not have the required custom node package."""

    def __init__(self, feature_id: str, package_name: str, install_url: str):
        self.feature_id = feature_id
        self.package_name = package_name
        self.install_url = install_url
        super().__init__(
            f"SeedVR2 upscaling requires the '{package_name}' nodes, which are not "
            f"installed in the execution engine. Install them from {install_url} "
            "and restart the backend."
        )


class MediaFileNotFoundError(SeedVR2Error, FileNotFoundError):
    """A standalone image/video path does not exist after resolution."""

    def __init__(self, path: str, kind: str = "media"):
        self.path = path
        self.kind = kind
        SeedVR2Error.__init__(self, f"SeedVR2 {kind} file not found: {path}")

    def __str__(self) -> str:
        return self.message


class GraphError(Exception):
    """Raised when a graph operation would violate the builder's contract."""
