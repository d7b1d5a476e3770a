"""
Runtime settings for the SeedVR2 upscaler plugin.

Settings are read from environment variables on every call so that a
long-running host picks up changes between generation passes:

- SEEDVR2_PROBE_TIMEOUT: seconds allowed for GPU enumeration (default 5)
- SEEDVR2_OUTPUT_DIR: root that ``Output/...`` media paths map onto
  (default ~/.seedvr2/output)
- SEEDVR2_LOG_LEVEL: log level used by the command line (default INFO)
- SEEDVR2_FORCE_MPS: "1"/"0" to force the Apple MPS heuristic on or off
"""

import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_ENV_VAR = "SEEDVR2_PROBE_TIMEOUT"
OUTPUT_DIR_ENV_VAR = "SEEDVR2_OUTPUT_DIR"
LOG_LEVEL_ENV_VAR = "SEEDVR2_LOG_LEVEL"
FORCE_MPS_ENV_VAR = "SEEDVR2_FORCE_MPS"

DEFAULT_PROBE_TIMEOUT = 5.0
DEFAULT_OUTPUT_DIR = "~/.seedvr2/output"
DEFAULT_LOG_LEVEL = "INFO"


def get_probe_timeout() -> float:
    """
    Get the timeout for the GPU enumeration subprocess.

    Invalid or non-positive values fall back to the default.

    Returns:
        float: Timeout in seconds
    """
    raw = os.environ.get(PROBE_TIMEOUT_ENV_VAR)
    if not raw:
        return DEFAULT_PROBE_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        logger.warning(
            f"Ignoring invalid {PROBE_TIMEOUT_ENV_VAR}={raw!r}, "
            f"using {DEFAULT_PROBE_TIMEOUT}s"
        )
        return DEFAULT_PROBE_TIMEOUT
    if value <= 0:
        return DEFAULT_PROBE_TIMEOUT
    return value


def get_output_dir() -> Path:
    """
    Get the output root used to resolve ``Output/...`` media paths.

    Priority order:
    1. SEEDVR2_OUTPUT_DIR environment variable
    2. Default: ~/.seedvr2/output

    Returns:
        Path: Absolute path to the output directory
    """
    env_dir = os.environ.get(OUTPUT_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser().resolve()
    return Path(DEFAULT_OUTPUT_DIR).expanduser().resolve()


def get_log_level() -> str:
    return os.environ.get(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).upper()


def is_mps_platform() -> bool:
    """Best-effort guess whether Apple MPS is available.

    The host has no torch, so macOS is taken as a stand-in for MPS.
    SEEDVR2_FORCE_MPS overrides the guess either way.
    """
    forced = os.environ.get(FORCE_MPS_ENV_VAR)
    if forced is not None and forced.strip() != "":
        return forced.strip().lower() in ("1", "true", "yes", "on")
    return sys.platform == "darwin"
