"""Offload device selection and validation."""

from __future__ import annotations

import logging

from .._utils import strip_choice_label
from ..errors import InvalidDeviceError, MissingRequiredDeviceError
from .probe import CPU_DEVICE, NONE_DEVICE, DeviceCatalog

logger = logging.getLogger(__name__)


def resolve_offload_device(
    catalog: DeviceCatalog,
    requested: str | None,
    cache_model: bool,
    offload_needed: bool,
    setting: str = "VAE offload device",
    dependent_setting: str = "Cache Model",
) -> str:
    """Pick the offload device string sent to the loader nodes.

    An explicit request always wins. Without one, a device is chosen
    automatically when the model is cached or offloading is needed
    (``cpu`` if available, else the first usable device), otherwise
    ``none``.

    Raises:
        InvalidDeviceError: the resolved device is not in a non-empty catalog
        MissingRequiredDeviceError: ``cache_model`` is set but the device is ``none``
    """
    if requested is not None:
        resolved = strip_choice_label(requested)
    elif cache_model or offload_needed:
        if CPU_DEVICE in catalog:
            resolved = CPU_DEVICE
        else:
            resolved = catalog.first_usable() or NONE_DEVICE
    else:
        resolved = NONE_DEVICE

    if len(catalog) > 0 and resolved not in catalog:
        raise InvalidDeviceError(resolved, catalog.sorted_identifiers(), setting)

    if cache_model and resolved.lower() == NONE_DEVICE:
        raise MissingRequiredDeviceError(setting, dependent_setting)

    logger.debug(f"SeedVR2: {setting} resolved to '{resolved}'")
    return resolved
