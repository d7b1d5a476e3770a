"""Hardware probing and offload device selection."""

from .devices import resolve_offload_device
from .probe import (
    CPU_DEVICE,
    MPS_DEVICE,
    NONE_DEVICE,
    Device,
    DeviceCatalog,
    GPUInfo,
    build_device_catalog,
    probe_devices,
    query_nvidia_gpus,
)

__all__ = [
    "CPU_DEVICE",
    "MPS_DEVICE",
    "NONE_DEVICE",
    "Device",
    "DeviceCatalog",
    "GPUInfo",
    "build_device_catalog",
    "probe_devices",
    "query_nvidia_gpus",
    "resolve_offload_device",
]
