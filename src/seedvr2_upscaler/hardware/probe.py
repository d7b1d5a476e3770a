"""Best-effort compute device discovery.

Mirrors the device list SeedVR2's own ``get_device_list()`` reports, without
importing torch in the host process. NVIDIA GPUs are enumerated through
``nvidia-smi``; Apple MPS is guessed from the platform. Probing never raises:
any failure degrades to "no accelerators found".
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from ..settings import get_probe_timeout, is_mps_platform

logger = logging.getLogger(__name__)

NONE_DEVICE = "none"
CPU_DEVICE = "cpu"
MPS_DEVICE = "mps"

_NVIDIA_SMI_QUERY = [
    "nvidia-smi",
    "--query-gpu=index,name,memory.total",
    "--format=csv,noheader,nounits",
]


@dataclass(frozen=True)
class GPUInfo:
    """A single NVIDIA GPU as reported by the driver."""

    index: int
    name: str
    total_memory_mb: int

    @property
    def total_memory_gib(self) -> float:
        return self.total_memory_mb / 1024


@dataclass(frozen=True)
class Device:
    """An entry in the device catalog.

    ``total_memory_gib`` is only known for CUDA devices and is used solely
    for VRAM tier selection.
    """

    identifier: str
    index: int | None = None
    name: str | None = None
    total_memory_gib: float | None = None

    @property
    def is_accelerator(self) -> bool:
        return self.identifier.lower() not in (NONE_DEVICE, CPU_DEVICE)


@dataclass(frozen=True)
class DeviceCatalog:
    """Ordered, case-insensitively unique list of offload device choices.

    Order is always ``none``, then ``cpu`` when present, then accelerators
    in probe order.
    """

    devices: tuple[Device, ...]
    has_cuda: bool = False
    has_mps: bool = False

    @property
    def identifiers(self) -> list[str]:
        return [d.identifier for d in self.devices]

    @property
    def accelerators(self) -> list[Device]:
        return [d for d in self.devices if d.is_accelerator]

    def __len__(self) -> int:
        return len(self.devices)

    def __contains__(self, identifier: object) -> bool:
        if not isinstance(identifier, str):
            return False
        wanted = identifier.lower()
        return any(d.identifier.lower() == wanted for d in self.devices)

    def first_usable(self) -> str | None:
        """Return the first entry that is not the ``none`` sentinel."""
        for d in self.devices:
            if d.identifier.lower() != NONE_DEVICE:
                return d.identifier
        return None

    def sorted_identifiers(self) -> list[str]:
        return sorted(self.identifiers, key=str.lower)

    def largest_accelerator(self) -> Device | None:
        """Return the accelerator with the most memory, if any reports memory."""
        sized = [d for d in self.accelerators if d.total_memory_gib is not None]
        if not sized:
            return None
        return max(sized, key=lambda d: d.total_memory_gib)

    def ui_values(self) -> list[str]:
        """Return choices in the ``value///label`` form the UI expects."""
        return [f"{d.identifier}///{d.identifier}" for d in self.devices]


def query_nvidia_gpus(timeout: float | None = None) -> list[GPUInfo]:
    """Enumerate NVIDIA GPUs via ``nvidia-smi``.

    Returns an empty list when the tool is missing, fails, times out or
    prints something unparseable.
    """
    if shutil.which("nvidia-smi") is None:
        return []
    if timeout is None:
        timeout = get_probe_timeout()
    try:
        result = subprocess.run(
            _NVIDIA_SMI_QUERY,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"nvidia-smi query failed: {e}")
        return []
    if result.returncode != 0:
        logger.debug(f"nvidia-smi exited with code {result.returncode}")
        return []
    return parse_nvidia_smi_output(result.stdout)


def parse_nvidia_smi_output(stdout: str) -> list[GPUInfo]:
    """Parse ``index, name, memory.total`` CSV lines, skipping bad rows."""
    gpus: list[GPUInfo] = []
    for line in stdout.splitlines():
        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 3:
            continue
        try:
            index = int(parts[0])
            memory_mb = int(float(parts[-1]))
        except ValueError:
            continue
        name = ",".join(parts[1:-1]).strip()
        gpus.append(GPUInfo(index=index, name=name, total_memory_mb=memory_mb))
    return gpus


def build_device_catalog(gpus: Iterable[GPUInfo], has_mps: bool) -> DeviceCatalog:
    """Build the catalog from probe results.

    ``cpu`` is listed when CUDA is present or MPS is not, the same rule
    SeedVR2 applies upstream.
    """
    accelerators: list[Device] = []
    gpu_list = list(gpus)
    for gpu in gpu_list:
        accelerators.append(
            Device(
                identifier=f"cuda:{gpu.index}",
                index=gpu.index,
                name=gpu.name,
                total_memory_gib=gpu.total_memory_gib,
            )
        )
    if has_mps:
        accelerators.append(Device(identifier=MPS_DEVICE, index=0))

    has_cuda = len(gpu_list) > 0
    candidates = [Device(identifier=NONE_DEVICE)]
    if has_cuda or not has_mps:
        candidates.append(Device(identifier=CPU_DEVICE))
    candidates.extend(accelerators)

    seen: set[str] = set()
    devices: list[Device] = []
    for device in candidates:
        key = device.identifier.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        devices.append(device)
    return DeviceCatalog(devices=tuple(devices), has_cuda=has_cuda, has_mps=has_mps)


def probe_devices(
    query: Callable[[], list[GPUInfo]] = query_nvidia_gpus,
    mps_predicate: Callable[[], bool] = is_mps_platform,
) -> DeviceCatalog:
    """Probe local hardware and return a fresh :class:`DeviceCatalog`.

    Never raises. Callers that need the catalog several times in one
    generation pass should keep the result instead of probing again.
    """
    try:
        gpus = query()
    except Exception as e:
        logger.warning(f"GPU enumeration failed, assuming no GPUs: {e}")
        gpus = []
    try:
        has_mps = bool(mps_predicate())
    except Exception as e:
        logger.warning(f"MPS detection failed, assuming no MPS: {e}")
        has_mps = False
    return build_device_catalog(gpus, has_mps)
