"""GPU monitoring queries used by the telemetry sampler.

Two interchangeable sources return a point-in-time GPUSnapshot:

- NvmlQuery: reads counters in-process through pynvml (NVIDIA Management
  Library). Cheapest per tick.
- NvidiaSmiQuery: shells out to ``nvidia-smi --query-gpu``. Works wherever
  the driver tools are installed, even if NVML bindings are not importable
  by this interpreter.

Both raise TelemetryQueryError on any failure; the sampler skips that tick.
"""

from __future__ import annotations

import shutil
import subprocess
from abc import ABC, abstractmethod

import pynvml

from llmsweep.models.run_models import GPUSnapshot
from llmsweep.utils.logger import Logger

QUERY_FIELDS: tuple[str, ...] = (
    "memory.used",
    "memory.total",
    "utilization.gpu",
    "power.draw",
    "temperature.gpu",
)

_UNAVAILABLE = {"", "n/a", "[n/a]", "[not supported]", "not supported", "[unknown error]"}
_MIB = 1024 * 1024


class TelemetryQueryError(Exception):
    """Raised when a GPU snapshot cannot be obtained."""

    pass


class GPUQuery(ABC):
    """A capability that returns the current state of one GPU."""

    name: str = "gpu"

    @abstractmethod
    def query(self) -> GPUSnapshot:
        """Return a snapshot of the GPU right now.

        Raises:
            TelemetryQueryError: If the reading fails.
        """
        ...

    def close(self) -> None:
        """Release any resources held by the source."""
        return None


def _parse_reading(text: str) -> float | None:
    value = text.strip()
    if value.lower() in _UNAVAILABLE:
        return None
    return float(value)


def parse_query_line(line: str) -> GPUSnapshot:
    """Parse one ``--format=csv,noheader,nounits`` line of QUERY_FIELDS.

    Individual ``[N/A]`` readings become None.

    Raises:
        TelemetryQueryError: If the line has the wrong shape or a reading
            is not numeric.
    """
    parts = line.split(",")
    if len(parts) != len(QUERY_FIELDS):
        raise TelemetryQueryError(
            f"Expected {len(QUERY_FIELDS)} fields, got {len(parts)}: {line!r}"
        )
    try:
        readings = [_parse_reading(part) for part in parts]
    except ValueError as e:
        raise TelemetryQueryError(f"Non-numeric reading in {line!r}") from e
    return GPUSnapshot(*readings)


class NvidiaSmiQuery(GPUQuery):
    """Query one GPU through the ``nvidia-smi`` command line tool."""

    name = "nvidia-smi"

    def __init__(
        self, gpu_index: int = 0, command: str = "nvidia-smi", timeout: float = 5.0
    ) -> None:
        """Create the source.

        Args:
            gpu_index: GPU to query.
            command: nvidia-smi executable.
            timeout: Seconds before a hung query is abandoned.
        """
        self.gpu_index = gpu_index
        self.command = command
        self.timeout = timeout

    def build_command(self) -> list[str]:
        """Return the argv used for one query."""
        return [
            self.command,
            f"--query-gpu={','.join(QUERY_FIELDS)}",
            "--format=csv,noheader,nounits",
            "-i",
            str(self.gpu_index),
        ]

    def query(self) -> GPUSnapshot:
        """Run nvidia-smi once and parse its first output line."""
        try:
            result = subprocess.run(
                self.build_command(),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError, PermissionError) as e:
            raise TelemetryQueryError(f"nvidia-smi failed: {e}") from e

        if result.returncode != 0:
            raise TelemetryQueryError(
                f"nvidia-smi exited {result.returncode}: {result.stderr.strip()}"
            )

        for line in result.stdout.splitlines():
            if line.strip():
                return parse_query_line(line)
        raise TelemetryQueryError("nvidia-smi returned no data")


class NvmlQuery(GPUQuery):
    """Query one GPU in-process through pynvml."""

    name = "nvml"

    def __init__(self, gpu_index: int = 0) -> None:
        """Initialize NVML and resolve the device handle.

        Raises:
            TelemetryQueryError: If NVML or the device is unavailable.
        """
        self.gpu_index = gpu_index
        try:
            pynvml.nvmlInit()
        except pynvml.NVMLError as e:
            raise TelemetryQueryError(f"NVML init failed: {e}") from e
        try:
            self._handle = pynvml.nvmlDeviceGetHandleByIndex(gpu_index)
        except pynvml.NVMLError as e:
            pynvml.nvmlShutdown()
            raise TelemetryQueryError(f"GPU {gpu_index} not found: {e}") from e
        self._closed = False

    def query(self) -> GPUSnapshot:
        """Read memory, utilization, power and temperature counters."""
        try:
            memory = pynvml.nvmlDeviceGetMemoryInfo(self._handle)
            util = pynvml.nvmlDeviceGetUtilizationRates(self._handle)
            temperature = pynvml.nvmlDeviceGetTemperature(
                self._handle, pynvml.NVML_TEMPERATURE_GPU
            )
        except pynvml.NVMLError as e:
            raise TelemetryQueryError(f"NVML query failed: {e}") from e

        # Some boards do not expose power readings.
        try:
            power_w: float | None = pynvml.nvmlDeviceGetPowerUsage(self._handle) / 1000.0
        except pynvml.NVMLError:
            power_w = None

        return GPUSnapshot(
            memory_used=memory.used / _MIB,
            memory_total=memory.total / _MIB,
            utilization_pct=float(util.gpu),
            power_draw=power_w,
            temperature=float(temperature),
        )

    def close(self) -> None:
        """Shut NVML down once."""
        if self._closed:
            return
        self._closed = True
        try:
            pynvml.nvmlShutdown()
        except pynvml.NVMLError:
            pass


def create_gpu_query(gpu_index: int = 0, prefer: str = "auto") -> GPUQuery | None:
    """Pick a GPU query source for this machine.

    Priority order for ``auto``: NVML, then nvidia-smi.

    Args:
        gpu_index: GPU to sample.
        prefer: "auto", "nvml" or "nvidia-smi".

    Returns:
        A ready GPUQuery, or None when no source is usable.
    """
    log = Logger.get("telemetry.sources")

    if prefer in ("auto", "nvml"):
        try:
            return NvmlQuery(gpu_index)
        except TelemetryQueryError as e:
            log.debug(f"NVML source unavailable: {e}")

    if prefer in ("auto", "nvidia-smi") and shutil.which("nvidia-smi"):
        return NvidiaSmiQuery(gpu_index)

    log.warning("No GPU telemetry source available; GPU columns will be empty")
    return None
