"""Host environment snapshot for the run log."""

import platform
import socket
from typing import Any

import psutil
import pynvml

from llmsweep.engine.base import InferenceEngine
from llmsweep.version import LLMSWEEP_VERSION


def _bytes_to_gb(bytes_value: int) -> float:
    return round(bytes_value / (1024**3), 1)


def _decode(value: bytes | str) -> str:
    # Older NVML bindings return bytes
    return value.decode("utf-8") if isinstance(value, bytes) else value


def list_gpus() -> tuple[str | None, list[dict[str, Any]]]:
    """Return (driver version, devices) from NVML, or (None, []) without it."""
    try:
        pynvml.nvmlInit()
    except pynvml.NVMLError:
        return None, []

    try:
        driver = _decode(pynvml.nvmlSystemGetDriverVersion())
        devices = []
        for i in range(pynvml.nvmlDeviceGetCount()):
            handle = pynvml.nvmlDeviceGetHandleByIndex(i)
            devices.append(
                {
                    "index": i,
                    "model": _decode(pynvml.nvmlDeviceGetName(handle)),
                    "memory_gb": _bytes_to_gb(
                        pynvml.nvmlDeviceGetMemoryInfo(handle).total
                    ),
                }
            )
        return driver, devices
    except pynvml.NVMLError:
        return None, []
    finally:
        try:
            pynvml.nvmlShutdown()
        except pynvml.NVMLError:
            pass


def collect_environment(engine: InferenceEngine | None = None) -> dict[str, Any]:
    """Describe the host a session ran on.

    Every probe is best effort; a missing GPU driver or engine just leaves
    its entries empty.
    """
    driver, gpus = list_gpus()
    info: dict[str, Any] = {
        "hostname": socket.gethostname(),
        "os": f"{platform.system()} {platform.release()}",
        "python": platform.python_version(),
        "llmsweep": LLMSWEEP_VERSION.full_version(),
        "cpu": platform.processor() or platform.machine(),
        "cpu_physical_cores": psutil.cpu_count(logical=False),
        "cpu_logical_cores": psutil.cpu_count(logical=True),
        "memory_gb": _bytes_to_gb(psutil.virtual_memory().total),
        "gpu_driver": driver,
        "gpus": gpus,
    }
    if engine is not None:
        info["engine"] = engine.name
        info["engine_version"] = engine.version()
    return info
