"""llmsweep - benchmark sweeps for local LLM inference engines with GPU telemetry."""

from llmsweep.version.llmsweep_version import LLMSWEEP_VERSION, Version

__version__ = str(LLMSWEEP_VERSION)
__version_info__ = LLMSWEEP_VERSION

__all__ = [
    "LLMSWEEP_VERSION",
    "Version",
    "__version__",
    "__version_info__",
]
